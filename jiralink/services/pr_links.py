"""Jira links section maintained in the pull request description"""

import logging
from typing import Optional, Sequence

import httpx

logger = logging.getLogger(__name__)

SECTION_START = "<!-- jiralink:start -->"
SECTION_END = "<!-- jiralink:end -->"


def build_links_section(keys: Sequence[str], base_url: str) -> str:
    url = (base_url or "").rstrip("/")
    links = "\n".join(f"- [{key}]({url}/browse/{key})" for key in keys)
    return f"{SECTION_START}\n## Jira\n\n{links}\n{SECTION_END}"


def merge_links_section(body: Optional[str], section: str) -> str:
    """Replace an existing marked section, or append one at the bottom."""
    current = body or ""
    start = current.find(SECTION_START)
    end = current.find(SECTION_END)
    if start != -1 and end != -1 and end > start:
        return current[:start] + section + current[end + len(SECTION_END):]
    return current.rstrip() + "\n\n" + section


class GitHubClient:
    """Minimal GitHub REST client for pull request updates"""

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com",
        http_client: Optional[httpx.Client] = None,
        *,
        timeout: float = 30.0,
    ):
        self.api_url = (api_url or "https://api.github.com").rstrip("/")
        self.token = token
        self.http = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self.http.close()

    def update_pull_request_body(self, repo: str, number: int, body: str) -> None:
        response = self.http.patch(
            f"{self.api_url}/repos/{repo}/pulls/{int(number)}",
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
            },
            json={"body": body},
        )
        response.raise_for_status()


def append_links_to_pr(
    client: GitHubClient,
    repo: str,
    number: int,
    current_body: Optional[str],
    keys: Sequence[str],
    base_url: str,
) -> bool:
    """Write the links section into the PR body. Returns False when nothing changed."""
    current = current_body or ""
    new_body = merge_links_section(current, build_links_section(keys, base_url))
    if new_body == current:
        logger.info("PR body already has correct Jira links, skipping update")
        return False
    client.update_pull_request_body(repo, number, new_body)
    logger.info(f"Appended Jira links to PR #{number}")
    return True
