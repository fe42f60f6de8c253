"""Candidate texts for issue key extraction, taken from GitHub webhook payloads"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from jiralink.models import ChangeRequest

logger = logging.getLogger(__name__)

PR_EVENTS = {"pull_request", "pull_request_target"}
PUSH_EVENT = "push"
KNOWN_SOURCES = ("branch", "title", "commits", "body")


@dataclass
class SourceTexts:
    branch: Optional[str] = None
    title: Optional[str] = None
    commits: List[str] = field(default_factory=list)
    body: Optional[str] = None

    def as_list(self) -> List[str]:
        texts: List[str] = []
        if self.branch:
            texts.append(self.branch)
        if self.title:
            texts.append(self.title)
        texts.extend(c for c in self.commits if c)
        if self.body:
            texts.append(self.body)
        return texts


def is_pr_event(event_name: str) -> bool:
    return event_name in PR_EVENTS


def _branch(event_name: str, payload: Dict[str, Any]) -> Optional[str]:
    if is_pr_event(event_name):
        ref = ((payload.get("pull_request") or {}).get("head") or {}).get("ref")
        if ref:
            return ref
    if event_name == PUSH_EVENT:
        ref = payload.get("ref")
        if ref:
            return ref[len("refs/heads/"):] if ref.startswith("refs/heads/") else ref
    logger.debug(f"No branch source for event: {event_name}")
    return None


def _title(event_name: str, payload: Dict[str, Any]) -> Optional[str]:
    if is_pr_event(event_name):
        return (payload.get("pull_request") or {}).get("title")
    logger.debug(f"Title source not available for event: {event_name}")
    return None


def _commits(event_name: str, payload: Dict[str, Any]) -> List[str]:
    if event_name == PUSH_EVENT:
        return [c.get("message") or "" for c in payload.get("commits") or []]
    if is_pr_event(event_name):
        logger.info(
            "Commits source for pull_request events requires API calls and is not supported. "
            "Use branch/title/body instead."
        )
    return []


def _body(event_name: str, payload: Dict[str, Any]) -> Optional[str]:
    if is_pr_event(event_name):
        return (payload.get("pull_request") or {}).get("body")
    logger.debug(f"Body source not available for event: {event_name}")
    return None


def collect_source_texts(
    event_name: str, payload: Dict[str, Any], sources: Iterable[str]
) -> SourceTexts:
    """Gather the requested texts (branch, title, commits, body) from an event."""
    texts = SourceTexts()
    for source in sources:
        if source == "branch":
            texts.branch = _branch(event_name, payload)
        elif source == "title":
            texts.title = _title(event_name, payload)
        elif source == "commits":
            texts.commits = _commits(event_name, payload)
        elif source == "body":
            texts.body = _body(event_name, payload)
        else:
            logger.warning(f"Ignoring unknown key source '{source}'")
    return texts


def change_request_from_payload(payload: Dict[str, Any]) -> Optional[ChangeRequest]:
    pr = payload.get("pull_request")
    if not pr:
        return None
    return ChangeRequest(
        number=int(pr.get("number") or payload.get("number") or 0),
        title=pr.get("title") or "",
        body=pr.get("body") or "",
        url=pr.get("html_url") or "",
    )


def repository_slug(payload: Dict[str, Any]) -> Optional[str]:
    """owner/name of the repository the event belongs to."""
    repo = payload.get("repository") or {}
    full_name = repo.get("full_name")
    if full_name:
        return full_name
    owner = (repo.get("owner") or {}).get("login")
    name = repo.get("name")
    if owner and name:
        return f"{owner}/{name}"
    return None
