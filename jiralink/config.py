"""Application configuration"""

from typing import List

from pydantic_settings import BaseSettings


def _split_csv(value: str | None, *, upper: bool = False, lower: bool = False) -> List[str]:
    items = []
    for part in (value or "").split(","):
        part = part.strip()
        if not part:
            continue
        if upper:
            part = part.upper()
        elif lower:
            part = part.lower()
        items.append(part)
    return items


class Settings(BaseSettings):
    """Application settings"""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"

    # Jira
    jira_base_url: str | None = None
    jira_email: str | None = None
    jira_api_token: str | None = None
    post_to_jira: bool = True
    # One of: update, new, minimal. Unknown values fall back to "update".
    jira_comment_mode: str = "update"
    jira_fail_on_error: bool = False
    # Comma-separated pull request actions that post to Jira (empty = every action).
    trigger_actions: str = "opened,edited,reopened,synchronize"

    # GitHub
    github_token: str | None = None
    github_api_url: str = "https://api.github.com"
    # When set, webhook deliveries must carry a valid X-Hub-Signature-256 header.
    github_webhook_secret: str | None = None
    append_links_to_pr: bool = False

    # Key extraction
    # Comma-separated project prefixes to accept (empty = any project).
    projects: str | None = None
    # Comma-separated subset of: branch, title, commits, body
    sources: str = "branch,title,commits"
    # Empty = built-in default blocklist, "none" = no blocklist.
    blocklist: str | None = None
    issue_pattern: str | None = None
    fail_on_missing: bool = False

    # Images
    # Comma-separated hostnames; when set, only these hosts are fetched.
    allowed_image_hosts: str | None = None
    http_timeout_seconds: float = 30.0

    class Config:
        env_file = ".env"
        case_sensitive = False

    def project_list(self) -> List[str]:
        return _split_csv(self.projects, upper=True)

    def source_list(self) -> List[str]:
        return _split_csv(self.sources or "branch,title,commits", lower=True)

    def blocklist_entries(self) -> List[str]:
        from jiralink.services.keys import DEFAULT_BLOCKLIST

        raw = (self.blocklist or "").strip()
        if raw.lower() == "none":
            return []
        if not raw:
            return list(DEFAULT_BLOCKLIST)
        return _split_csv(raw, upper=True)

    def trigger_action_list(self) -> List[str]:
        return _split_csv(self.trigger_actions, lower=True)

    def allowed_host_list(self) -> List[str]:
        return _split_csv(self.allowed_image_hosts, lower=True)

    def jira_configured(self) -> bool:
        return bool(self.jira_base_url and self.jira_email and self.jira_api_token)


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency for the active settings"""
    return settings
