"""Jira REST API client wrapper"""
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from jiralink.models import TrackerConfig

logger = logging.getLogger(__name__)


class JiraClientError(Exception):
    """A Jira call for one issue failed."""

    def __init__(
        self,
        issue_key: str,
        message: str,
        status_code: Optional[int] = None,
        *,
        transient: bool = False,
    ):
        super().__init__(message)
        self.issue_key = issue_key
        self.status_code = status_code
        self.transient = transient


IDEMPOTENT_METHODS = ("GET", "PUT")


def _is_safe_to_resend(method: str, exc: httpx.HTTPError) -> bool:
    """Transport failures are retried only if a repeat cannot duplicate a write."""
    if isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout)):
        # Never reached Jira.
        return True
    return method.upper() in IDEMPOTENT_METHODS


class JiraClient:
    """Wrapper for the Jira REST v2 comment and attachment endpoints"""

    def __init__(
        self,
        config: TrackerConfig,
        http_client: Optional[httpx.Client] = None,
        *,
        timeout: float = 30.0,
    ):
        """Initialize Jira client"""
        self.config = config.normalized()
        self.http = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self.http.close()

    @property
    def api_url(self) -> str:
        return f"{self.config.base_url}/rest/api/2"

    def _issue_url(self, issue_key: str, *parts: str) -> str:
        path = "/".join(quote(str(p), safe="") for p in (issue_key, *parts))
        return f"{self.api_url}/issue/{path}"

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {"Authorization": self.config.auth_header(), "Accept": "application/json"}
        headers.update(extra)
        return headers

    @staticmethod
    def _should_retry(exc: Exception) -> bool:
        """Best-effort retry predicate for transient Jira failures."""
        if not isinstance(exc, JiraClientError):
            return False
        return exc.transient or exc.status_code in (429, 500, 502, 503, 504)

    def _with_retries(self, fn, *, max_attempts: int = 3, base_delay_s: float = 0.5):
        """Run callable with small exponential backoff on transient errors."""
        attempt = 1
        while True:
            try:
                return fn()
            except Exception as e:
                if attempt >= max_attempts or not self._should_retry(e):
                    raise
                time.sleep(base_delay_s * (2 ** (attempt - 1)))
                attempt += 1

    def _request(self, issue_key: str, what: str, method: str, url: str, **kwargs) -> httpx.Response:
        """Issue a comment API call, raising JiraClientError on any failure."""

        def _call():
            try:
                response = self.http.request(method, url, **kwargs)
            except httpx.HTTPError as e:
                raise JiraClientError(
                    issue_key,
                    f"Failed to {what} for {issue_key}: {e}",
                    transient=_is_safe_to_resend(method, e),
                ) from e
            if not response.is_success:
                raise JiraClientError(
                    issue_key,
                    f"Failed to {what} for {issue_key}: "
                    f"{response.status_code} {response.reason_phrase}",
                    status_code=response.status_code,
                )
            return response

        return self._with_retries(_call)

    def get_comments(self, issue_key: str) -> List[Dict[str, Any]]:
        """Get all comments on an issue"""
        response = self._request(
            issue_key,
            "fetch comments",
            "GET",
            self._issue_url(issue_key, "comment"),
            headers=self._headers(),
        )
        data = self._json_or_empty(response)
        return list(data.get("comments") or [])

    def find_comment_containing(self, issue_key: str, needle: str) -> Optional[str]:
        """Return the id of the first comment whose body contains `needle`."""
        if not needle:
            return None
        for comment in self.get_comments(issue_key):
            if needle in (comment.get("body") or ""):
                return str(comment.get("id"))
        return None

    def create_comment(self, issue_key: str, body: str) -> Dict[str, Any]:
        """Create a comment on an issue"""
        response = self._request(
            issue_key,
            "create comment",
            "POST",
            self._issue_url(issue_key, "comment"),
            headers=self._headers(**{"Content-Type": "application/json"}),
            json={"body": body},
        )
        return self._json_or_empty(response)

    def update_comment(self, issue_key: str, comment_id: str, body: str) -> Dict[str, Any]:
        """Replace the body of an existing comment"""
        response = self._request(
            issue_key,
            f"update comment {comment_id}",
            "PUT",
            self._issue_url(issue_key, "comment", comment_id),
            headers=self._headers(**{"Content-Type": "application/json"}),
            json={"body": body},
        )
        return self._json_or_empty(response)

    def upload_attachment(
        self, issue_key: str, filename: str, content: bytes, content_type: str
    ) -> bool:
        """Attach a file to an issue. Non-success responses are reported, not raised."""
        response = self.http.post(
            self._issue_url(issue_key, "attachments"),
            headers=self._headers(**{"X-Atlassian-Token": "no-check"}),
            files={"file": (filename, content, content_type)},
        )
        if not response.is_success:
            logger.warning(
                f"Failed to upload {filename} to {issue_key}: "
                f"{response.status_code} {response.reason_phrase}"
            )
            return False
        logger.info(f"Uploaded {filename} to {issue_key}")
        return True

    @staticmethod
    def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
