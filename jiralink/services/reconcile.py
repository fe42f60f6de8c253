"""Pull request to Jira comment reconciliation"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from jiralink.models import (
    ChangeRequest,
    CommentMode,
    FetchedImage,
    IssueOutcome,
    OutcomeStatus,
    ReconcileResult,
    TrackerConfig,
)
from jiralink.services.comments import CommentWriter
from jiralink.services.images import ImageFetcher, dedupe_filenames, extract_images, rewrite_images
from jiralink.services.jira_client import JiraClient

logger = logging.getLogger(__name__)


class ReconcileError(Exception):
    """Raised when fail-fast turns a per-issue failure into a batch failure."""

    def __init__(self, issue_key: str, message: str):
        super().__init__(message)
        self.issue_key = issue_key


class ReconcileService:
    """Syncs one pull request description onto a batch of Jira issues.

    Images are fetched once per run and shared read-only across issues; each
    issue then gets its own uploads, its own rewritten description and its
    own comment write. Issues are processed strictly in order.
    """

    def __init__(self, client: JiraClient, fetcher: ImageFetcher):
        self.client = client
        self.fetcher = fetcher
        self.writer = CommentWriter(client)

    def fetch_images(
        self,
        description: str,
        auth_token: Optional[str] = None,
        allowed_hosts: Optional[Iterable[str]] = None,
    ) -> Tuple[FetchedImage, ...]:
        """Fetch every distinct image URL once and assign unique filenames."""
        refs = extract_images(description)
        if not refs:
            return ()
        logger.info(f"Found {len(refs)} image(s) in PR body")

        allowed = list(allowed_hosts or [])
        attempted = set()
        fetched: List[FetchedImage] = []
        for ref in refs:
            if ref.url in attempted:
                continue
            attempted.add(ref.url)
            image = self.fetcher.fetch(ref.url, auth_token, allowed)
            if image is not None:
                fetched.append(image)

        names = dedupe_filenames([(img.url, img.filename) for img in fetched])
        return tuple(
            FetchedImage(
                url=img.url,
                content=img.content,
                filename=names[img.url],
                content_type=img.content_type,
            )
            for img in fetched
        )

    def _upload_images(self, issue_key: str, images: Sequence[FetchedImage]) -> Dict[str, str]:
        uploaded: Dict[str, str] = {}
        for image in images:
            if self.client.upload_attachment(
                issue_key, image.filename, image.content, image.content_type
            ):
                uploaded[image.url] = image.filename
        return uploaded

    def _process_issue(
        self,
        issue_key: str,
        change_request: ChangeRequest,
        images: Sequence[FetchedImage],
        mode: CommentMode,
        trigger_action: str,
    ) -> IssueOutcome:
        url_to_filename = self._upload_images(issue_key, images)
        description = rewrite_images(change_request.body, url_to_filename)
        action = self.writer.write(issue_key, change_request, mode, trigger_action, description)

        missing = len(images) - len(url_to_filename)
        if missing:
            return IssueOutcome(
                issue_key=issue_key,
                status=OutcomeStatus.WARNED,
                action=action,
                message=f"{missing} image(s) could not be attached",
                uploaded=tuple(url_to_filename.values()),
            )
        return IssueOutcome(
            issue_key=issue_key,
            status=OutcomeStatus.SUCCEEDED,
            action=action,
            uploaded=tuple(url_to_filename.values()),
        )

    def reconcile(
        self,
        issue_keys: Sequence[str],
        change_request: ChangeRequest,
        mode: CommentMode,
        trigger_action: str,
        fail_fast: bool = False,
        auth_token: Optional[str] = None,
        allowed_hosts: Optional[Iterable[str]] = None,
    ) -> ReconcileResult:
        """Post or refresh the PR comment on every issue key.

        With fail_fast, the first per-issue failure raises ReconcileError and the
        remaining issues are skipped; otherwise it is logged and recorded.
        """
        result = ReconcileResult(issue_keys=list(issue_keys))
        images = self.fetch_images(change_request.body, auth_token, allowed_hosts)

        for issue_key in issue_keys:
            try:
                outcome = self._process_issue(
                    issue_key, change_request, images, mode, trigger_action
                )
            except Exception as e:
                msg = f"Failed to post to {issue_key}: {e}"
                if fail_fast:
                    logger.error(msg)
                    raise ReconcileError(issue_key, msg) from e
                logger.warning(msg)
                outcome = IssueOutcome(
                    issue_key=issue_key, status=OutcomeStatus.FAILED, message=msg
                )
            result.outcomes.append(outcome)

        return result


def reconcile(
    issue_keys: Sequence[str],
    change_request: ChangeRequest,
    config: TrackerConfig,
    mode: CommentMode,
    trigger_action: str,
    fail_fast: bool = False,
    auth_token: Optional[str] = None,
    allowed_hosts: Optional[Iterable[str]] = None,
    *,
    timeout: float = 30.0,
) -> ReconcileResult:
    """One-shot reconciliation with short-lived HTTP clients."""
    client = JiraClient(config.normalized(), timeout=timeout)
    fetcher = ImageFetcher(timeout=timeout)
    try:
        service = ReconcileService(client, fetcher)
        return service.reconcile(
            issue_keys,
            change_request,
            mode,
            trigger_action,
            fail_fast=fail_fast,
            auth_token=auth_token,
            allowed_hosts=allowed_hosts,
        )
    finally:
        fetcher.close()
        client.close()
