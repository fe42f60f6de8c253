"""Create-or-update policy for the per-issue pull request comment"""

import logging
from typing import Optional

from jiralink.models import ChangeRequest, CommentAction, CommentMode
from jiralink.services.jira_client import JiraClient
from jiralink.services.markup import markdown_to_jira

logger = logging.getLogger(__name__)

# Trigger action for a change request's first appearance; no prior comment can exist.
OPENED_ACTION = "opened"


def linked_title(change_request: ChangeRequest) -> str:
    return f"[{change_request.title}|{change_request.url}]"


def build_full_body(change_request: ChangeRequest, description: Optional[str] = None) -> str:
    """Heading linking the PR, followed by its description in wiki markup."""
    body = change_request.body if description is None else description
    return "\n".join([f"h3. {linked_title(change_request)}", "", markdown_to_jira(body)])


def build_minimal_body(change_request: ChangeRequest) -> str:
    return f"PR updated: {linked_title(change_request)}"


class CommentWriter:
    """Writes one comment per issue according to the comment mode.

    update  - opened: create; otherwise update the comment containing the PR
              URL, or create one if none is found.
    new     - always create.
    minimal - opened: create the full comment; otherwise create a one-line note.

    Jira failures propagate as JiraClientError.
    """

    def __init__(self, client: JiraClient):
        self.client = client

    def write(
        self,
        issue_key: str,
        change_request: ChangeRequest,
        mode: CommentMode,
        trigger_action: str,
        description: Optional[str] = None,
    ) -> CommentAction:
        first_occurrence = trigger_action == OPENED_ACTION

        if mode == CommentMode.MINIMAL and not first_occurrence:
            self.client.create_comment(issue_key, build_minimal_body(change_request))
            logger.info(f"Created minimal comment on {issue_key}")
            return CommentAction.CREATED_MINIMAL

        body = build_full_body(change_request, description)

        if mode == CommentMode.UPDATE and not first_occurrence:
            existing_id = self.client.find_comment_containing(issue_key, change_request.url)
            if existing_id:
                self.client.update_comment(issue_key, existing_id, body)
                logger.info(f"Updated comment on {issue_key}")
                return CommentAction.UPDATED

        self.client.create_comment(issue_key, body)
        logger.info(f"Created comment on {issue_key}")
        return CommentAction.CREATED
