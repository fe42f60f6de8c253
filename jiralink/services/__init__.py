"""Services"""

from jiralink.services.images import ImageFetcher
from jiralink.services.jira_client import JiraClient, JiraClientError
from jiralink.services.reconcile import ReconcileError, ReconcileService

__all__ = [
    "ImageFetcher",
    "JiraClient",
    "JiraClientError",
    "ReconcileError",
    "ReconcileService",
]
