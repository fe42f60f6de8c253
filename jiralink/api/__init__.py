"""API routes"""

from jiralink.api import reconcile, webhooks

__all__ = ["webhooks", "reconcile"]
