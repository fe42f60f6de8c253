"""Webhook event handling: keys -> Jira comments -> PR links"""

import logging
from typing import Any, Dict, Optional

from jiralink.config import Settings, settings as default_settings
from jiralink.models import CommentMode, TrackerConfig
from jiralink.services import pr_links
from jiralink.services.comments import OPENED_ACTION
from jiralink.services.keys import extract_keys_from_texts
from jiralink.services.reconcile import reconcile
from jiralink.services.sources import (
    change_request_from_payload,
    collect_source_texts,
    is_pr_event,
    repository_slug,
)

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Configured strictness turned a soft condition into a failure."""


def _tracker_config(cfg: Settings) -> TrackerConfig:
    return TrackerConfig(
        base_url=cfg.jira_base_url or "",
        email=cfg.jira_email or "",
        api_token=cfg.jira_api_token or "",
    )


def handle_event(
    event_name: str, payload: Dict[str, Any], cfg: Optional[Settings] = None
) -> Dict[str, Any]:
    """Process one GitHub event and return a JSON-able summary."""
    cfg = cfg or default_settings
    sources = cfg.source_list()
    logger.info(f"Looking for keys from: {', '.join(sources)}")
    projects = cfg.project_list()
    if projects:
        logger.info(f"Filtering to projects: {', '.join(projects)}")

    texts = collect_source_texts(event_name, payload, sources).as_list()
    logger.debug(f"Collected {len(texts)} text(s) to scan")

    keys = extract_keys_from_texts(texts, projects, cfg.blocklist_entries(), cfg.issue_pattern)
    summary: Dict[str, Any] = {
        "event": event_name,
        "keys": keys,
        "key": keys[0] if keys else "",
        "found": bool(keys),
        "outcomes": [],
        "links_updated": False,
    }

    if keys:
        logger.info(f"Found keys: {', '.join(keys)}")
    else:
        msg = "No Jira issue keys found"
        if cfg.fail_on_missing:
            raise PipelineError(msg)
        logger.info(msg)
        return summary

    change_request = change_request_from_payload(payload) if is_pr_event(event_name) else None
    if change_request is None:
        if cfg.post_to_jira:
            logger.info("post_to_jira is enabled but event is not a pull_request, skipping")
        return summary

    action = payload.get("action") or OPENED_ACTION
    trigger_actions = cfg.trigger_action_list()
    if trigger_actions and action not in trigger_actions:
        logger.info(f"Ignoring pull_request action '{action}' (not in trigger_actions)")
        return summary

    if cfg.post_to_jira:
        if not cfg.jira_configured():
            msg = "post_to_jira is enabled but jira_base_url, jira_email, or jira_api_token is missing"
            if cfg.jira_fail_on_error:
                raise PipelineError(msg)
            logger.warning(msg)
        else:
            result = reconcile(
                keys,
                change_request,
                _tracker_config(cfg),
                CommentMode.parse(cfg.jira_comment_mode),
                action,
                fail_fast=cfg.jira_fail_on_error,
                auth_token=cfg.github_token,
                allowed_hosts=cfg.allowed_host_list(),
                timeout=cfg.http_timeout_seconds,
            )
            summary["outcomes"] = [o.to_dict() for o in result.outcomes]

    if cfg.append_links_to_pr and cfg.jira_base_url:
        summary["links_updated"] = _append_links(cfg, payload, keys)

    return summary


def _append_links(cfg: Settings, payload: Dict[str, Any], keys) -> bool:
    repo = repository_slug(payload)
    pr = payload.get("pull_request") or {}
    if not cfg.github_token or not repo or not pr.get("number"):
        logger.warning("append_links_to_pr is enabled but the GitHub token or repository is missing")
        return False
    client = pr_links.GitHubClient(
        cfg.github_token, cfg.github_api_url, timeout=cfg.http_timeout_seconds
    )
    try:
        return pr_links.append_links_to_pr(
            client, repo, pr["number"], pr.get("body"), keys, cfg.jira_base_url
        )
    except Exception as e:
        logger.warning(f"Failed to append Jira links to PR #{pr.get('number')}: {e}")
        return False
    finally:
        client.close()
