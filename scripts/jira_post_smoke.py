#!/usr/bin/env python3
"""Post a sample PR comment to a real Jira issue.

Reads JIRA_BASE_URL, JIRA_EMAIL and JIRA_API_TOKEN from the environment (or .env).

Run:
  python3 scripts/jira_post_smoke.py PROJ-2
  python3 scripts/jira_post_smoke.py PROJ-2 --dry-run
  python3 scripts/jira_post_smoke.py PROJ-2 --mode minimal --action synchronize
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure repository root is importable
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

SAMPLE_BODY = "\n".join(
    [
        "## Test Comment",
        "",
        "This is a **test comment** posted from `scripts/jira_post_smoke.py`.",
        "",
        "- Item one",
        "- Item two",
        "",
        "```python",
        'print("hello from jiralink")',
        "```",
    ]
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("issue_key")
    parser.add_argument("--dry-run", action="store_true", help="print the wiki markup only")
    parser.add_argument("--mode", default="update", choices=["update", "new", "minimal"])
    parser.add_argument("--action", default="opened", help="PR trigger action")
    parser.add_argument(
        "--url",
        default="https://github.com/example/jiralink/pull/999",
        help="PR URL used to find the comment on later runs",
    )
    args = parser.parse_args(argv)

    from jiralink.config import settings
    from jiralink.models import ChangeRequest, CommentMode, TrackerConfig
    from jiralink.services.comments import build_full_body
    from jiralink.services.reconcile import reconcile

    change_request = ChangeRequest(
        number=999,
        title=f"{args.issue_key} Test comment from local script",
        body=SAMPLE_BODY,
        url=args.url,
    )

    if args.dry_run:
        print("--- Dry run: comment body (wiki markup) ---")
        print(build_full_body(change_request))
        print("-------------------------------------------")
        return 0

    if not settings.jira_configured():
        print("[smoke] Missing Jira credentials. Set JIRA_BASE_URL, JIRA_EMAIL, JIRA_API_TOKEN.")
        return 1

    print(f"Issue:    {args.issue_key}")
    print(f"Base URL: {settings.jira_base_url}")
    print(f"Email:    {settings.jira_email}")

    result = reconcile(
        [args.issue_key],
        change_request,
        TrackerConfig(settings.jira_base_url, settings.jira_email, settings.jira_api_token),
        CommentMode.parse(args.mode),
        args.action,
        fail_fast=True,
        timeout=settings.http_timeout_seconds,
    )
    for outcome in result.outcomes:
        action = outcome.action.value if outcome.action else "-"
        print(f"[smoke] {outcome.issue_key}: {outcome.status.value} ({action})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
