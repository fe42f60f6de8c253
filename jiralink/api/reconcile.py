"""Manual reconciliation endpoint"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from jiralink.config import Settings, get_settings
from jiralink.models import ChangeRequest, CommentMode, TrackerConfig
from jiralink.services import reconcile as reconcile_service

router = APIRouter(prefix="/api/reconcile", tags=["reconcile"])


class ChangeRequestIn(BaseModel):
    number: int = 0
    title: str
    body: str = ""
    url: str


class ReconcileRequest(BaseModel):
    issue_keys: List[str] = Field(..., min_length=1)
    change_request: ChangeRequestIn
    mode: Optional[str] = None
    trigger_action: str = "opened"
    fail_fast: bool = False


class IssueOutcomeResponse(BaseModel):
    issue_key: str
    status: str
    action: Optional[str] = None
    message: Optional[str] = None
    uploaded: List[str] = []


class ReconcileResponse(BaseModel):
    issue_keys: List[str]
    outcomes: List[IssueOutcomeResponse]


@router.post("/", response_model=ReconcileResponse)
async def trigger_reconcile(payload: ReconcileRequest, cfg: Settings = Depends(get_settings)):
    """Post or refresh the PR comment on the given issue keys"""
    if not cfg.jira_configured():
        raise HTTPException(status_code=400, detail="Jira credentials are not configured")
    if any(not key.strip() for key in payload.issue_keys):
        raise HTTPException(status_code=400, detail="Issue keys must be non-empty")

    change_request = ChangeRequest(**payload.change_request.model_dump())
    config = TrackerConfig(
        base_url=cfg.jira_base_url, email=cfg.jira_email, api_token=cfg.jira_api_token
    )
    mode = CommentMode.parse(payload.mode or cfg.jira_comment_mode)

    try:
        result = await run_in_threadpool(
            reconcile_service.reconcile,
            payload.issue_keys,
            change_request,
            config,
            mode,
            payload.trigger_action,
            payload.fail_fast,
            cfg.github_token,
            cfg.allowed_host_list(),
            timeout=cfg.http_timeout_seconds,
        )
    except reconcile_service.ReconcileError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return result.to_dict()
