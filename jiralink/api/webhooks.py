"""GitHub webhook endpoint"""
import json
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from jiralink.config import Settings, get_settings
from jiralink.security import SIGNATURE_HEADER, verify_signature
from jiralink.services.pipeline import PipelineError, handle_event
from jiralink.services.reconcile import ReconcileError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/github")
async def github_webhook(
    request: Request,
    x_github_event: str = Header(..., alias="X-GitHub-Event"),
    cfg: Settings = Depends(get_settings),
):
    """Handle a GitHub delivery (pull_request, pull_request_target, push)"""
    body = await request.body()

    if cfg.github_webhook_secret:
        signature = request.headers.get(SIGNATURE_HEADER, "")
        if not verify_signature(cfg.github_webhook_secret, body, signature):
            logger.warning(f"Rejected {x_github_event} delivery with invalid signature")
            raise HTTPException(status_code=401, detail="Invalid webhook signature")

    if x_github_event == "ping":
        return {"status": "pong"}

    try:
        payload = json.loads(body or b"{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Payload is not valid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Payload must be a JSON object")

    try:
        return await run_in_threadpool(handle_event, x_github_event, payload, cfg)
    except PipelineError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ReconcileError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to handle {x_github_event} event: {e}")
        raise HTTPException(status_code=500, detail=str(e))
