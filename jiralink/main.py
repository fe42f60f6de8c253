"""Main FastAPI application"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from jiralink import __version__
from jiralink.api import reconcile, webhooks
from jiralink.config import settings

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting JiraLink service")
    if not settings.jira_configured():
        logger.warning("Jira credentials are not configured; comments will not be posted")
    if not settings.github_webhook_secret:
        logger.warning("GITHUB_WEBHOOK_SECRET is not set; webhook signatures are not verified")
    yield
    logger.info("Stopping JiraLink service")


app = FastAPI(
    title="JiraLink",
    description="Link pull requests to Jira issues and keep a PR comment in sync",
    version=__version__,
    lifespan=lifespan,
)

# Include API routers
app.include_router(webhooks.router)
app.include_router(reconcile.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "JiraLink"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "jiralink.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
