"""
Agent Routes - Manual trigger and health

Provides endpoints:
- GET /run-now - Run protection for every connected user and show the summary
- GET /health - Scheduler state and connected user count
"""

import html
from datetime import datetime

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from burnout_guard import __version__

router = APIRouter()


@router.get("/run-now")
async def run_now(request: Request):
    """Run the agent immediately and render the per-user report."""
    scheduler = request.app.state.scheduler
    aggregate = await scheduler.run_now(trigger="manual")

    summary = html.escape("\n".join(aggregate.summary_lines()))
    return HTMLResponse(content=f"<h1>Agent Manual Run</h1><pre>{summary}</pre>")


@router.get("/health")
async def health(request: Request):
    """Health check."""
    state = request.app.state
    startup_time = getattr(state, "startup_time", None)
    uptime = (datetime.now() - startup_time).total_seconds() if startup_time else 0

    return {
        "status": "healthy",
        "version": __version__,
        "uptime_seconds": int(uptime),
        "connected_users": len(state.user_store.load()),
        "scheduler": state.scheduler.get_status(),
        "descope_configured": not state.credentials.missing(),
    }
