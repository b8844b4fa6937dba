"""
OAuth Routes - Descope sign-in for connecting a Google Calendar

Provides endpoints:
- GET /auth - Start Google OAuth through Descope
- GET /callback - Exchange the code and register the user
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

logger = logging.getLogger(__name__)

router = APIRouter()


WELCOME_HTML = """
<h1>Welcome to Intelligent Burnout Protection Agent! 🔥</h1>
<p>Your calendar is now connected. The agent will now run automatically in the background.</p>
<p>To test it, create events like "Study", "Meeting", or work past 7 PM in your Google Calendar.</p>
<p>You can close this window.</p>
"""


def _callback_url(request: Request) -> str:
    return str(request.url_for("oauth_callback"))


@router.get("/auth")
async def start_auth(request: Request):
    """Redirect the browser to the Google consent screen."""
    client = request.app.state.descope_client
    try:
        url = await client.start_oauth(_callback_url(request))
    except Exception as e:
        logger.error(f"Auth initiation failed: {e}")
        return PlainTextResponse(f"Auth initiation failed: {e}", status_code=500)

    return RedirectResponse(url, status_code=302)


@router.get("/callback", name="oauth_callback")
async def oauth_callback(request: Request, code: str | None = None):
    """
    Handle the OAuth callback.

    Exchanges the code for a Descope session and adds the user to the
    connected users if new.
    """
    client = request.app.state.descope_client
    user_store = request.app.state.user_store
    try:
        if not code:
            raise ValueError("No authorization code received")

        user_id = await client.exchange_code(code)
        user_store.add(user_id)
    except Exception as e:
        logger.error(f"Authentication failed: {e}")
        return PlainTextResponse(f"Authentication failed: {e}", status_code=500)

    return HTMLResponse(content=WELCOME_HTML)
