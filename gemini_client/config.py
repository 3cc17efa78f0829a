"""
Default hosts and request settings for the Gemini APIs.

Hosts can be overridden with the ``GEMINI_API_BASE_URL`` and ``GEMINI_WS_URL``
environment variables when no explicit URI is passed to a client.
"""
from typing import Dict, Optional
import os

API_URL = "https://api.gemini.com"
SANDBOX_API_URL = "https://api.sandbox.gemini.com"
WS_URL = "wss://api.gemini.com"
SANDBOX_WS_URL = "wss://api.sandbox.gemini.com"

DEFAULT_SYMBOL = "btcusd"
API_LIMIT = 500
# Seconds
DEFAULT_TIMEOUT = 10

HEADERS: Dict[str, str] = {
    "User-Agent": "gemini-python-client",
    "Content-Type": "application/json",
    "Accept": "application/json",
    "Content-Length": "0",
    "Cache-Control": "no-cache",
}


def resolve_api_url(sandbox: bool = False, api_uri: Optional[str] = None) -> str:
    """
    Pick the REST host for a client.

    Args:
        sandbox: Use the sandbox host instead of production
        api_uri: Explicit host, takes precedence over everything else

    Returns:
        Base URL without a trailing slash
    """
    if api_uri:
        return api_uri.rstrip("/")
    default = SANDBOX_API_URL if sandbox else API_URL
    return os.getenv("GEMINI_API_BASE_URL", default).rstrip("/")


def resolve_ws_url(sandbox: bool = False, ws_uri: Optional[str] = None) -> str:
    """
    Pick the WebSocket host for a client.

    Args:
        sandbox: Use the sandbox host instead of production
        ws_uri: Explicit host, takes precedence over everything else

    Returns:
        Base URL without a trailing slash
    """
    if ws_uri:
        return ws_uri.rstrip("/")
    default = SANDBOX_WS_URL if sandbox else WS_URL
    return os.getenv("GEMINI_WS_URL", default).rstrip("/")
