"""
Session lifecycle MCP tools.

    browser_init()   → SessionManager.init()
    browser_close()  → SessionManager.close()
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from mediascope.browser.config import BrowserConfig, ProxyConfig
from mediascope.mcp.tools.base import browser_tool, dump, resolve_manager

logger = logging.getLogger(__name__)


@browser_tool("browser_init")
async def browser_init(
    headless: Optional[bool] = None,
    proxy_host: Optional[str] = None,
    proxy_port: Optional[int] = None,
    turnstile: bool = True,
    enable_blocker: bool = True,
    *,
    _manager: Any = None,
) -> str:
    """
    Launch the browser and open a page. Replaces any existing session.

    Args:
        headless: Run without a window (defaults to the HEADLESS env var).
        proxy_host: Upstream proxy host.
        proxy_port: Upstream proxy port (required with proxy_host).
        turnstile: Wait for Cloudflare Turnstile to resolve on its own.
        enable_blocker: Abort requests to known ad and tracker hosts.
        _manager: Injected SessionManager (for testing/DI).

    Returns:
        JSON string with the effective session settings.
    """
    manager = resolve_manager(_manager)

    proxy = None
    if proxy_host and proxy_port:
        proxy = ProxyConfig(host=proxy_host, port=proxy_port)

    config = BrowserConfig.from_env(
        headless=headless,
        proxy=proxy,
        turnstile_mode=turnstile,
        blocker_enabled=enable_blocker,
    )
    session = await manager.init(config)
    return dump({
        "success": True,
        "message": "Browser initialized",
        **session.describe(),
    })


@browser_tool("browser_close")
async def browser_close(
    force: bool = False,
    *,
    _manager: Any = None,
) -> str:
    """
    Close the browser and clear the session.

    Args:
        force: Close every open page first, ignoring per-page errors.
        _manager: Injected SessionManager (for testing/DI).

    Returns:
        JSON string; `closed` is false if no session was open.
    """
    manager = resolve_manager(_manager)
    closed = await manager.close(force=force)
    return dump({
        "success": True,
        "closed": closed,
        "message": "Browser closed" if closed else "No browser was open",
    })
