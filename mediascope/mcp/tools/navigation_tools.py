"""
Navigation MCP tools.

    navigate()         → page.goto()
    wait()             → selector / load-state / fixed waits
    redirect_tracer()  → follows a URL on a scratch page, recording 3xx hops
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError

from mediascope.exceptions import InvalidArgumentError
from mediascope.mcp.tools.base import browser_tool, dump, resolve_manager, timeout_guard

logger = logging.getLogger(__name__)

_WAIT_UNTIL = {
    "load": "load",
    "domcontentloaded": "domcontentloaded",
    "networkidle": "networkidle",
    "networkidle0": "networkidle",
    "networkidle2": "networkidle",
    "commit": "commit",
}

DEFAULT_FIXED_WAIT_MS = 3000


@browser_tool("navigate")
async def navigate(
    url: str,
    wait_until: str = "load",
    timeout: int = 30000,
    *,
    _manager: Any = None,
) -> str:
    """
    Navigate the page to a URL.

    Args:
        url: Destination URL.
        wait_until: load, domcontentloaded, networkidle, or commit.
        timeout: Navigation budget in milliseconds.
        _manager: Injected SessionManager (for testing/DI).

    Returns:
        JSON string with the final URL, title, and HTTP status.
    """
    session = resolve_manager(_manager).require_active()
    state = _WAIT_UNTIL.get(wait_until)
    if state is None:
        raise InvalidArgumentError(f"Unknown wait_until: {wait_until}", argument="wait_until")

    logger.info("navigate_started", extra={"url": url})
    with timeout_guard(url, timeout):
        response = await session.page.goto(url, wait_until=state, timeout=timeout)

    return dump({
        "success": True,
        "url": session.page.url,
        "title": await session.page.title(),
        "status": response.status if response is not None else None,
    })


@browser_tool("wait")
async def wait(
    type: str = "selector",
    value: Optional[str] = None,
    timeout: int = 30000,
    *,
    _manager: Any = None,
) -> str:
    """
    Wait for a condition.

    Args:
        type: selector (value is a CSS selector), navigation (page load),
            networkidle, or timeout (value is milliseconds, default 3000).
        value: Selector or milliseconds, depending on type.
        timeout: Budget for selector/navigation/networkidle waits.
        _manager: Injected SessionManager (for testing/DI).
    """
    page = resolve_manager(_manager).require_active().page

    if type == "selector":
        if not value:
            raise InvalidArgumentError("wait type 'selector' needs a value", argument="value")
        with timeout_guard(value, timeout):
            await page.wait_for_selector(value, timeout=timeout)
    elif type == "navigation":
        with timeout_guard("navigation", timeout):
            await page.wait_for_load_state("load", timeout=timeout)
    elif type == "networkidle":
        with timeout_guard("network idle", timeout):
            await page.wait_for_load_state("networkidle", timeout=timeout)
    elif type == "timeout":
        try:
            delay_ms = int(value) if value else DEFAULT_FIXED_WAIT_MS
        except ValueError:
            raise InvalidArgumentError(
                f"wait type 'timeout' needs milliseconds, got {value!r}", argument="value",
            ) from None
        await asyncio.sleep(delay_ms / 1000)
    else:
        raise InvalidArgumentError(f"Unknown wait type: {type}", argument="type")

    return dump({"success": True, "type": type, "value": value})


@browser_tool("redirect_tracer", soft=True)
async def redirect_tracer(
    url: str,
    max_redirects: int = 10,
    *,
    _manager: Any = None,
) -> str:
    """
    Follow a URL's redirect chain on a separate page.

    The working page is left untouched. Failures are reported with the
    hops recorded so far.

    Args:
        url: Starting URL.
        max_redirects: Most hops returned.
        _manager: Injected SessionManager (for testing/DI).

    Returns:
        JSON string with redirects [{from, to, status}] and final_url.
    """
    session = resolve_manager(_manager).require_active()
    redirects: list[dict[str, Any]] = []

    def on_response(response: Any) -> None:
        if 300 <= response.status < 400:
            redirects.append({
                "from": response.url,
                "to": response.headers.get("location"),
                "status": response.status,
            })

    trace_page = await session.context.new_page()
    trace_page.on("response", on_response)
    try:
        await trace_page.goto(url, wait_until="domcontentloaded")
        final_url = trace_page.url
    except PlaywrightError as e:
        logger.warning("redirect_trace_failed", extra={"url": url, "error": str(e)})
        return dump({
            "success": False,
            "error": str(e),
            "redirects": redirects[:max_redirects],
            "count": len(redirects[:max_redirects]),
        })
    finally:
        try:
            await trace_page.close()
        except PlaywrightError as e:
            logger.debug("redirect_page_close_failed", extra={"error": str(e)})

    hops = redirects[:max_redirects]
    return dump({
        "success": True,
        "original_url": url,
        "final_url": final_url,
        "redirects": hops,
        "count": len(hops),
    })
