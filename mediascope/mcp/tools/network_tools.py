"""
Network MCP tools.

    network_recorder()  → start / stop / get / clear the NetworkRecorder
    cookie_manager()    → get / set / delete / clear context cookies
    file_downloader()   → Downloader.download() (interception, then in-page fetch)
"""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from mediascope.browser.downloads import Downloader
from mediascope.exceptions import InvalidArgumentError
from mediascope.mcp.tools.base import browser_tool, dump, resolve_manager

logger = logging.getLogger(__name__)

COOKIE_TTL_SECONDS = 86400


@browser_tool("network_recorder")
async def network_recorder(
    action: str,
    url_pattern: Optional[str] = None,
    method: Optional[str] = None,
    resource_type: Optional[str] = None,
    *,
    _manager: Any = None,
) -> str:
    """
    Record requests and responses of the working page.

    Args:
        action: start (clears and begins), stop, get, or clear.
        url_pattern: For get, keep records whose URL matches this regex.
        method: For get, keep requests with this HTTP method.
        resource_type: For get, keep records of this type (xhr, media, ...).
        _manager: Injected SessionManager (for testing/DI).
    """
    manager = resolve_manager(_manager)
    manager.require_active()
    recorder = manager.recorder

    if action == "start":
        recorder.start()
        return dump({"success": True, "recording": True})
    if action == "stop":
        count = recorder.stop()
        return dump({"success": True, "recording": False, "count": count})
    if action == "get":
        try:
            found = recorder.get(url_pattern=url_pattern, method=method, resource_type=resource_type)
        except re.error as e:
            raise InvalidArgumentError(f"Invalid url_pattern: {e}", argument="url_pattern") from e
        return dump({"success": True, **found})
    if action == "clear":
        recorder.clear()
        return dump({"success": True, "count": 0})
    raise InvalidArgumentError(f"Unknown action: {action}", argument="action")


@browser_tool("cookie_manager")
async def cookie_manager(
    action: str,
    name: Optional[str] = None,
    value: Optional[str] = None,
    domain: Optional[str] = None,
    *,
    _manager: Any = None,
) -> str:
    """
    Manage cookies of the browser context.

    Args:
        action: get, set, delete, or clear.
        name: Cookie name (set/delete; filters get).
        value: Cookie value (set).
        domain: Cookie domain for set, default the current page host.
        _manager: Injected SessionManager (for testing/DI).
    """
    session = resolve_manager(_manager).require_active()
    context = session.context

    if action == "get":
        cookies = await context.cookies()
        if name:
            cookies = [c for c in cookies if c.get("name") == name]
        return dump({"success": True, "count": len(cookies), "cookies": cookies})

    if action == "set":
        if not name or value is None:
            raise InvalidArgumentError("set needs name and value", argument="name")
        cookie = {
            "name": name,
            "value": value,
            "domain": domain or urlparse(session.page.url).hostname or "",
            "path": "/",
            "expires": int(time.time()) + COOKIE_TTL_SECONDS,
        }
        await context.add_cookies([cookie])
        return dump({"success": True, "cookie": cookie})

    if action == "delete":
        if not name:
            raise InvalidArgumentError("delete needs name", argument="name")
        await context.clear_cookies(name=name)
        return dump({"success": True, "deleted": name})

    if action == "clear":
        await context.clear_cookies()
        return dump({"success": True, "cleared": True})

    raise InvalidArgumentError(f"Unknown action: {action}", argument="action")


@browser_tool("file_downloader", soft=True)
async def file_downloader(
    url: str,
    filename: Optional[str] = None,
    directory: Optional[str] = None,
    *,
    _manager: Any = None,
) -> str:
    """
    Download a URL through the browser session.

    Network interception is tried first; an in-page fetch is the
    fallback. Either way the page's cookies and referrer apply.

    Args:
        url: Resource URL.
        filename: Output name (default: last URL path segment).
        directory: Output directory (default: the configured downloads dir).
        _manager: Injected SessionManager (for testing/DI).

    Returns:
        JSON string with path, size, sha256, and the strategy that worked.
    """
    manager = resolve_manager(_manager)
    session = manager.require_active()
    config = session.config
    downloader = Downloader(
        session.page,
        manager.evaluator,
        attempts=config.download_attempts,
        poll_interval=config.download_poll_interval,
    )
    manager.notifier.notify("file_downloader", "progress", f"Downloading {url}", url=url)
    result = await downloader.download(
        url,
        Path(directory) if directory else config.downloads_dir,
        filename,
    )
    return dump({"success": True, **result.to_dict()})
