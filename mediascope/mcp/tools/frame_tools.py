"""
Frame MCP tool.

    iframe_handler()  → FrameContextTracker list / switch / content / exit

After a switch, the content tools (get_content, find_element,
search_regex, js_scrape, execute_js) read from the selected frame until
exit, a main-frame navigation, or the frame detaching.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from mediascope.browser.frames import FrameContextTracker
from mediascope.exceptions import InvalidArgumentError
from mediascope.mcp.tools.base import browser_tool, dump, resolve_manager

logger = logging.getLogger(__name__)


@browser_tool("iframe_handler")
async def iframe_handler(
    action: str = "list",
    index: Optional[int] = None,
    selector: Optional[str] = None,
    *,
    _manager: Any = None,
) -> str:
    """
    Inspect and select frames.

    Args:
        action: list, switch, content, or exit.
        index: Frame index for switch (0 is the main frame).
        selector: iframe element selector for switch, used when index
            is missing or out of range.
        _manager: Injected SessionManager (for testing/DI).
    """
    tracker = FrameContextTracker(resolve_manager(_manager).require_active())

    if action == "list":
        frames = tracker.list()
        return dump({"success": True, "count": len(frames), "frames": frames})
    if action == "switch":
        current = await tracker.switch(index=index, selector=selector)
        return dump({"success": True, "current": current})
    if action == "content":
        return dump({"success": True, **await tracker.content()})
    if action == "exit":
        tracker.exit()
        return dump({"success": True, "current": None})
    raise InvalidArgumentError(f"Unknown action: {action}", argument="action")
