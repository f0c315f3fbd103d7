"""
Frame enumeration and the "current frame" pointer.

The pointer lives on the BrowserSession as a weak reference; this module
resolves, validates, and clears it.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from mediascope.browser.session import BrowserSession
from mediascope.exceptions import FrameNotFoundError, NoFrameSelectedError

logger = logging.getLogger(__name__)


def describe_frame(index: int, frame: Any) -> dict[str, Any]:
    return {"index": index, "name": frame.name, "url": frame.url}


class FrameContextTracker:
    """
    Lists the page's frames and manages the current-frame pointer.

    Args:
        session: The live browser session.
    """

    def __init__(self, session: BrowserSession) -> None:
        self.session = session

    def list(self) -> list[dict[str, Any]]:
        """Every frame in document order, the main frame first."""
        return [
            describe_frame(i, frame)
            for i, frame in enumerate(self.session.page.frames)
        ]

    async def switch(
        self,
        index: Optional[int] = None,
        selector: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Select a frame by numeric index or by the iframe element matching
        `selector`.

        Raises:
            FrameNotFoundError: If neither resolves to a live frame.
        """
        frames = self.session.page.frames
        frame = None
        resolved_index = None

        if index is not None and 0 <= index < len(frames):
            frame = frames[index]
            resolved_index = index
        elif selector:
            element = await self.session.page.query_selector(selector)
            if element is not None:
                frame = await element.content_frame()
            if frame is not None:
                resolved_index = next(
                    (i for i, f in enumerate(frames) if f is frame), None,
                )

        if frame is None:
            raise FrameNotFoundError(
                f"Frame not found (index={index}, selector={selector})",
                index=index,
                selector=selector,
            )

        self.session.set_current_frame(frame)
        logger.info(
            "frame_switched",
            extra={"frame_index": resolved_index, "url": frame.url},
        )
        return {"index": resolved_index, "name": frame.name, "url": frame.url}

    def current(self) -> Optional[Any]:
        """The selected frame if it is still valid, else None."""
        return self.session.current_frame()

    def require_current(self) -> Any:
        frame = self.current()
        if frame is None:
            raise NoFrameSelectedError()
        return frame

    async def content(self) -> dict[str, Any]:
        """
        Document markup of the current frame.

        Raises:
            NoFrameSelectedError: If no valid frame is selected.
        """
        frame = self.require_current()
        html = await frame.content()
        return {"url": frame.url, "content": html, "length": len(html)}

    def exit(self) -> None:
        self.session.clear_current_frame()
