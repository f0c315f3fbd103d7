"""
Custom exception hierarchy for mediascope.

Every failure a tool can raise derives from MediascopeError, so the
tool layer can catch one type and still report the precise category:
- Session lifecycle errors (no session, launch failure)
- Wait budget errors (selector/navigation timeouts)
- Resolution errors (element, frame, current-frame pointer)
- Artifact errors (downloads)
- In-page script errors

Usage:
    from mediascope.exceptions import ElementNotFoundError

    try:
        result = await locator.locate("#player")
    except ElementNotFoundError as e:
        logger.warning("locate_failed", extra={"tried": e.tried})
"""

from __future__ import annotations

from typing import Optional


class MediascopeError(Exception):
    """
    Base exception for all mediascope errors.

    Catch `MediascopeError` to handle any failure raised by a browser
    component or tool.
    """

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        """Error payload: message, type name, keyword attributes, details."""
        payload = {"error": str(self), "error_type": type(self).__name__}
        payload.update(
            {k: v for k, v in vars(self).items() if k != "details" and v is not None}
        )
        payload.update(self.details)
        return payload


# ── Session Errors ────────────────────────────────────────────────


class NotInitializedError(MediascopeError):
    """Raised when an operation needs a browser session and none is active."""

    def __init__(
        self,
        message: str = "Browser not initialized. Call browser_init first.",
        *,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)


class BrowserLaunchError(MediascopeError):
    """
    Raised when the browser engine cannot be started.

    Examples:
    - Chromium binary missing (playwright install was never run)
    - Invalid proxy configuration rejected at launch
    """

    def __init__(
        self,
        message: str,
        *,
        headless: Optional[bool] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.headless = headless


# ── Wait Budget Errors ────────────────────────────────────────────


class BrowserTimeoutError(MediascopeError):
    """
    Raised when a selector or navigation wait exceeds its budget.

    Named to avoid shadowing the builtin TimeoutError.
    """

    def __init__(
        self,
        message: str,
        *,
        timeout_ms: Optional[int] = None,
        target: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.timeout_ms = timeout_ms
        self.target = target


# ── Resolution Errors ─────────────────────────────────────────────


class ElementNotFoundError(MediascopeError):
    """Raised once every candidate selector has been tried without a match."""

    def __init__(
        self,
        message: str,
        *,
        selector: Optional[str] = None,
        tried: Optional[list[str]] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.selector = selector
        self.tried = tried or []


class FrameNotFoundError(MediascopeError):
    """Raised when neither an index nor a selector resolves to a frame."""

    def __init__(
        self,
        message: str,
        *,
        index: Optional[int] = None,
        selector: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.index = index
        self.selector = selector


class NoFrameSelectedError(MediascopeError):
    """Raised when a frame operation needs a current frame and none is set."""

    def __init__(
        self,
        message: str = "No frame selected. Use iframe_handler switch first.",
        *,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)


# ── Artifact Errors ───────────────────────────────────────────────


class DownloadError(MediascopeError):
    """Raised when no capture strategy produced any bytes."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        strategies: Optional[list[str]] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.url = url
        self.strategies = strategies or []


# ── Script Errors ─────────────────────────────────────────────────


class ExecutionError(MediascopeError):
    """Raised when a caller-supplied script throws inside the page."""

    def __init__(
        self,
        message: str,
        *,
        script: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.script = script


class InvalidArgumentError(MediascopeError):
    """Raised when a tool receives an unknown action or a missing value."""

    def __init__(
        self,
        message: str,
        *,
        argument: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.argument = argument
