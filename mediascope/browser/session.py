"""
Browser session lifecycle for mediascope.

One SessionManager owns at most one live BrowserSession: the Playwright
driver, the browser, its context, and the single working page. Every
component receives the manager (or the session it resolves) instead of
reaching for module globals.

Architecture:
    SessionManager
    +-- BrowserSession (playwright, browser, context, page, config)
    |   +-- weak current-frame pointer (see frames.FrameContextTracker)
    +-- NetworkRecorder (listeners attached once per page)
    +-- RetryableEvaluator
    +-- ProgressNotifier
    +-- ProgressTracker (named tasks; outlives browser sessions)

Usage:
    manager = SessionManager()
    session = await manager.init(BrowserConfig(headless=True))
    await session.page.goto("https://example.com")
    await manager.close()
"""

from __future__ import annotations

import logging
import time
import weakref
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlparse

from mediascope.browser.config import BrowserConfig
from mediascope.browser.evaluator import RetryableEvaluator
from mediascope.browser.network import NetworkRecorder
from mediascope.exceptions import BrowserLaunchError, NotInitializedError
from mediascope.progress.notifier import ProgressNotifier
from mediascope.progress.tracker import ProgressTracker

logger = logging.getLogger(__name__)

Launcher = Callable[[], Awaitable[Any]]


async def _start_playwright() -> Any:
    from playwright.async_api import async_playwright

    return await async_playwright().start()


@dataclass
class BrowserSession:
    """
    The live browser state shared by every tool call.

    The current frame is held through a weak reference together with the
    navigation epoch it was selected in, so a detached frame or a page
    navigation invalidates it without any explicit event.
    """

    playwright: Any
    browser: Any
    context: Any
    page: Any
    config: BrowserConfig
    started_at: float = field(default_factory=time.time)
    navigation_epoch: int = 0
    _frame_ref: Optional[weakref.ref] = None
    _frame_epoch: int = -1

    def set_current_frame(self, frame: Any) -> None:
        self._frame_ref = weakref.ref(frame)
        self._frame_epoch = self.navigation_epoch

    def clear_current_frame(self) -> None:
        self._frame_ref = None
        self._frame_epoch = -1

    def current_frame(self) -> Optional[Any]:
        """The selected frame, or None if unset or no longer valid."""
        if self._frame_ref is None:
            return None
        frame = self._frame_ref()
        if frame is None or self._frame_epoch != self.navigation_epoch:
            self.clear_current_frame()
            return None
        try:
            detached = frame.is_detached()
        except Exception:
            detached = True
        if detached:
            self.clear_current_frame()
            return None
        return frame

    def describe(self) -> dict[str, Any]:
        return {
            "headless": self.config.headless,
            "proxy": self.config.proxy.server if self.config.proxy else None,
            "turnstile": self.config.turnstile_mode,
            "blocker": self.config.blocker_enabled,
            "user_agent": self.config.user_agent,
        }


class SessionManager:
    """
    Owns the browser/page lifecycle.

    Args:
        config: Default config used when `init` gets none.
        recorder: Network recorder attached to every new page.
        notifier: Progress notifier shared by all tools.
        launcher: Coroutine factory returning a started Playwright driver.
    """

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        recorder: Optional[NetworkRecorder] = None,
        notifier: Optional[ProgressNotifier] = None,
        launcher: Optional[Launcher] = None,
    ) -> None:
        self.config = config or BrowserConfig.from_env()
        self.recorder = recorder or NetworkRecorder(limit=self.config.network_record_limit)
        self.notifier = notifier or ProgressNotifier()
        self.tracker = ProgressTracker(self.notifier)
        self.evaluator = RetryableEvaluator(self.config.evaluate_retry_backoff)
        self._launcher = launcher or _start_playwright
        self._session: Optional[BrowserSession] = None

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def init(self, config: Optional[BrowserConfig] = None) -> BrowserSession:
        """
        Launch the browser and open the working page.

        An existing session is closed first so at most one is ever live.

        Raises:
            BrowserLaunchError: If the engine fails to start.
        """
        if self._session is not None:
            logger.info("browser_session_replaced")
            await self.close(force=True)

        config = config or self.config
        playwright = None
        try:
            playwright = await self._launcher()
            browser = await playwright.chromium.launch(**config.to_launch_kwargs())
            context = await browser.new_context(**config.to_context_kwargs())
            if config.blocker_enabled and config.blocked_hosts:
                await context.route("**/*", self._make_blocker(config.blocked_hosts))
            page = await context.new_page()
            page.set_default_timeout(config.selector_timeout_ms)
            page.set_default_navigation_timeout(config.navigation_timeout_ms)
        except Exception as e:
            logger.error(
                "browser_session_start_failed",
                extra={"error": str(e), "headless": config.headless},
            )
            if playwright is not None:
                try:
                    await playwright.stop()
                except Exception as stop_error:
                    logger.warning(
                        "playwright_stop_warning", extra={"error": str(stop_error)},
                    )
            raise BrowserLaunchError(
                f"Failed to launch browser: {e}", headless=config.headless,
            ) from e

        session = BrowserSession(
            playwright=playwright,
            browser=browser,
            context=context,
            page=page,
            config=config,
        )
        self.config = config
        self.evaluator.backoff_seconds = config.evaluate_retry_backoff
        self.recorder.limit = config.network_record_limit
        self.recorder.recording = False
        self.recorder.clear()
        self._attach_listeners(session)
        self._session = session

        logger.info("browser_session_started", extra=session.describe())
        return session

    async def close(self, force: bool = False) -> bool:
        """
        Tear down the browser and clear the session.

        Args:
            force: Close every open page first, ignoring per-page errors.

        Returns:
            True if a session was closed, False if none was active.
        """
        session = self._session
        if session is None:
            return False

        if force:
            for context in list(session.browser.contexts):
                for page in list(context.pages):
                    try:
                        await page.close()
                    except Exception as e:
                        logger.debug("page_close_ignored", extra={"error": str(e)})

        try:
            await session.browser.close()
            await session.playwright.stop()
        except Exception as e:
            logger.warning("browser_session_close_warning", extra={"error": str(e)})
        finally:
            session.clear_current_frame()
            self.recorder.recording = False
            self._session = None

        logger.info(
            "browser_session_closed",
            extra={"duration_ms": int((time.time() - session.started_at) * 1000)},
        )
        return True

    def require_active(self) -> BrowserSession:
        """
        Return the live session.

        Raises:
            NotInitializedError: If `init` has not been called.
        """
        if self._session is None:
            raise NotInitializedError()
        return self._session

    @property
    def is_active(self) -> bool:
        return self._session is not None

    # ─── Internals ───────────────────────────────────────────────────

    def _attach_listeners(self, session: BrowserSession) -> None:
        page = session.page
        self.recorder.attach(page)

        def on_frame_navigated(frame: Any) -> None:
            if frame is page.main_frame:
                session.navigation_epoch += 1

        page.on("framenavigated", on_frame_navigated)

    @staticmethod
    def _make_blocker(blocked_hosts: list[str]) -> Callable[[Any], Awaitable[None]]:
        suffixes = tuple(h.lower() for h in blocked_hosts)

        async def handle(route: Any) -> None:
            host = (urlparse(route.request.url).hostname or "").lower()
            if any(host == s or host.endswith("." + s) for s in suffixes):
                await route.abort()
            else:
                await route.continue_()

        return handle

    def __repr__(self) -> str:
        return f"SessionManager(active={self.is_active})"


_manager_instance: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    """Get or create the process-wide SessionManager."""
    global _manager_instance
    if _manager_instance is None:
        _manager_instance = SessionManager()
    return _manager_instance
