"""
Shared plumbing for mediascope MCP tools.

Every tool is wrapped with @browser_tool("name"), which:
- tags the call with a call_id for log correlation
- logs `mcp_tool_called`
- emits `started` and `completed`/`error` progress notifications
- for soft tools, converts a MediascopeError, a Playwright engine
  error, or a filesystem error into a {"success": false, "error": ...}
  payload instead of raising

Hard tools (navigation, clicking, typing, ...) let errors propagate so
the MCP layer reports them as tool errors.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from mediascope.browser.session import SessionManager, get_session_manager
from mediascope.exceptions import BrowserTimeoutError, MediascopeError
from mediascope.observability.logging_config import clear_call_id, set_call_id

logger = logging.getLogger(__name__)

# Failures a soft tool reports as a payload alongside MediascopeError.
SOFT_ENGINE_ERRORS = (PlaywrightError, OSError)


def resolve_manager(manager: Optional[SessionManager] = None) -> SessionManager:
    """Injected manager for tests, else the process-wide one."""
    return manager if manager is not None else get_session_manager()


def dump(payload: dict[str, Any]) -> str:
    """Serialize a tool result."""
    return json.dumps(payload, indent=2, default=str)


def _manager_from(kwargs: dict[str, Any]) -> SessionManager:
    return resolve_manager(kwargs.get("_manager"))


def browser_tool(tool_name: str, *, soft: bool = False) -> Callable:
    """
    Decorator for async tool functions returning a JSON string.

    Args:
        tool_name: Name used in logs and progress notifications.
        soft: Return a failure payload instead of raising for
            MediascopeError and for SOFT_ENGINE_ERRORS.
    """

    def decorator(func: Callable) -> Callable:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"Tool '{tool_name}' must be async")

        func._tool_name = tool_name
        func._soft_failure = soft

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> str:
            notifier = _manager_from(kwargs).notifier
            set_call_id(uuid.uuid4().hex[:12])
            started = time.monotonic()
            logger.info("mcp_tool_called", extra={"tool_name": tool_name})
            notifier.notify(tool_name, "started", f"{tool_name} started")
            try:
                output = await func(*args, **kwargs)
            except MediascopeError as e:
                notifier.notify(
                    tool_name, "error", str(e), error_type=type(e).__name__,
                )
                if not soft:
                    raise
                return dump({"success": False, **e.to_dict()})
            except SOFT_ENGINE_ERRORS as e:
                notifier.notify(tool_name, "error", str(e), error_type=type(e).__name__)
                if not soft:
                    raise
                logger.warning(
                    "mcp_tool_engine_error",
                    extra={"tool_name": tool_name, "error": str(e)},
                )
                return dump({"success": False, "error": str(e), "error_type": type(e).__name__})
            except Exception as e:
                notifier.notify(tool_name, "error", str(e), error_type=type(e).__name__)
                raise
            finally:
                logger.debug(
                    "mcp_tool_finished",
                    extra={
                        "tool_name": tool_name,
                        "duration_ms": int((time.monotonic() - started) * 1000),
                    },
                )
                clear_call_id()
            notifier.notify(tool_name, "completed", f"{tool_name} completed")
            return output

        return wrapper

    return decorator


def is_soft_tool(func: Callable) -> bool:
    """True if the tool reports failures as a payload instead of raising."""
    return getattr(func, "_soft_failure", False)


def get_tool_name(func: Callable) -> Optional[str]:
    return getattr(func, "_tool_name", None)


@contextmanager
def timeout_guard(target: str, timeout_ms: Optional[int]) -> Iterator[None]:
    """Translate Playwright wait timeouts into BrowserTimeoutError."""
    try:
        yield
    except PlaywrightTimeoutError as e:
        raise BrowserTimeoutError(
            f"Timed out after {timeout_ms}ms waiting for {target}",
            timeout_ms=timeout_ms,
            target=target,
        ) from e
