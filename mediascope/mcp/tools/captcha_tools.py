"""
Captcha MCP tool.

    solve_captcha()  → CaptchaResolutionLoop.run()

The loop only waits: it never clicks the widget. A timeout is a normal
outcome (solved: false, state: timed_out), not an error.
"""

from __future__ import annotations

import logging
from typing import Any

from mediascope.browser.captcha import CAPTCHA_SIGNATURES, CaptchaResolutionLoop
from mediascope.exceptions import InvalidArgumentError
from mediascope.mcp.tools.base import browser_tool, dump, resolve_manager

logger = logging.getLogger(__name__)

CAPTCHA_TYPES = ("auto", *(s.provider for s in CAPTCHA_SIGNATURES))


@browser_tool("solve_captcha", soft=True)
async def solve_captcha(
    type: str = "auto",
    timeout: int = 30000,
    *,
    _manager: Any = None,
) -> str:
    """
    Wait for a captcha or challenge page to resolve.

    Args:
        type: auto, turnstile, recaptcha, or hcaptcha.
        timeout: Polling budget in milliseconds.
        _manager: Injected SessionManager (for testing/DI).

    Returns:
        JSON string with state, solved, provider, attempts, elapsed_ms.
    """
    manager = resolve_manager(_manager)
    session = manager.require_active()
    if type not in CAPTCHA_TYPES:
        raise InvalidArgumentError(f"Unknown captcha type: {type}", argument="type")

    loop = CaptchaResolutionLoop(
        session.page,
        evaluator=manager.evaluator,
        notifier=manager.notifier,
        interval=session.config.captcha_interval,
    )
    result = await loop.run(timeout_ms=timeout, provider=type)
    logger.info(
        "captcha_loop_finished",
        extra={"status": result.state.value, "count": result.attempts},
    )
    return dump({"success": True, **result.to_dict()})
