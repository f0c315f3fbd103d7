"""
In-page script evaluation with a single retry on context invalidation.

When a document navigates while a script is running, Playwright reports
that the execution context was destroyed. The evaluator waits a fixed
backoff and re-runs the script exactly once; any other failure, or a
second failure, propagates unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from playwright.async_api import Error as PlaywrightError

logger = logging.getLogger(__name__)

_CONTEXT_DESTROYED_MARKERS = (
    "Execution context was destroyed",
    "Cannot find context with specified id",
)


def is_context_destroyed(error: BaseException) -> bool:
    """True if the engine reported that the script's document went away."""
    message = str(error)
    return any(marker in message for marker in _CONTEXT_DESTROYED_MARKERS)


class RetryableEvaluator:
    """
    Runs scripts against a page or frame.

    Args:
        backoff_seconds: Wait before the single retry.
    """

    def __init__(self, backoff_seconds: float = 1.0) -> None:
        self.backoff_seconds = backoff_seconds

    async def evaluate(self, target: Any, script: str, arg: Any = None) -> Any:
        """
        Evaluate `script` in `target` (a Playwright Page or Frame).

        Args:
            target: Object exposing an async `evaluate(expression, arg)`.
            script: A JS function or expression.
            arg: Optional serializable argument passed to the function.
        """
        try:
            return await self._call(target, script, arg)
        except PlaywrightError as e:
            if not is_context_destroyed(e):
                raise
            logger.info(
                "evaluate_context_destroyed_retrying",
                extra={"backoff_seconds": self.backoff_seconds},
            )
            await asyncio.sleep(self.backoff_seconds)
            return await self._call(target, script, arg)

    @staticmethod
    async def _call(target: Any, script: str, arg: Any) -> Any:
        if arg is None:
            return await target.evaluate(script)
        return await target.evaluate(script, arg)
