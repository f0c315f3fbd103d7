"""
Captcha resolution loop.

Observes a page until a challenge resolves on its own (Turnstile in
managed mode, a human solving it in a visible window, ...). It never
interacts with the widget: it polls for known widget signatures and
for a populated hidden response field, then reports the final state.

States:
    POLLING            nothing detected yet
    DETECTED_UNSOLVED  a widget or challenge page is present
    SOLVED             a response field carries a value
    TIMED_OUT          the budget elapsed without a solved signal
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError

from mediascope.browser.evaluator import RetryableEvaluator
from mediascope.progress.notifier import ProgressNotifier

logger = logging.getLogger(__name__)


class CaptchaState(str, Enum):
    POLLING = "polling"
    DETECTED_UNSOLVED = "detected_unsolved"
    SOLVED = "solved"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class CaptchaSignature:
    provider: str
    widget_selector: str
    response_selector: str

    def to_js(self) -> dict[str, str]:
        return {
            "provider": self.provider,
            "widget": self.widget_selector,
            "response": self.response_selector,
        }


CAPTCHA_SIGNATURES = [
    CaptchaSignature(
        "turnstile",
        ".cf-turnstile, #cf-turnstile, [data-turnstile-sitekey]",
        'input[name="cf-turnstile-response"]',
    ),
    CaptchaSignature(
        "recaptcha",
        ".g-recaptcha, #g-recaptcha-response",
        "#g-recaptcha-response",
    ),
    CaptchaSignature(
        "hcaptcha",
        ".h-captcha, [data-hcaptcha-sitekey]",
        '[name="h-captcha-response"]',
    ),
]

CHALLENGE_TITLE_MARKERS = ["challenge", "verifying", "security check"]

# A solved response is reported even without a visible widget, since
# some providers remove the widget once they are done.
INSPECT_JS = """
([signatures, titleMarkers]) => {
    for (const sig of signatures) {
        const response = document.querySelector(sig.response);
        if (response && response.value) {
            return {provider: sig.provider, detected: true, solved: true};
        }
    }
    for (const sig of signatures) {
        if (document.querySelector(sig.widget)) {
            return {provider: sig.provider, detected: true, solved: false};
        }
    }
    const title = (document.title || '').toLowerCase();
    if (titleMarkers.some(m => title.includes(m))) {
        return {provider: 'challenge', detected: true, solved: false};
    }
    return null;
}
"""


@dataclass
class CaptchaResult:
    state: CaptchaState
    provider: Optional[str] = None
    attempts: int = 0
    elapsed_ms: int = 0
    history: list[str] = field(default_factory=list)
    last_error: Optional[str] = None

    @property
    def solved(self) -> bool:
        return self.state == CaptchaState.SOLVED

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "solved": self.solved,
            "provider": self.provider or "none",
            "attempts": self.attempts,
            "elapsed_ms": self.elapsed_ms,
            "last_error": self.last_error,
        }


class CaptchaResolutionLoop:
    """
    Polls a page until a challenge is solved or the budget runs out.

    Args:
        page: Playwright Page (or Frame) to inspect.
        evaluator: Runs the inspection script.
        notifier: Receives periodic progress notifications.
        interval: Seconds between polls.
        clock: Monotonic clock, injectable for tests.
        sleep: Awaitable sleep, injectable for tests.
    """

    TOOL_NAME = "solve_captcha"
    NOTIFY_EVERY = 10

    def __init__(
        self,
        page: Any,
        evaluator: Optional[RetryableEvaluator] = None,
        notifier: Optional[ProgressNotifier] = None,
        interval: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.page = page
        self.evaluator = evaluator or RetryableEvaluator()
        self.notifier = notifier or ProgressNotifier()
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self.state = CaptchaState.POLLING

    def _signatures(self, provider: str) -> list[dict[str, str]]:
        if provider == "auto":
            return [s.to_js() for s in CAPTCHA_SIGNATURES]
        return [s.to_js() for s in CAPTCHA_SIGNATURES if s.provider == provider]

    async def inspect(self, provider: str = "auto") -> Optional[dict[str, Any]]:
        """Single observation of the page."""
        return await self.evaluator.evaluate(
            self.page, INSPECT_JS, [self._signatures(provider), CHALLENGE_TITLE_MARKERS],
        )

    def _transition(self, result: CaptchaResult, state: CaptchaState) -> None:
        if self.state != state:
            logger.info(
                "captcha_state_changed",
                extra={"status": state.value, "provider": result.provider},
            )
            result.history.append(state.value)
        self.state = state
        result.state = state

    async def run(self, timeout_ms: int = 30000, provider: str = "auto") -> CaptchaResult:
        """
        Poll until solved or timed out.

        Args:
            timeout_ms: Polling budget.
            provider: "auto" or one of turnstile/recaptcha/hcaptcha.
        """
        budget = timeout_ms / 1000.0
        start = self._clock()
        self.state = CaptchaState.POLLING
        result = CaptchaResult(state=CaptchaState.POLLING, history=[CaptchaState.POLLING.value])

        while self._clock() - start < budget:
            result.attempts += 1
            try:
                observed = await self.inspect(provider)
            except PlaywrightError as e:
                # Page navigating or gone; keep polling within the budget.
                result.last_error = str(e)
                logger.warning(
                    "captcha_inspect_failed",
                    extra={"attempt": result.attempts, "error": str(e)},
                )
                observed = None

            if observed:
                result.provider = observed.get("provider")
                if observed.get("solved"):
                    self._transition(result, CaptchaState.SOLVED)
                    break
                self._transition(result, CaptchaState.DETECTED_UNSOLVED)
                if result.attempts % self.NOTIFY_EVERY == 0:
                    self.notifier.notify(
                        self.TOOL_NAME,
                        "progress",
                        f"Still waiting on {result.provider}... ({result.attempts} checks)",
                        attempts=result.attempts,
                    )

            await self._sleep(self.interval)
        else:
            self._transition(result, CaptchaState.TIMED_OUT)

        result.elapsed_ms = int((self._clock() - start) * 1000)
        return result
