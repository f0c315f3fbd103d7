"""
Tests for the captcha resolution loop.

Validates:
- Nothing detected until the budget runs out ends in TIMED_OUT
- Attempts track budget / interval under a fake clock
- A solved response field ends the loop early as SOLVED
- Detected-but-unsolved transitions and periodic notifications
- Provider filtering of the signatures sent to the page
- A failed inspection is recorded and polling continues
"""

from __future__ import annotations

import asyncio

from playwright.async_api import Error as PlaywrightError

from mediascope.browser.captcha import (
    CAPTCHA_SIGNATURES,
    INSPECT_JS,
    CaptchaResolutionLoop,
    CaptchaState,
)
from mediascope.browser.evaluator import RetryableEvaluator
from mediascope.progress.notifier import ProgressNotifier
from mediascope.testing.fake_page import FakeFrame


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class FakeClock:
    """Monotonic clock advanced only by the injected sleep."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.now += seconds


def _loop(page, clock, notifier=None, interval=0.5):
    return CaptchaResolutionLoop(
        page,
        evaluator=RetryableEvaluator(0),
        notifier=notifier or ProgressNotifier(),
        interval=interval,
        clock=clock,
        sleep=clock.sleep,
    )


class TestCaptchaLoop:
    """Tests for run()."""

    def test_times_out_when_nothing_detected(self):
        """2000 ms at 500 ms per poll: 4 attempts, then TIMED_OUT."""
        clock = FakeClock()
        page = FakeFrame(scripts={INSPECT_JS: None})
        result = _run(_loop(page, clock).run(timeout_ms=2000))

        assert result.state == CaptchaState.TIMED_OUT
        assert result.solved is False
        assert result.attempts == 4
        assert result.elapsed_ms == 2000
        assert result.to_dict()["provider"] == "none"

    def test_solved_ends_early(self):
        clock = FakeClock()
        answers = iter([
            {"provider": "turnstile", "detected": True, "solved": False},
            {"provider": "turnstile", "detected": True, "solved": True},
        ])
        page = FakeFrame(scripts={INSPECT_JS: lambda arg: next(answers)})
        result = _run(_loop(page, clock).run(timeout_ms=30000))

        assert result.state == CaptchaState.SOLVED
        assert result.attempts == 2
        assert result.provider == "turnstile"
        assert result.history == ["polling", "detected_unsolved", "solved"]

    def test_unsolved_notifies_every_tenth_attempt(self):
        clock = FakeClock()
        notifier = ProgressNotifier()
        page = FakeFrame(scripts={INSPECT_JS: {"provider": "hcaptcha", "detected": True, "solved": False}})
        result = _run(_loop(page, clock, notifier).run(timeout_ms=10000))

        assert result.state == CaptchaState.TIMED_OUT
        assert result.attempts == 20
        progress = notifier.history.query(tool="solve_captcha", status="progress")
        assert len(progress) == 2
        assert "hcaptcha" in progress[0]["message"]

    def test_provider_filter(self):
        """A named provider sends only its own signature to the page."""
        clock = FakeClock()
        page = FakeFrame(scripts={INSPECT_JS: None})
        _run(_loop(page, clock).run(timeout_ms=500, provider="recaptcha"))

        _, arg = page.evaluations[0]
        signatures, markers = arg
        assert [s["provider"] for s in signatures] == ["recaptcha"]
        assert "challenge" in markers

    def test_auto_sends_every_signature(self):
        clock = FakeClock()
        page = FakeFrame(scripts={INSPECT_JS: None})
        _run(_loop(page, clock).run(timeout_ms=500))
        signatures, _ = page.evaluations[0][1]
        assert len(signatures) == len(CAPTCHA_SIGNATURES)

    def test_zero_budget_times_out_without_polling(self):
        clock = FakeClock()
        page = FakeFrame(scripts={INSPECT_JS: None})
        result = _run(_loop(page, clock).run(timeout_ms=0))
        assert result.state == CaptchaState.TIMED_OUT
        assert result.attempts == 0

    def test_inspection_error_keeps_polling(self):
        """A failed poll mid-navigation does not end the loop."""
        clock = FakeClock()
        answers = iter([
            PlaywrightError("Target page navigated while the check ran"),
            {"provider": "turnstile", "detected": True, "solved": True},
        ])

        def inspect(arg):
            answer = next(answers)
            if isinstance(answer, Exception):
                raise answer
            return answer

        page = FakeFrame(scripts={INSPECT_JS: inspect})
        result = _run(_loop(page, clock).run(timeout_ms=30000))

        assert result.state == CaptchaState.SOLVED
        assert result.provider == "turnstile"
        assert result.last_error == "Target page navigated while the check ran"

    def test_every_poll_failing_times_out_with_attempts(self):
        clock = FakeClock()
        page = FakeFrame(scripts={INSPECT_JS: PlaywrightError("Target page, context or browser has been closed")})
        result = _run(_loop(page, clock).run(timeout_ms=1000))

        assert result.state == CaptchaState.TIMED_OUT
        assert result.attempts == 2
        assert result.to_dict()["last_error"] == "Target page, context or browser has been closed"
