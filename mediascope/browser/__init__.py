"""
Browser session machinery for mediascope.

Components:
- BrowserConfig: Pydantic configuration model
- SessionManager / BrowserSession: the one live browser, page, and
  current-frame pointer
- RetryableEvaluator: in-page evaluation with one retry on navigation
- NetworkRecorder: toggleable request/response capture
- FrameContextTracker: frame listing and selection
- FallbackLocator: selector fallback chains and form filling
- CaptchaResolutionLoop: waits for challenges to resolve
- Downloader: two-strategy file capture

Usage:
    from mediascope.browser import BrowserConfig, SessionManager

    manager = SessionManager()
    session = await manager.init(BrowserConfig(headless=True))
"""

from mediascope.browser.config import BrowserConfig, ProxyConfig
from mediascope.browser.evaluator import RetryableEvaluator
from mediascope.browser.network import NetworkRecord, NetworkRecorder
from mediascope.browser.session import BrowserSession, SessionManager, get_session_manager
from mediascope.browser.frames import FrameContextTracker
from mediascope.browser.locator import FallbackLocator
from mediascope.browser.captcha import CaptchaResolutionLoop, CaptchaState
from mediascope.browser.downloads import Downloader

__all__ = [
    "BrowserConfig",
    "ProxyConfig",
    "RetryableEvaluator",
    "NetworkRecord",
    "NetworkRecorder",
    "BrowserSession",
    "SessionManager",
    "get_session_manager",
    "FrameContextTracker",
    "FallbackLocator",
    "CaptchaResolutionLoop",
    "CaptchaState",
    "Downloader",
]
