"""
Browser configuration for mediascope.

Defines BrowserConfig (Pydantic model) that maps to Playwright's
chromium.launch() and browser.new_context() parameters, plus the
timing budgets every component waits against.

Usage:
    from mediascope.browser.config import BrowserConfig

    config = BrowserConfig()                    # visible window, no proxy
    config = BrowserConfig(headless=True)       # headless
    config = BrowserConfig.from_env()           # HEADLESS, PROXY_HOST, ...
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field


# ─── Defaults ────────────────────────────────────────────────────────

DEFAULT_DOWNLOADS_DIR = Path("./downloads")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_EXTRA_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
}

# Tried in order by js_scrape when the caller's selector misses.
DEFAULT_CONTENT_FALLBACKS = [
    "video",
    ".player",
    "#player",
    '[class*="player"]',
    '[id*="player"]',
    "iframe",
    "embed",
    "object",
]

# Container classes of common player runtimes.
DEFAULT_PLAYER_CONTAINER_CLASSES = [
    ".video-js",
    ".jwplayer",
    ".plyr",
    ".clappr-player",
    ".dplayer",
    ".artplayer",
    ".flowplayer",
    ".mejs__player",
    ".ckplayer",
    ".vidstack",
]

# Hosts aborted by the request blocker.
DEFAULT_BLOCKED_HOSTS = [
    "doubleclick.net",
    "googlesyndication.com",
    "google-analytics.com",
    "googletagmanager.com",
    "adservice.google.com",
    "facebook.net",
    "scorecardresearch.com",
    "taboola.com",
    "outbrain.com",
    "popads.net",
]

_TRUTHY = ("true", "1", "yes")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


class ProxyConfig(BaseModel):
    """Upstream proxy for all browser traffic."""

    host: str
    port: int = Field(..., ge=1, le=65535)
    username: Optional[str] = None
    password: Optional[str] = None

    @property
    def server(self) -> str:
        return f"http://{self.host}:{self.port}"

    def to_playwright(self) -> dict[str, str]:
        proxy = {"server": self.server}
        if self.username:
            proxy["username"] = self.username
            proxy["password"] = self.password or ""
        return proxy


class BrowserConfig(BaseModel):
    """
    Configuration for a browser session.

    Attributes:
        headless: Run the browser without a visible window.
        proxy: Optional upstream proxy.
        turnstile_mode: Report Cloudflare Turnstile handling as enabled.
        blocker_enabled: Abort requests to known ad/tracker hosts.
        user_agent: Browser User-Agent string.
        extra_headers: Headers sent with every request.
        viewport_width: Browser content area width in pixels.
        viewport_height: Browser content area height in pixels.
        downloads_dir: Directory for downloaded files.
        navigation_timeout_ms: Default budget for navigation waits.
        selector_timeout_ms: Default budget for selector waits.
        fallback_wait_ms: Brief wait for a locator's primary selector.
        evaluate_retry_backoff: Seconds to wait before re-running a script
            whose execution context was destroyed.
        captcha_interval: Seconds between captcha polls.
        captcha_timeout_ms: Default captcha polling budget.
        download_attempts: Polls of the interception strategy.
        download_poll_interval: Seconds between interception polls.
        network_record_limit: Most recent records returned by a query.
        content_fallback_selectors: Fallback chain for content scraping.
        player_container_classes: Known player-container class selectors.
        blocked_hosts: Host suffixes aborted when the blocker is enabled.
    """

    # ─── Display & Mode ─────────────────────────────────────────
    headless: bool = Field(
        False,
        description="Run browser without visible window",
    )
    turnstile_mode: bool = Field(
        True,
        description="Wait for Cloudflare Turnstile to resolve on its own",
    )
    blocker_enabled: bool = Field(
        True,
        description="Abort requests to known ad and tracker hosts",
    )

    # ─── Network ────────────────────────────────────────────────
    proxy: Optional[ProxyConfig] = Field(
        None,
        description="Upstream proxy (host and port)",
    )
    blocked_hosts: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_HOSTS),
        description="Host suffixes aborted when the blocker is enabled",
    )

    # ─── Identity ───────────────────────────────────────────────
    user_agent: str = Field(
        DEFAULT_USER_AGENT,
        description="Browser User-Agent string",
    )
    extra_headers: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_EXTRA_HEADERS),
        description="Headers sent with every request",
    )

    # ─── Viewport ───────────────────────────────────────────────
    viewport_width: int = Field(1920, ge=320, description="Content area width")
    viewport_height: int = Field(1080, ge=240, description="Content area height")

    # ─── Downloads ──────────────────────────────────────────────
    downloads_dir: Path = Field(
        default_factory=lambda: DEFAULT_DOWNLOADS_DIR,
        description="Directory for downloaded files",
    )
    download_attempts: int = Field(30, ge=1, description="Interception polls")
    download_poll_interval: float = Field(
        1.0,
        ge=0.0,
        description="Seconds between interception polls",
    )

    # ─── Timing ─────────────────────────────────────────────────
    navigation_timeout_ms: int = Field(30000, ge=0)
    selector_timeout_ms: int = Field(10000, ge=0)
    fallback_wait_ms: int = Field(2000, ge=0)
    evaluate_retry_backoff: float = Field(1.0, ge=0.0)
    captcha_interval: float = Field(0.5, gt=0.0)
    captcha_timeout_ms: int = Field(30000, ge=0)

    # ─── Discovery ──────────────────────────────────────────────
    network_record_limit: int = Field(100, ge=1)
    content_fallback_selectors: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CONTENT_FALLBACKS),
    )
    player_container_classes: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PLAYER_CONTAINER_CLASSES),
    )

    def get_viewport(self) -> dict[str, int]:
        """Get viewport dimensions as dict for Playwright."""
        return {
            "width": self.viewport_width,
            "height": self.viewport_height,
        }

    def get_launch_args(self) -> list[str]:
        """Get Chromium launch args for container use and anti-bot evasion."""
        return [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
            f"--window-size={self.viewport_width},{self.viewport_height}",
            "--disable-blink-features=AutomationControlled",
            "--disable-features=IsolateOrigins,site-per-process",
        ]

    def to_launch_kwargs(self) -> dict[str, Any]:
        """Convert config to keyword arguments for chromium.launch()."""
        kwargs: dict[str, Any] = {
            "headless": self.headless,
            "args": self.get_launch_args(),
        }
        if self.proxy is not None:
            kwargs["proxy"] = self.proxy.to_playwright()
        return kwargs

    def to_context_kwargs(self) -> dict[str, Any]:
        """Convert config to keyword arguments for browser.new_context()."""
        return {
            "user_agent": self.user_agent,
            "viewport": self.get_viewport(),
            "extra_http_headers": dict(self.extra_headers),
            "accept_downloads": True,
        }

    @classmethod
    def from_env(cls, **overrides: Any) -> "BrowserConfig":
        """
        Create config from environment variables.

        Reads:
            HEADLESS: "true"/"1"/"yes" (default: visible window)
            PROXY_HOST / PROXY_PORT: upstream proxy (default: None)
            DOWNLOADS_DIR: path (default: ./downloads)
            BLOCKER_ENABLED: "true"/"1"/"yes" (default: "true")

        Keyword overrides win over the environment.
        """
        kwargs: dict[str, Any] = {
            "headless": _env_flag("HEADLESS", False),
            "blocker_enabled": _env_flag("BLOCKER_ENABLED", True),
            "downloads_dir": Path(
                os.environ.get("DOWNLOADS_DIR", str(DEFAULT_DOWNLOADS_DIR))
            ),
        }
        host = os.environ.get("PROXY_HOST")
        port = os.environ.get("PROXY_PORT")
        if host and port:
            kwargs["proxy"] = ProxyConfig(host=host, port=int(port))
        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)
