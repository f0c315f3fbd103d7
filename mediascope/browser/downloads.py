"""
File downloads through the live browser session.

Two capture strategies run in order, both inside the browser so the
site's cookies, referrer, and TLS fingerprint apply:

1. interception: enable CDP Fetch interception at the response stage,
   trigger the download with a temporary anchor click, and poll for the
   captured body within an attempt budget.
2. in_page_fetch: fetch() the URL from the page and ship the bytes back
   as a base64 data URL.

The first strategy that yields bytes wins; if neither does, the
download fails with DownloadError.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import unquote, urlparse

from playwright.async_api import Error as PlaywrightError

from mediascope.browser.evaluator import RetryableEvaluator
from mediascope.exceptions import DownloadError

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "download"

TRIGGER_ANCHOR_JS = """
(url) => {
    const link = document.createElement('a');
    link.href = url;
    link.download = '';
    document.body.appendChild(link);
    link.click();
    document.body.removeChild(link);
}
"""

FETCH_AS_DATA_URL_JS = """
async (url) => {
    try {
        const response = await fetch(url, {credentials: 'include'});
        if (!response.ok) {
            return {success: false, error: 'HTTP ' + response.status};
        }
        const blob = await response.blob();
        return await new Promise((resolve) => {
            const reader = new FileReader();
            reader.onloadend = () => resolve({success: true, data: reader.result, type: blob.type});
            reader.readAsDataURL(blob);
        });
    } catch (e) {
        return {success: false, error: e.message};
    }
}
"""


def _base_name(path: str) -> str:
    """Last path component, or "" when it is empty or only dots."""
    name = PurePosixPath(path.replace("\\", "/")).name
    return "" if name.strip(".") == "" else name


def derive_filename(url: str, filename: Optional[str] = None) -> str:
    """
    Output file name: the caller's, else the URL's last path segment,
    else a generic name. Directory components are never honored.
    """
    if filename:
        name = _base_name(filename)
        if name:
            return name
    try:
        segment = _base_name(unquote(urlparse(url).path))
    except ValueError:
        segment = ""
    return segment or DEFAULT_FILENAME


def decode_data_url(data_url: str) -> bytes:
    _, _, payload = data_url.partition(",")
    return base64.b64decode(payload) if payload else b""


def _same_resource(candidate: str, target: str) -> bool:
    return candidate.split("#", 1)[0] == target.split("#", 1)[0]


@dataclass
class DownloadResult:
    url: str
    path: Path
    size: int
    sha256: str
    strategy: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "path": str(self.path),
            "filename": self.path.name,
            "size": self.size,
            "sha256": self.sha256,
            "strategy": self.strategy,
        }


class Downloader:
    """
    Downloads a URL with the session's page.

    Args:
        page: Playwright Page used to trigger and fetch.
        evaluator: Runs the in-page scripts.
        attempts: Interception polls before giving up on that strategy.
        poll_interval: Seconds between interception polls.
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        page: Any,
        evaluator: Optional[RetryableEvaluator] = None,
        attempts: int = 30,
        poll_interval: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.page = page
        self.evaluator = evaluator or RetryableEvaluator()
        self.attempts = attempts
        self.poll_interval = poll_interval
        self._sleep = sleep

    async def download(
        self,
        url: str,
        directory: Path,
        filename: Optional[str] = None,
    ) -> DownloadResult:
        """
        Capture `url` and write it under `directory`.

        Raises:
            DownloadError: If every strategy came back empty.
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        output = directory / derive_filename(url, filename)

        strategies: list[tuple[str, Callable[[str], Awaitable[bytes]]]] = [
            ("interception", self.capture_via_interception),
            ("in_page_fetch", self.capture_via_fetch),
        ]
        for name, strategy in strategies:
            try:
                body = await strategy(url)
            except PlaywrightError as e:
                logger.warning(
                    "download_strategy_failed",
                    extra={"strategy": name, "url": url, "error": str(e)},
                )
                body = b""
            if body:
                output.write_bytes(body)
                logger.info(
                    "download_completed",
                    extra={"strategy": name, "url": url, "size": len(body)},
                )
                return DownloadResult(
                    url=url,
                    path=output,
                    size=len(body),
                    sha256=hashlib.sha256(body).hexdigest(),
                    strategy=name,
                )
            logger.info("download_strategy_empty", extra={"strategy": name, "url": url})

        raise DownloadError(
            "Download failed or timed out",
            url=url,
            strategies=[name for name, _ in strategies],
        )

    async def capture_via_interception(self, url: str) -> bytes:
        cdp = await self.page.context.new_cdp_session(self.page)
        captured: list[bytes] = []

        async def on_request_paused(event: dict[str, Any]) -> None:
            request_id = event["requestId"]
            try:
                if (
                    not captured
                    and event.get("responseStatusCode") == 200
                    and _same_resource(event.get("request", {}).get("url", ""), url)
                ):
                    response = await cdp.send("Fetch.getResponseBody", {"requestId": request_id})
                    body = response.get("body") or ""
                    if response.get("base64Encoded"):
                        captured.append(base64.b64decode(body))
                    else:
                        captured.append(body.encode("utf-8"))
            except PlaywrightError as e:
                logger.debug("download_body_unavailable", extra={"error": str(e)})
            finally:
                try:
                    await cdp.send("Fetch.continueRequest", {"requestId": request_id})
                except PlaywrightError as e:
                    logger.debug("download_continue_failed", extra={"error": str(e)})

        cdp.on("Fetch.requestPaused", on_request_paused)
        await cdp.send("Fetch.enable", {"patterns": [{"urlPattern": "*", "requestStage": "Response"}]})
        try:
            await self.evaluator.evaluate(self.page, TRIGGER_ANCHOR_JS, url)
            for _ in range(self.attempts):
                if captured:
                    break
                await self._sleep(self.poll_interval)
        finally:
            try:
                await cdp.send("Fetch.disable")
                await cdp.detach()
            except PlaywrightError as e:
                logger.debug("download_cdp_detach_failed", extra={"error": str(e)})

        return captured[0] if captured else b""

    async def capture_via_fetch(self, url: str) -> bytes:
        result = await self.evaluator.evaluate(self.page, FETCH_AS_DATA_URL_JS, url)
        if not result or not result.get("success"):
            logger.info(
                "download_fetch_failed",
                extra={"url": url, "error": (result or {}).get("error")},
            )
            return b""
        return decode_data_url(result.get("data") or "")
