"""
Tests for MCP tools and server configuration.

Validates:
- @browser_tool: progress notifications, soft vs hard failure handling
- Every session-bound tool fails with NotInitializedError before init
- Session, navigation, and interaction tools drive the page
- Cookie, network recorder, and frame tools keep their state per session
- Content tools honor the selected frame and produce Markdown
- progress_tracker works without a browser session
- MCP server creation and tool registration (28 tools, "type" included)
"""

from __future__ import annotations

import asyncio
import json

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from mediascope.browser.config import BrowserConfig
from mediascope.browser.session import SessionManager
from mediascope.exceptions import (
    BrowserTimeoutError,
    ElementNotFoundError,
    ExecutionError,
    InvalidArgumentError,
    NotInitializedError,
)
from mediascope.mcp.tools.base import browser_tool, get_tool_name, is_soft_tool
from mediascope.mcp.tools.content_tools import (
    REGEX_SOURCES_JS,
    execute_js,
    get_content,
    js_scrape,
    save_content_as_markdown,
    search_regex,
)
from mediascope.mcp.tools.frame_tools import iframe_handler
from mediascope.mcp.tools.interaction_tools import click, press_key, type_text
from mediascope.mcp.tools.media_tools import stream_extractor
from mediascope.mcp.tools.navigation_tools import navigate, redirect_tracer, wait
from mediascope.mcp.tools.network_tools import cookie_manager, network_recorder
from mediascope.mcp.tools.progress_tools import progress_tracker
from mediascope.mcp.tools.session_tools import browser_close, browser_init
from mediascope.testing.fake_page import (
    FakeElement,
    FakeFrame,
    FakePage,
    FakeResponse,
    create_fake_manager,
    fake_launcher,
)


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _call(tool, *args, **kwargs):
    return json.loads(_run(tool(*args, **kwargs)))


def _idle_manager():
    return SessionManager(
        config=BrowserConfig(headless=True, evaluate_retry_backoff=0.0),
        launcher=fake_launcher(),
    )


# ─── Decorator Tests ─────────────────────────────────────────────────


class TestBrowserToolDecorator:
    """Tests for @browser_tool."""

    def test_rejects_sync_functions(self):
        with pytest.raises(TypeError):
            @browser_tool("sync_tool")
            def sync_tool():
                return "{}"

    def test_metadata(self):
        assert get_tool_name(type_text) == "type"
        assert is_soft_tool(stream_extractor) is True
        assert is_soft_tool(navigate) is False

    def test_hard_tool_raises_before_init(self):
        with pytest.raises(NotInitializedError):
            _run(navigate("https://example.com", _manager=_idle_manager()))

    def test_soft_tool_reports_before_init(self):
        """A soft tool turns the error into a failure payload."""
        result = _call(stream_extractor, _manager=_idle_manager())
        assert result["success"] is False
        assert result["error_type"] == "NotInitializedError"

    def test_progress_notifications(self):
        manager = _run(create_fake_manager(FakePage(url="https://example.com")))
        _run(navigate("https://example.com/a", _manager=manager))
        statuses = [e["status"] for e in manager.notifier.history.query(tool="navigate")]
        assert statuses == ["completed", "started"]

    def test_error_notification_on_failure(self):
        manager = _idle_manager()
        with pytest.raises(NotInitializedError):
            _run(click("#go", _manager=manager))
        latest = manager.notifier.history.query(tool="click", limit=1)[0]
        assert latest["status"] == "error"
        assert latest["error_type"] == "NotInitializedError"


# ─── Session Tools ───────────────────────────────────────────────────


class TestSessionTools:
    """Tests for browser_init / browser_close."""

    def test_init_and_close(self):
        manager = _idle_manager()
        result = _call(browser_init, headless=True, enable_blocker=False, _manager=manager)
        assert result["success"] is True
        assert manager.is_active

        assert _call(browser_close, _manager=manager)["closed"] is True
        assert _call(browser_close, _manager=manager)["closed"] is False

    def test_init_twice_replaces_session(self):
        manager = _idle_manager()
        _call(browser_init, headless=True, _manager=manager)
        first = manager.require_active()
        _call(browser_init, headless=True, _manager=manager)
        assert manager.require_active() is not first


# ─── Navigation & Interaction ────────────────────────────────────────


class TestNavigationTools:
    """Tests for navigate and redirect_tracer."""

    def test_navigate(self):
        page = FakePage(url="https://example.com", title="Example")
        manager = _run(create_fake_manager(page))
        result = _call(navigate, "https://example.com/watch", wait_until="networkidle2", _manager=manager)
        assert result == {"success": True, "url": "https://example.com/watch", "title": "Example", "status": 200}
        assert page.actions[-1] == ("goto", ("https://example.com/watch", "networkidle"))

    def test_unknown_wait_until(self):
        manager = _run(create_fake_manager())
        with pytest.raises(InvalidArgumentError):
            _run(navigate("https://example.com", wait_until="never", _manager=manager))

    def test_navigation_timeout(self):
        page = FakePage()
        page.goto_error = PlaywrightTimeoutError("Timeout 30000ms exceeded")
        manager = _run(create_fake_manager(page))
        with pytest.raises(BrowserTimeoutError) as exc_info:
            _run(navigate("https://slow.example", _manager=manager))
        assert exc_info.value.timeout_ms == 30000

    def test_redirect_tracer_uses_scratch_page(self):
        """Hops come from a separate page; the working page stays put."""
        page = FakePage(url="https://example.com")
        manager = _run(create_fake_manager(page))
        scratch = FakePage()
        scratch.redirects = [
            FakeResponse("https://short.link/x", status=301, headers={"location": "https://mid.example/"}),
            FakeResponse("https://mid.example/", status=302, headers={"location": "https://final.example/"}),
        ]
        manager.require_active().context.queued_pages.append(scratch)

        result = _call(redirect_tracer, "https://short.link/x", _manager=manager)

        assert result["count"] == 2
        assert result["redirects"][0] == {"from": "https://short.link/x", "to": "https://mid.example/", "status": 301}
        assert scratch.closed is True
        assert page.url == "https://example.com"

    def test_redirect_tracer_failure_is_soft(self):
        manager = _run(create_fake_manager())
        scratch = FakePage()
        scratch.goto_error = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        manager.require_active().context.queued_pages.append(scratch)
        result = _call(redirect_tracer, "https://nowhere.invalid", _manager=manager)
        assert result["success"] is False
        assert "ERR_NAME_NOT_RESOLVED" in result["error"]

    def test_wait_timeout_needs_milliseconds(self):
        manager = _run(create_fake_manager())
        with pytest.raises(InvalidArgumentError) as exc_info:
            _run(wait(type="timeout", value="abc", _manager=manager))
        assert exc_info.value.argument == "value"


class TestInteractionTools:
    """Tests for click, type, press_key."""

    def test_click_waits_then_clicks(self):
        page = FakePage(elements={"#play": FakeElement(tag="button")})
        manager = _run(create_fake_manager(page))
        _call(click, "#play", click_count=2, _manager=manager)
        assert page.actions[-1] == ("click", ("#play", {"click_count": 2, "delay": 0}))

    def test_click_missing_element_times_out(self):
        manager = _run(create_fake_manager())
        with pytest.raises(BrowserTimeoutError):
            _run(click("#ghost", _manager=manager))

    def test_type_clears_first(self):
        page = FakePage(elements={"#q": FakeElement(tag="input")})
        manager = _run(create_fake_manager(page))
        result = _call(type_text, "#q", "cats", delay=0, _manager=manager)
        assert result["length"] == 4
        assert page.actions[-2:] == [("fill", ("#q", "")), ("type", ("#q", "cats", 0))]

    def test_press_key_combo(self):
        page = FakePage()
        manager = _run(create_fake_manager(page))
        result = _call(press_key, "a", modifiers=["Control", "Shift"], _manager=manager)
        assert result["combo"] == "Control+Shift+a"
        assert page.keyboard.pressed == ["Control+Shift+a"]


# ─── Network, Cookies, Frames ────────────────────────────────────────


class TestNetworkTools:
    """Tests for network_recorder and cookie_manager."""

    def test_recorder_lifecycle(self):
        manager = _run(create_fake_manager(FakePage(url="https://example.com")))
        assert _call(network_recorder, "start", _manager=manager)["recording"] is True
        _call(navigate, "https://example.com/video", _manager=manager)

        got = _call(network_recorder, "get", url_pattern=r"/video$", _manager=manager)
        assert got["count"] == 2
        assert _call(network_recorder, "stop", _manager=manager)["count"] == 2
        assert _call(network_recorder, "clear", _manager=manager)["count"] == 0

    def test_recorder_invalid_pattern(self):
        manager = _run(create_fake_manager())
        with pytest.raises(InvalidArgumentError):
            _run(network_recorder("get", url_pattern="(", _manager=manager))

    def test_cookie_roundtrip(self):
        manager = _run(create_fake_manager(FakePage(url="https://shop.example/cart")))
        cookie = _call(cookie_manager, "set", name="sid", value="abc", _manager=manager)["cookie"]
        assert cookie["domain"] == "shop.example"
        assert cookie["path"] == "/"

        assert _call(cookie_manager, "get", name="sid", _manager=manager)["count"] == 1
        _call(cookie_manager, "delete", name="sid", _manager=manager)
        assert _call(cookie_manager, "get", _manager=manager)["count"] == 0

    def test_cookie_set_requires_name(self):
        manager = _run(create_fake_manager())
        with pytest.raises(InvalidArgumentError):
            _run(cookie_manager("set", value="x", _manager=manager))


class TestFrameTools:
    """Tests for iframe_handler and frame-aware content tools."""

    def _manager(self):
        player = FakeFrame(url="https://cdn.example/embed", html="<video src='x.m3u8'></video>")
        page = FakePage(url="https://example.com", frames=[player])
        return _run(create_fake_manager(page)), player

    def test_list_switch_content_exit(self):
        manager, player = self._manager()
        assert _call(iframe_handler, "list", _manager=manager)["count"] == 2
        assert _call(iframe_handler, "switch", index=1, _manager=manager)["current"]["url"] == player.url

        content = _call(iframe_handler, "content", _manager=manager)
        assert content["content"] == player.html

        assert _call(iframe_handler, "exit", _manager=manager)["current"] is None

    def test_content_tools_read_selected_frame(self):
        manager, player = self._manager()
        player.scripts[REGEX_SOURCES_JS["html"]] = player.html
        _call(iframe_handler, "switch", index=1, _manager=manager)

        result = _call(search_regex, r"\w+\.m3u8", _manager=manager)
        assert result["matches"][0]["match"] == "x.m3u8"


# ─── Content Tools ───────────────────────────────────────────────────


HTML = "<html><body><h1>Title</h1><ul><li>one</li></ul><script>track()</script></body></html>"


class TestContentTools:
    """Tests for get_content, save_content_as_markdown, search_regex, js_scrape, execute_js."""

    def test_get_content_markdown(self):
        manager = _run(create_fake_manager(FakePage(html=HTML)))
        result = _call(get_content, format="markdown", _manager=manager)
        assert "# Title" in result["content"]
        assert "- one" in result["content"]
        assert "track()" not in result["content"]

    def test_get_content_missing_selector(self):
        manager = _run(create_fake_manager())
        with pytest.raises(ElementNotFoundError):
            _run(get_content(selector="#nope", _manager=manager))

    def test_save_markdown(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        page = FakePage(url="https://example.com/post", title="Post", html=HTML)
        manager = _run(create_fake_manager(page))

        result = _call(save_content_as_markdown, "notes.md", _manager=manager)

        saved = (tmp_path / "notes.md").read_text(encoding="utf-8")
        assert result["path"].endswith("notes.md")
        assert saved.startswith("# Post")
        assert "**URL:** https://example.com/post" in saved

    def test_search_regex_first_match_only(self):
        page = FakePage()
        page.main_frame.scripts[REGEX_SOURCES_JS["text"]] = "720p 1080p 480p"
        manager = _run(create_fake_manager(page))
        result = _call(search_regex, r"(\d+)p", flags="", source="text", _manager=manager)
        assert result["count"] == 1
        assert result["matches"][0] == {"match": "720p", "index": 0, "groups": ["720"]}

    def test_search_regex_unknown_source(self):
        manager = _run(create_fake_manager())
        with pytest.raises(InvalidArgumentError):
            _run(search_regex("x", source="css", _manager=manager))

    def test_js_scrape_heals(self):
        page = FakePage(elements={".player": FakeElement(text="Now playing")})
        manager = _run(create_fake_manager(page))
        result = _call(js_scrape, "#video", fallback_selectors=["video", ".player"], timeout=10, _manager=manager)
        assert result["healed"] is True
        assert result["used_selector"] == ".player"

    def test_js_scrape_exhausted_is_soft(self):
        manager = _run(create_fake_manager())
        result = _call(js_scrape, "#video", fallback_selectors=[], timeout=10, _manager=manager)
        assert result["success"] is False
        assert result["error_type"] == "ElementNotFoundError"
        assert result["tried"] == ["#video"]

    def test_js_scrape_detached_element_is_soft(self):
        """An engine error on the matched element comes back as a payload."""
        element = FakeElement(evaluate_error=PlaywrightError("Element is not attached to the DOM"))
        manager = _run(create_fake_manager(FakePage(elements={"#p": element})))
        result = _call(js_scrape, "#p", timeout=10, _manager=manager)
        assert result["success"] is False
        assert result["error_type"] == "Error"
        assert "not attached" in result["error"]

    def test_execute_js_failure(self):
        page = FakePage(scripts={"boom()": PlaywrightError("ReferenceError: boom is not defined")})
        manager = _run(create_fake_manager(page))
        with pytest.raises(ExecutionError):
            _run(execute_js("boom()", _manager=manager))


# ─── Progress Tool ───────────────────────────────────────────────────


class TestProgressTool:
    """Tests for progress_tracker."""

    def test_works_without_session(self):
        manager = _idle_manager()
        _call(progress_tracker, "start", task_name="crawl", _manager=manager)
        updated = _call(progress_tracker, "update", task_name="crawl", progress=150, _manager=manager)
        assert updated["task"]["progress"] == 100

        tasks = _call(progress_tracker, "get", _manager=manager)
        assert tasks["count"] == 1

    def test_unknown_task(self):
        result = _call(progress_tracker, "complete", task_name="ghost", _manager=_idle_manager())
        assert result == {"success": False, "error": "Unknown task: ghost"}

    def test_history(self):
        manager = _idle_manager()
        _call(progress_tracker, "start", task_name="crawl", _manager=manager)
        history = _call(progress_tracker, "history", task_name="progress_tracker", _manager=manager)
        assert history["count"] >= 1
        assert all(e["tool"] == "progress_tracker" for e in history["notifications"])

    def test_requires_task_name(self):
        with pytest.raises(InvalidArgumentError):
            _run(progress_tracker("start", _manager=_idle_manager()))


# ─── Server Tests ────────────────────────────────────────────────────


class TestMCPServer:
    """Tests for MCP server creation and tool registration."""

    def test_create_server_returns_fastmcp_instance(self):
        from fastmcp import FastMCP
        from mediascope.mcp.server import create_mcp_server

        server = create_mcp_server(name="Test Server")
        assert isinstance(server, FastMCP)

    def test_get_server_is_singleton(self):
        import mediascope.mcp.server as server_module

        server_module._server_instance = None
        s1 = server_module.get_server()
        s2 = server_module.get_server()
        assert s1 is s2
        server_module._server_instance = None

    def test_server_has_all_tools_registered(self):
        from mediascope.mcp.server import TOOL_COUNT, create_mcp_server

        server = create_mcp_server(name="Test Server")
        tools = _run(server.get_tools())

        assert len(tools) == TOOL_COUNT == 28
        for name in ("browser_init", "navigate", "type", "stream_extractor", "solve_captcha", "progress_tracker"):
            assert name in tools
        assert "type_text" not in tools
