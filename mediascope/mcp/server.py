"""
FastMCP server for mediascope.

Exposes one shared Playwright browser session and the tools built on it
to agents via the Model Context Protocol (MCP). Each tool is a thin
wrapper around a mediascope.browser / mediascope.media component.

Entry points:
    python -m mediascope.mcp     # stdio transport (for agent integration)
    create_mcp_server()          # programmatic use (for testing)

Architecture:
    FastMCP server (28 tools)
    +-- browser_init()              -> SessionManager.init()
    +-- browser_close()             -> SessionManager.close()
    +-- navigate()                  -> page.goto()
    +-- wait()                      -> selector / load-state / fixed waits
    +-- redirect_tracer()           -> scratch page, 3xx hops          [soft]
    +-- click()                     -> page.click()
    +-- type()                      -> page.fill() + page.type()
    +-- press_key()                 -> keyboard.press()
    +-- random_scroll()             -> window.scrollBy()
    +-- form_automator()            -> FallbackLocator.fill_form()     [soft]
    +-- get_content()               -> text / html / markdown
    +-- find_element()              -> CSS / XPath / text search
    +-- save_content_as_markdown()  -> markdownify -> <name>.md
    +-- search_regex()              -> re over page source
    +-- js_scrape()                 -> FallbackLocator.locate()        [soft]
    +-- execute_js()                -> RetryableEvaluator.evaluate()
    +-- extract_json()              -> JSON-LD / scripts / API         [soft]
    +-- scrape_meta_tags()          -> meta / og / twitter             [soft]
    +-- deep_analysis()             -> seo / perf / a11y / security    [soft]
    +-- link_harvester()            -> unique links                    [soft]
    +-- network_recorder()          -> NetworkRecorder
    +-- cookie_manager()            -> BrowserContext cookies
    +-- file_downloader()           -> Downloader                      [soft]
    +-- iframe_handler()            -> FrameContextTracker
    +-- stream_extractor()          -> MultiSourceExtractor            [soft]
    +-- player_api_hook()           -> PlayerAPIHook                   [soft]
    +-- solve_captcha()             -> CaptchaResolutionLoop           [soft]
    +-- progress_tracker()          -> ProgressTracker / ProgressLog
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# Lazy import to avoid import errors when fastmcp isn't installed
_server_instance = None

TOOL_COUNT = 28


def create_mcp_server(name: str = "mediascope") -> "FastMCP":
    """
    Create and configure the FastMCP server with all tools registered.

    Args:
        name: Server name for MCP protocol handshake.

    Returns:
        Configured FastMCP server instance.
    """
    from fastmcp import FastMCP
    from fastmcp.tools import Tool

    mcp = FastMCP(name)

    # ─── Session Tools ───────────────────────────────────────────
    from mediascope.mcp.tools.session_tools import browser_init, browser_close

    mcp.add_tool(Tool.from_function(browser_init))
    mcp.add_tool(Tool.from_function(browser_close))

    # ─── Navigation Tools ────────────────────────────────────────
    from mediascope.mcp.tools.navigation_tools import navigate, wait, redirect_tracer

    mcp.add_tool(Tool.from_function(navigate))
    mcp.add_tool(Tool.from_function(wait))
    mcp.add_tool(Tool.from_function(redirect_tracer))

    # ─── Interaction Tools ───────────────────────────────────────
    from mediascope.mcp.tools.interaction_tools import (
        click,
        type_text,
        press_key,
        random_scroll,
        form_automator,
    )

    mcp.add_tool(Tool.from_function(click))
    mcp.add_tool(Tool.from_function(type_text, name="type"))
    mcp.add_tool(Tool.from_function(press_key))
    mcp.add_tool(Tool.from_function(random_scroll))
    mcp.add_tool(Tool.from_function(form_automator))

    # ─── Content Tools ───────────────────────────────────────────
    from mediascope.mcp.tools.content_tools import (
        get_content,
        find_element,
        save_content_as_markdown,
        search_regex,
        js_scrape,
        execute_js,
    )

    mcp.add_tool(Tool.from_function(get_content))
    mcp.add_tool(Tool.from_function(find_element))
    mcp.add_tool(Tool.from_function(save_content_as_markdown))
    mcp.add_tool(Tool.from_function(search_regex))
    mcp.add_tool(Tool.from_function(js_scrape))
    mcp.add_tool(Tool.from_function(execute_js))

    # ─── Analysis Tools ──────────────────────────────────────────
    from mediascope.mcp.tools.analysis_tools import (
        extract_json,
        scrape_meta_tags,
        deep_analysis,
        link_harvester,
    )

    mcp.add_tool(Tool.from_function(extract_json))
    mcp.add_tool(Tool.from_function(scrape_meta_tags))
    mcp.add_tool(Tool.from_function(deep_analysis))
    mcp.add_tool(Tool.from_function(link_harvester))

    # ─── Network Tools ───────────────────────────────────────────
    from mediascope.mcp.tools.network_tools import (
        network_recorder,
        cookie_manager,
        file_downloader,
    )

    mcp.add_tool(Tool.from_function(network_recorder))
    mcp.add_tool(Tool.from_function(cookie_manager))
    mcp.add_tool(Tool.from_function(file_downloader))

    # ─── Frame, Media & Captcha Tools ────────────────────────────
    from mediascope.mcp.tools.frame_tools import iframe_handler
    from mediascope.mcp.tools.media_tools import stream_extractor, player_api_hook
    from mediascope.mcp.tools.captcha_tools import solve_captcha

    mcp.add_tool(Tool.from_function(iframe_handler))
    mcp.add_tool(Tool.from_function(stream_extractor))
    mcp.add_tool(Tool.from_function(player_api_hook))
    mcp.add_tool(Tool.from_function(solve_captcha))

    # ─── Progress Tools ──────────────────────────────────────────
    from mediascope.mcp.tools.progress_tools import progress_tracker

    mcp.add_tool(Tool.from_function(progress_tracker))

    logger.info(
        "mcp_server_created",
        extra={"server_name": name, "tool_count": TOOL_COUNT},
    )

    return mcp


def get_server() -> "FastMCP":
    """Get or create the singleton MCP server instance."""
    global _server_instance
    if _server_instance is None:
        _server_instance = create_mcp_server()
    return _server_instance
