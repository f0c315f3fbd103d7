"""
MCP (Model Context Protocol) server for mediascope.

Exposes the browser, content, analysis, network, frame, and media tools
via FastMCP so an agent can drive one shared browser session.

Tool modules:
- session_tools: browser_init, browser_close
- navigation_tools: navigate, wait, redirect_tracer
- interaction_tools: click, type, press_key, random_scroll, form_automator
- content_tools: get_content, find_element, save_content_as_markdown,
  search_regex, js_scrape, execute_js
- analysis_tools: extract_json, scrape_meta_tags, deep_analysis, link_harvester
- network_tools: network_recorder, cookie_manager, file_downloader
- frame_tools: iframe_handler
- media_tools: stream_extractor, player_api_hook
- captcha_tools: solve_captcha
- progress_tools: progress_tracker

Usage:
    python -m mediascope.mcp  # Start the MCP server (stdio transport)
"""
