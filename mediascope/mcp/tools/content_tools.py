"""
Content MCP tools.

These read from the selected frame when iframe_handler has switched into
one, and from the page otherwise.

    get_content()               → text / html / markdown of page or element
    find_element()              → CSS, XPath, or text search
    save_content_as_markdown()  → writes <filename>.md to the working dir
    search_regex()              → regex over html, text, or inline scripts
    js_scrape()                 → FallbackLocator.locate()
    execute_js()                → runs caller-supplied script
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from bs4 import BeautifulSoup
from markdownify import markdownify
from playwright.async_api import Error as PlaywrightError

from mediascope.browser.locator import FallbackLocator
from mediascope.browser.session import BrowserSession
from mediascope.exceptions import ElementNotFoundError, ExecutionError, InvalidArgumentError
from mediascope.mcp.tools.base import browser_tool, dump, resolve_manager

logger = logging.getLogger(__name__)

MAX_REGEX_MATCHES = 100

BODY_TEXT_JS = "() => document.body ? document.body.innerText : ''"
OUTER_HTML_JS = "el => el.outerHTML"

REGEX_SOURCES_JS = {
    "html": "() => document.documentElement.outerHTML",
    "text": BODY_TEXT_JS,
    "scripts": "() => [...document.querySelectorAll('script')].map(s => s.textContent || '').join('\\n')",
}

FIND_ELEMENTS_JS = """
({selector, xpath, text, multiple}) => {
    let els = [];
    if (selector) {
        els = [...document.querySelectorAll(selector)];
    } else if (xpath) {
        const snap = document.evaluate(xpath, document, null, XPathResult.ORDERED_NODE_SNAPSHOT_TYPE, null);
        for (let i = 0; i < snap.snapshotLength; i++) els.push(snap.snapshotItem(i));
    } else if (text) {
        els = [...document.querySelectorAll('body *')].filter(
            el => el.children.length === 0 && (el.textContent || '').includes(text)
        );
    }
    const total = els.length;
    if (!multiple) els = els.slice(0, 1);
    return {
        total,
        elements: els.map((el, i) => ({
            index: i,
            tag: el.tagName.toLowerCase(),
            text: (el.innerText || el.textContent || '').trim().slice(0, 100),
            classes: typeof el.className === 'string' ? el.className.split(/\\s+/).filter(Boolean) : [],
            id: el.id || null,
        })),
    };
}
"""

_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


def _target(session: BrowserSession) -> Any:
    return session.current_frame() or session.page


def html_to_markdown(html: str, include_images: bool = True) -> str:
    """Convert markup to Markdown: ATX headings, "-" bullets, fenced code."""
    soup = BeautifulSoup(html, "html.parser")
    drop = ["script", "style", "noscript"]
    if not include_images:
        drop.append("img")
    for tag in soup.find_all(drop):
        tag.decompose()
    markdown = markdownify(str(soup), heading_style="ATX", bullets="-", code_language="")
    return re.sub(r"\n{3,}", "\n\n", markdown).strip()


async def _element_html(target: Any, selector: str) -> Any:
    element = await target.query_selector(selector)
    if element is None:
        raise ElementNotFoundError(f"Element not found: {selector}", selector=selector, tried=[selector])
    return element


@browser_tool("get_content")
async def get_content(
    format: str = "text",
    selector: Optional[str] = None,
    *,
    _manager: Any = None,
) -> str:
    """
    Read the page (or one element) as text, HTML, or Markdown.

    Args:
        format: text, html, or markdown.
        selector: Limit to the first element matching this CSS selector.
        _manager: Injected SessionManager (for testing/DI).
    """
    manager = resolve_manager(_manager)
    target = _target(manager.require_active())
    if format not in ("text", "html", "markdown"):
        raise InvalidArgumentError(f"Unknown format: {format}", argument="format")

    if selector:
        element = await _element_html(target, selector)
        if format == "text":
            content = await element.inner_text()
        else:
            content = await element.evaluate(OUTER_HTML_JS)
    elif format == "text":
        content = await manager.evaluator.evaluate(target, BODY_TEXT_JS)
    else:
        content = await target.content()

    if format == "markdown":
        content = html_to_markdown(content)

    return dump({
        "success": True,
        "format": format,
        "selector": selector,
        "content": content,
        "length": len(content),
    })


@browser_tool("find_element")
async def find_element(
    selector: Optional[str] = None,
    xpath: Optional[str] = None,
    text: Optional[str] = None,
    multiple: bool = False,
    *,
    _manager: Any = None,
) -> str:
    """
    Find elements by CSS selector, XPath, or contained text.

    Args:
        selector: CSS selector.
        xpath: XPath expression (used when no selector is given).
        text: Text contained by a leaf element (used when neither is given).
        multiple: Return every match instead of the first.
        _manager: Injected SessionManager (for testing/DI).
    """
    manager = resolve_manager(_manager)
    target = _target(manager.require_active())
    if not (selector or xpath or text):
        raise InvalidArgumentError("Provide selector, xpath, or text", argument="selector")

    found = await manager.evaluator.evaluate(
        target,
        FIND_ELEMENTS_JS,
        {"selector": selector, "xpath": xpath, "text": text, "multiple": multiple},
    )
    elements = found.get("elements", []) if found else []
    return dump({
        "success": True,
        "found": bool(elements),
        "count": found.get("total", 0) if found else 0,
        "elements": elements,
    })


@browser_tool("save_content_as_markdown")
async def save_content_as_markdown(
    filename: str,
    selector: Optional[str] = None,
    include_images: bool = True,
    include_meta: bool = True,
    *,
    _manager: Any = None,
) -> str:
    """
    Save the page (or one element) as <filename>.md in the working directory.

    Args:
        filename: Output name, with or without the .md suffix.
        selector: Limit to the first element matching this CSS selector.
        include_images: Keep image references.
        include_meta: Prefix a title / URL / date header.
        _manager: Injected SessionManager (for testing/DI).
    """
    session = resolve_manager(_manager).require_active()
    page = session.page

    if selector:
        element = await _element_html(page, selector)
        html = await element.evaluate(OUTER_HTML_JS)
    else:
        html = await page.content()

    markdown = html_to_markdown(html, include_images=include_images)
    if include_meta:
        header = (
            f"# {await page.title()}\n\n"
            f"**URL:** {page.url}\n\n"
            f"**Date:** {datetime.now(timezone.utc).isoformat()}\n\n"
            "---\n\n"
        )
        markdown = header + markdown

    stem = filename[:-3] if filename.lower().endswith(".md") else filename
    path = Path.cwd() / f"{Path(stem).name}.md"
    path.write_text(markdown, encoding="utf-8")
    logger.info("markdown_saved", extra={"path": str(path), "length": len(markdown)})

    return dump({"success": True, "path": str(path), "length": len(markdown)})


@browser_tool("search_regex")
async def search_regex(
    pattern: str,
    flags: str = "gi",
    source: str = "html",
    *,
    _manager: Any = None,
) -> str:
    """
    Search page source with a regular expression.

    Args:
        pattern: Regular expression (Python syntax).
        flags: Any of g (all matches), i, m, s.
        source: html, text, or scripts.
        _manager: Injected SessionManager (for testing/DI).

    Returns:
        JSON string with the total count and up to 100 matches.
    """
    manager = resolve_manager(_manager)
    target = _target(manager.require_active())
    script = REGEX_SOURCES_JS.get(source)
    if script is None:
        raise InvalidArgumentError(f"Unknown source: {source}", argument="source")

    re_flags = 0
    for flag in flags:
        re_flags |= _REGEX_FLAGS.get(flag, 0)
    try:
        regex = re.compile(pattern, re_flags)
    except re.error as e:
        raise InvalidArgumentError(f"Invalid pattern: {e}", argument="pattern") from e

    haystack = await manager.evaluator.evaluate(target, script) or ""
    found = regex.finditer(haystack) if "g" in flags else filter(None, [regex.search(haystack)])
    matches = [
        {"match": m.group(0), "index": m.start(), "groups": list(m.groups())}
        for m in found
    ]
    return dump({
        "success": True,
        "pattern": pattern,
        "source": source,
        "count": len(matches),
        "matches": matches[:MAX_REGEX_MATCHES],
    })


@browser_tool("js_scrape", soft=True)
async def js_scrape(
    selector: str,
    fallback_selectors: Optional[list[str]] = None,
    timeout: int = 10000,
    *,
    _manager: Any = None,
) -> str:
    """
    Scrape an element, healing through fallback selectors when it is missing.

    Args:
        selector: Primary CSS selector.
        fallback_selectors: Chain tried in order after the primary
            (defaults to common player/video/embed containers).
        timeout: How long to wait for the primary selector.
        _manager: Injected SessionManager (for testing/DI).

    Returns:
        JSON string with content {html, text, attributes}, used_selector,
        and healed.
    """
    session = resolve_manager(_manager).require_active()
    chain = fallback_selectors if fallback_selectors is not None else session.config.content_fallback_selectors
    locator = FallbackLocator(_target(session), wait_ms=timeout)
    result = await locator.locate(selector, chain)
    return dump({"success": True, **result.to_dict()})


@browser_tool("execute_js")
async def execute_js(
    script: str,
    args: Any = None,
    *,
    _manager: Any = None,
) -> str:
    """
    Run caller-supplied JavaScript in the page (or selected frame).

    The script is untrusted code executed with the page's full
    privileges; there is no sandbox beyond the browser's own.

    Args:
        script: A JS expression or function source.
        args: Optional JSON-serializable argument for a function script.
        _manager: Injected SessionManager (for testing/DI).
    """
    manager = resolve_manager(_manager)
    target = _target(manager.require_active())
    try:
        result = await manager.evaluator.evaluate(target, script, args)
    except PlaywrightError as e:
        raise ExecutionError(f"Script failed: {e}", script=script[:200]) from e
    return dump({"success": True, "result": result})
