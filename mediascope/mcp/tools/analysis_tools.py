"""
Page analysis MCP tools.

    extract_json()      → JSON-LD, JSON in inline scripts, or recorded API responses
    scrape_meta_tags()  → meta / Open Graph / Twitter card tags
    deep_analysis()     → SEO, performance, accessibility, security summaries
    link_harvester()    → deduplicated links, classified internal/external/media
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from mediascope.exceptions import InvalidArgumentError
from mediascope.mcp.tools.base import browser_tool, dump, resolve_manager

logger = logging.getLogger(__name__)

JSON_SOURCES = ("page", "scripts", "ld+json", "api")

EXTRACT_JSON_JS = r"""
(src) => {
    const results = [];
    if (src === 'page' || src === 'ld+json') {
        document.querySelectorAll('script[type="application/ld+json"]').forEach(s => {
            try { results.push(JSON.parse(s.textContent)); } catch (e) {}
        });
    }
    if (src === 'page' || src === 'scripts') {
        document.querySelectorAll('script:not([type="application/ld+json"])').forEach(s => {
            for (const m of (s.textContent || '').match(/\{[\s\S]*?\}/g) || []) {
                try { results.push(JSON.parse(m)); } catch (e) {}
            }
        });
    }
    return results;
}
"""

ELEMENT_JSON_JS = "el => { try { return JSON.parse(el.textContent); } catch (e) { return null; } }"

META_TAGS_JS = """
(types) => {
    const all = types.includes('all');
    const out = {title: document.title};
    const read = (el) => [el.getAttribute('name') || el.getAttribute('property'), el.getAttribute('content')];
    if (all || types.includes('meta')) {
        out.meta = {};
        document.querySelectorAll('meta[name]').forEach(el => {
            const [k, v] = read(el);
            if (k && !k.startsWith('twitter:')) out.meta[k] = v;
        });
    }
    if (all || types.includes('og')) {
        out.og = {};
        document.querySelectorAll('meta[property^="og:"]').forEach(el => {
            const [k, v] = read(el);
            out.og[k.slice(3)] = v;
        });
    }
    if (all || types.includes('twitter')) {
        out.twitter = {};
        document.querySelectorAll('meta[name^="twitter:"], meta[property^="twitter:"]').forEach(el => {
            const [k, v] = read(el);
            out.twitter[k.slice(8)] = v;
        });
    }
    const canonical = document.querySelector('link[rel="canonical"]');
    out.canonical = canonical ? canonical.href : null;
    return out;
}
"""

DEEP_ANALYSIS_JS = """
(types) => {
    const all = types.includes('all');
    const result = {};
    const imgs = [...document.querySelectorAll('img')];
    if (all || types.includes('seo')) {
        result.seo = {
            title: document.title,
            titleLength: document.title.length,
            h1Count: document.querySelectorAll('h1').length,
            h2Count: document.querySelectorAll('h2').length,
            metaDescription: document.querySelector('meta[name="description"]')?.getAttribute('content') || '',
            canonicalUrl: document.querySelector('link[rel="canonical"]')?.getAttribute('href') || '',
            hasViewport: !!document.querySelector('meta[name="viewport"]'),
            imagesWithoutAlt: imgs.filter(img => !img.alt).length,
            linksCount: document.querySelectorAll('a').length,
        };
    }
    if (all || types.includes('performance')) {
        const nav = performance.getEntriesByType('navigation')[0];
        result.performance = {
            domElements: document.querySelectorAll('*').length,
            scripts: document.querySelectorAll('script').length,
            stylesheets: document.querySelectorAll('link[rel="stylesheet"]').length,
            images: imgs.length,
            iframes: document.querySelectorAll('iframe').length,
            loadTime: nav ? Math.round(nav.loadEventEnd - nav.startTime) : null,
            domReady: nav ? Math.round(nav.domContentLoadedEventEnd - nav.startTime) : null,
        };
    }
    if (all || types.includes('accessibility')) {
        result.accessibility = {
            imagesWithoutAlt: imgs.filter(img => !img.alt).length,
            linksCount: document.querySelectorAll('a').length,
            formsCount: document.querySelectorAll('form').length,
            inputsWithoutLabel: [...document.querySelectorAll('input, select, textarea')].filter(input => {
                const labelled = input.id && document.querySelector('label[for="' + CSS.escape(input.id) + '"]');
                return !labelled && !input.getAttribute('aria-label') && !input.getAttribute('aria-labelledby') && !input.placeholder;
            }).length,
            ariaLandmarks: document.querySelectorAll('[role]').length,
        };
    }
    if (all || types.includes('security')) {
        result.security = {
            isHttps: location.protocol === 'https:',
            hasCSP: !!document.querySelector('meta[http-equiv="Content-Security-Policy"]'),
            externalScripts: [...document.querySelectorAll('script[src]')].filter(s => !s.src.includes(location.hostname)).length,
            externalLinks: [...document.querySelectorAll('a[href^="http"]')].filter(a => !a.href.includes(location.hostname)).length,
            mixedContent: location.protocol === 'https:'
                ? [...document.querySelectorAll('[src^="http:"], link[href^="http:"]')].length
                : 0,
        };
    }
    return result;
}
"""

LINKS_JS = """
([types, container]) => {
    const all = types.includes('all');
    const media = /\\.(mp4|webm|mp3|ogg|wav|m3u8|mpd)(\\?.*)?$/i;
    const seen = new Set();
    const links = [];
    const anchors = document.querySelectorAll(container ? container + ' a[href]' : 'a[href]');
    anchors.forEach(a => {
        let url;
        try { url = new URL(a.getAttribute('href'), location.href); } catch (e) { return; }
        if (!/^https?:$/.test(url.protocol)) return;
        const entry = {
            href: url.href,
            text: (a.innerText || '').trim().slice(0, 100),
            rel: a.getAttribute('rel') || '',
            isInternal: url.origin === location.origin,
            isExternal: url.origin !== location.origin,
            isMedia: media.test(url.href),
        };
        const wanted = all
            || (types.includes('internal') && entry.isInternal)
            || (types.includes('external') && entry.isExternal)
            || (types.includes('media') && entry.isMedia);
        if (wanted && !seen.has(entry.href)) {
            seen.add(entry.href);
            links.push(entry);
        }
    });
    return links;
}
"""


@browser_tool("extract_json", soft=True)
async def extract_json(
    source: str = "page",
    selector: Optional[str] = None,
    *,
    _manager: Any = None,
) -> str:
    """
    Extract JSON embedded in the page or seen on the network.

    Args:
        source: page (JSON-LD + inline scripts), scripts, ld+json, or api
            (recorded JSON responses; needs network_recorder to have run).
        selector: Parse the text of this element instead, when it holds JSON.
        _manager: Injected SessionManager (for testing/DI).
    """
    manager = resolve_manager(_manager)
    page = manager.require_active().page
    if source not in JSON_SOURCES:
        raise InvalidArgumentError(f"Unknown source: {source}", argument="source")

    if source == "api":
        data: list[Any] = manager.recorder.json_responses()
    else:
        data = await manager.evaluator.evaluate(page, EXTRACT_JSON_JS, source) or []

    if selector:
        element = await page.query_selector(selector)
        if element is not None:
            parsed = await element.evaluate(ELEMENT_JSON_JS)
            if parsed is not None:
                data = [parsed]

    return dump({"success": True, "source": source, "count": len(data), "data": data})


@browser_tool("scrape_meta_tags", soft=True)
async def scrape_meta_tags(
    types: Optional[list[str]] = None,
    *,
    _manager: Any = None,
) -> str:
    """
    Collect meta, Open Graph, and Twitter card tags.

    Args:
        types: Any of all, meta, og, twitter (default all).
        _manager: Injected SessionManager (for testing/DI).
    """
    manager = resolve_manager(_manager)
    page = manager.require_active().page
    tags = await manager.evaluator.evaluate(page, META_TAGS_JS, types or ["all"])
    return dump({"success": True, "url": page.url, **(tags or {})})


@browser_tool("deep_analysis", soft=True)
async def deep_analysis(
    types: Optional[list[str]] = None,
    *,
    _manager: Any = None,
) -> str:
    """
    Summarize the page for SEO, performance, accessibility, and security.

    Args:
        types: Any of all, seo, performance, accessibility, security.
        _manager: Injected SessionManager (for testing/DI).
    """
    manager = resolve_manager(_manager)
    page = manager.require_active().page
    report = await manager.evaluator.evaluate(page, DEEP_ANALYSIS_JS, types or ["all"])
    return dump({"success": True, "url": page.url, **(report or {})})


@browser_tool("link_harvester", soft=True)
async def link_harvester(
    types: Optional[list[str]] = None,
    selector: Optional[str] = None,
    *,
    _manager: Any = None,
) -> str:
    """
    Harvest unique links.

    Args:
        types: Any of all, internal, external, media (default all).
        selector: Only links inside this container.
        _manager: Injected SessionManager (for testing/DI).
    """
    manager = resolve_manager(_manager)
    page = manager.require_active().page
    links = await manager.evaluator.evaluate(page, LINKS_JS, [types or ["all"], selector]) or []
    return dump({"success": True, "count": len(links), "links": links})
