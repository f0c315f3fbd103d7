"""
Resilient element resolution through ordered fallback chains.

Pages drift: ids get renamed, players get re-wrapped. The locator waits
briefly for the caller's selector, then walks a fallback chain and
reports which selector actually matched ("healed" when it was not the
caller's). Form filling uses the same idea per field: name, id, then
placeholder, each scoped to the form before the whole document.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from playwright.async_api import Error as PlaywrightError

from mediascope.browser.config import DEFAULT_CONTENT_FALLBACKS
from mediascope.exceptions import ElementNotFoundError

logger = logging.getLogger(__name__)

ELEMENT_SNAPSHOT_JS = """
el => ({
    html: el.outerHTML,
    text: el.innerText || el.textContent || '',
    attributes: Object.fromEntries([...el.attributes].map(a => [a.name, a.value])),
})
"""

FIELD_KIND_JS = "el => ({tag: el.tagName.toLowerCase(), type: (el.type || '').toLowerCase()})"

SUBMIT_SELECTORS = [
    '{form} [type="submit"]',
    "{form} button",
    'button[type="submit"]',
    'input[type="submit"]',
    ".submit",
    "#submit",
]


def css_string(value: str) -> str:
    """Quote `value` for use inside a CSS attribute selector."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def field_selector_variants(form_selector: str, field_name: str) -> list[str]:
    """
    Candidate selectors for a logical form field, in resolution order.

    Each of name, id, and placeholder-substring is tried inside the form
    first, then across the whole document.
    """
    quoted = css_string(field_name)
    variants = [
        f"[name={quoted}]",
        f"[id={quoted}]",
        f"[placeholder*={quoted} i]",
    ]
    selectors = []
    for variant in variants:
        selectors.append(f"{form_selector} {variant}")
        selectors.append(variant)
    return selectors


@dataclass
class LocateResult:
    content: dict[str, Any]
    used_selector: str
    original_selector: str
    tried: list[str] = field(default_factory=list)

    @property
    def healed(self) -> bool:
        return self.used_selector != self.original_selector

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "used_selector": self.used_selector,
            "original_selector": self.original_selector,
            "healed": self.healed,
        }


@dataclass
class FormFillResult:
    form_selector: str
    filled: list[str] = field(default_factory=list)
    unfilled: list[str] = field(default_factory=list)
    submitted: bool = False
    submit_selector: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "form_selector": self.form_selector,
            "fields_processed": len(self.filled),
            "total_fields": len(self.filled) + len(self.unfilled),
            "filled": self.filled,
            "unfilled": self.unfilled,
            "submitted": self.submitted,
            "submit_selector": self.submit_selector,
        }


class FallbackLocator:
    """
    Resolves elements through a primary selector and a fallback chain.

    Args:
        root: Playwright Page or Frame to search.
        wait_ms: How long to wait for the primary selector to appear.
    """

    def __init__(self, root: Any, wait_ms: int = 2000) -> None:
        self.root = root
        self.wait_ms = wait_ms

    async def _query(self, selector: str) -> Optional[Any]:
        try:
            return await self.root.query_selector(selector)
        except PlaywrightError as e:
            # Invalid selector syntax counts as a miss.
            logger.debug("locator_query_failed", extra={"selector": selector, "error": str(e)})
            return None

    async def _wait_for_primary(self, selector: str) -> Optional[Any]:
        try:
            return await self.root.wait_for_selector(selector, timeout=self.wait_ms)
        except PlaywrightError:
            return None

    async def find(
        self,
        primary: str,
        fallbacks: Optional[Sequence[str]] = None,
    ) -> tuple[Any, str, list[str]]:
        """
        Resolve the first matching element.

        Returns:
            (element handle, selector that matched, selectors tried)

        Raises:
            ElementNotFoundError: Once primary and every fallback missed.
        """
        chain = list(DEFAULT_CONTENT_FALLBACKS if fallbacks is None else fallbacks)
        tried = [primary]

        element = await self._wait_for_primary(primary)
        if element is not None:
            return element, primary, tried

        for candidate in chain:
            tried.append(candidate)
            element = await self._query(candidate)
            if element is not None:
                logger.info(
                    "locator_healed",
                    extra={"selector": primary, "used_selector": candidate},
                )
                return element, candidate, tried

        raise ElementNotFoundError(
            f"Could not find element with selector: {primary} or any fallback",
            selector=primary,
            tried=tried,
        )

    async def locate(
        self,
        primary: str,
        fallbacks: Optional[Sequence[str]] = None,
    ) -> LocateResult:
        """Resolve an element and snapshot its markup, text, and attributes."""
        element, used, tried = await self.find(primary, fallbacks)
        content = await element.evaluate(ELEMENT_SNAPSHOT_JS)
        return LocateResult(
            content=content,
            used_selector=used,
            original_selector=primary,
            tried=tried,
        )

    # ─── Forms ───────────────────────────────────────────────────────

    async def fill_field(
        self,
        form_selector: str,
        field_name: str,
        value: Any,
        human_like: bool = True,
    ) -> Optional[str]:
        """
        Fill one logical field.

        Returns:
            The selector that was filled, or None if every variant missed.
        """
        for selector in field_selector_variants(form_selector, field_name):
            element = await self._query(selector)
            if element is None:
                continue
            try:
                await self._fill_element(element, value, human_like)
            except PlaywrightError as e:
                logger.debug(
                    "form_field_variant_failed",
                    extra={"selector": selector, "error": str(e)},
                )
                continue
            return selector
        return None

    @staticmethod
    async def _fill_element(element: Any, value: Any, human_like: bool) -> None:
        kind = await element.evaluate(FIELD_KIND_JS)
        if kind["tag"] == "select":
            await element.select_option(str(value))
        elif kind["type"] in ("checkbox", "radio"):
            if value:
                await element.click()
        else:
            await element.click(click_count=3)
            await element.fill("")
            delay = random.uniform(50, 100) if human_like else 0
            await element.type(str(value), delay=delay)

    async def fill_form(
        self,
        fields: dict[str, Any],
        form_selector: str = "form",
        submit: bool = False,
        human_like: bool = True,
    ) -> FormFillResult:
        """
        Fill every field; unresolved fields are reported, never fatal.
        """
        result = FormFillResult(form_selector=form_selector)
        for name, value in fields.items():
            used = await self.fill_field(form_selector, name, value, human_like)
            if used is None:
                result.unfilled.append(name)
            else:
                result.filled.append(name)

        if submit:
            for template in SUBMIT_SELECTORS:
                selector = template.format(form=form_selector)
                button = await self._query(selector)
                if button is None:
                    continue
                try:
                    await button.click()
                except PlaywrightError as e:
                    logger.debug("form_submit_failed", extra={"selector": selector, "error": str(e)})
                    continue
                result.submitted = True
                result.submit_selector = selector
                break

        logger.info(
            "form_filled",
            extra={"count": len(result.filled), "unfilled": result.unfilled},
        )
        return result
