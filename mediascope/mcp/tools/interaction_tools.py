"""
Interaction MCP tools.

    click()           → wait for selector, then page.click()
    type_text()       → registered as "type"; optional clear, per-key delay
    press_key()       → keyboard combos with repeat
    random_scroll()   → scroll by a random or given amount
    form_automator()  → FallbackLocator.fill_form()
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Optional

from mediascope.browser.locator import FallbackLocator
from mediascope.exceptions import InvalidArgumentError
from mediascope.mcp.tools.base import browser_tool, dump, resolve_manager, timeout_guard

logger = logging.getLogger(__name__)

KEY_REPEAT_INTERVAL = 0.1

SCROLL_JS = """
(dy) => {
    window.scrollBy({top: dy, left: 0, behavior: 'smooth'});
    return {x: window.scrollX, y: window.scrollY, height: document.documentElement.scrollHeight};
}
"""


@browser_tool("click")
async def click(
    selector: str,
    click_count: int = 1,
    delay: int = 0,
    *,
    _manager: Any = None,
) -> str:
    """
    Click an element once it appears.

    Args:
        selector: CSS selector.
        click_count: 2 for a double click, 3 for a triple click.
        delay: Milliseconds between mousedown and mouseup.
        _manager: Injected SessionManager (for testing/DI).
    """
    session = resolve_manager(_manager).require_active()
    timeout = session.config.selector_timeout_ms
    with timeout_guard(selector, timeout):
        await session.page.wait_for_selector(selector, timeout=timeout)
        await session.page.click(selector, click_count=click_count, delay=delay)
    return dump({"success": True, "selector": selector})


@browser_tool("type")
async def type_text(
    selector: str,
    text: str,
    delay: int = 50,
    clear: bool = True,
    *,
    _manager: Any = None,
) -> str:
    """
    Type text into an input.

    Args:
        selector: CSS selector of the input.
        text: Text to type.
        delay: Milliseconds between keystrokes.
        clear: Empty the field first.
        _manager: Injected SessionManager (for testing/DI).
    """
    session = resolve_manager(_manager).require_active()
    page = session.page
    timeout = session.config.selector_timeout_ms
    with timeout_guard(selector, timeout):
        await page.wait_for_selector(selector, timeout=timeout)
        if clear:
            await page.fill(selector, "")
        await page.type(selector, text, delay=delay)
    return dump({"success": True, "selector": selector, "length": len(text)})


@browser_tool("press_key")
async def press_key(
    key: str,
    modifiers: Optional[list[str]] = None,
    count: int = 1,
    *,
    _manager: Any = None,
) -> str:
    """
    Press a key (optionally with modifiers) one or more times.

    Args:
        key: Key name, e.g. "Enter", "ArrowDown", "a".
        modifiers: e.g. ["Control", "Shift"].
        count: Number of presses, 100 ms apart.
        _manager: Injected SessionManager (for testing/DI).
    """
    page = resolve_manager(_manager).require_active().page
    combo = "+".join([*(modifiers or []), key])
    for i in range(max(1, count)):
        if i:
            await asyncio.sleep(KEY_REPEAT_INTERVAL)
        await page.keyboard.press(combo)
    return dump({"success": True, "key": key, "combo": combo, "count": max(1, count)})


@browser_tool("random_scroll")
async def random_scroll(
    direction: str = "random",
    amount: Optional[int] = None,
    *,
    _manager: Any = None,
) -> str:
    """
    Scroll the page.

    Args:
        direction: up, down, or random.
        amount: Pixels; a random 200-700 when omitted.
        _manager: Injected SessionManager (for testing/DI).
    """
    manager = resolve_manager(_manager)
    page = manager.require_active().page

    if direction == "random":
        direction = random.choice(["up", "down"])
    if direction not in ("up", "down"):
        raise InvalidArgumentError(f"Unknown direction: {direction}", argument="direction")
    distance = amount if amount is not None else random.randint(200, 700)
    delta = distance if direction == "down" else -distance

    position = await manager.evaluator.evaluate(page, SCROLL_JS, delta)
    return dump({
        "success": True,
        "direction": direction,
        "amount": distance,
        "position": position,
    })


@browser_tool("form_automator", soft=True)
async def form_automator(
    fields: dict[str, Any],
    form_selector: str = "form",
    submit: bool = False,
    human_like: bool = True,
    *,
    _manager: Any = None,
) -> str:
    """
    Fill a form by logical field names.

    Each field is matched by name, then id, then placeholder text, inside
    the form first and then anywhere on the page. Unmatched fields are
    reported, not fatal.

    Args:
        fields: {field name: value}. Booleans tick checkboxes/radios.
        form_selector: CSS selector of the form.
        submit: Click the form's submit control afterwards.
        human_like: Type with a randomized 50-100 ms keystroke delay.
        _manager: Injected SessionManager (for testing/DI).
    """
    manager = resolve_manager(_manager)
    session = manager.require_active()
    locator = FallbackLocator(session.page, wait_ms=session.config.fallback_wait_ms)

    result = await locator.fill_form(
        fields, form_selector=form_selector, submit=submit, human_like=human_like,
    )
    for name in result.filled:
        manager.notifier.notify("form_automator", "progress", f"Filled: {name}", field=name)

    return dump({"success": True, **result.to_dict()})
