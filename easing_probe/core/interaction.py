# easing_probe/core/interaction.py
from __future__ import annotations

"""Scripted page interaction
---------------------------
Scrolls and hovers so scroll-linked and hover animations actually fire
before extraction. Every step is independent; a failed step is logged and
the sequence continues.
"""

from typing import Dict, Optional

from playwright.sync_api import Error as PWError, Page

from easing_probe.utils.config import Settings, get_settings
from easing_probe.utils.logger import get_logger, short_error


CLICKABLE_SELECTOR = 'button, a, .button, [class*="btn"]'
SCROLL_FRACTIONS = (1 / 3, 1 / 2, 0.0)

SCROLL_JS = "(fraction) => window.scrollTo(0, Math.floor((document.body ? document.body.scrollHeight : 0) * fraction))"


def scroll_through(page: Page, pause_ms: int, log=None) -> int:
    log = log or get_logger(__name__)
    done = 0
    for fraction in SCROLL_FRACTIONS:
        try:
            page.evaluate(SCROLL_JS, fraction)
            page.wait_for_timeout(pause_ms)
            done += 1
        except PWError as exc:
            log.debug(f"Scroll to {fraction:.2f} failed: {short_error(exc)}")
    return done


def hover_clickables(page: Page, limit: int, pause_ms: int, timeout_ms: int, log=None) -> int:
    log = log or get_logger(__name__)
    try:
        locator = page.locator(CLICKABLE_SELECTOR)
        count = min(locator.count(), max(0, limit))
    except PWError as exc:
        log.debug(f"Clickable lookup failed: {short_error(exc)}")
        return 0

    hovered = 0
    for i in range(count):
        try:
            locator.nth(i).hover(timeout=timeout_ms)
            page.wait_for_timeout(pause_ms)
            hovered += 1
        except PWError as exc:
            log.debug(f"Hover {i + 1}/{count} skipped: {short_error(exc)}")
    return hovered


def interact(page: Page, settings: Optional[Settings] = None, log=None) -> Dict[str, int]:
    s = settings or get_settings()
    scrolled = scroll_through(page, s.SCROLL_PAUSE_MS, log)
    hovered = hover_clickables(page, s.HOVER_LIMIT, s.HOVER_PAUSE_MS, s.HOVER_TIMEOUT_MS, log)
    return {"scrolls": scrolled, "hovers": hovered}
