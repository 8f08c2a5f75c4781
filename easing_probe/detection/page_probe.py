# easing_probe/detection/page_probe.py
from __future__ import annotations

"""In-page probes
----------------
Each probe is one `page.evaluate` that returns raw, JSON-safe data. Pattern
matching and filtering happen in Python (static_extractor / reconciler) so
that a probe failing on one page only costs that one source.
"""

from typing import Any, Dict, List, Sequence

from playwright.sync_api import Page


# Distinct (transition, animation) declarations across every element.
COMPUTED_STYLES_JS = """
() => {
  const seen = new Map();
  for (const el of document.querySelectorAll('*')) {
    const cs = getComputedStyle(el);
    const entry = {
      transition: cs.transition || '',
      transitionProperty: cs.transitionProperty || '',
      transitionDuration: cs.transitionDuration || '',
      transitionDelay: cs.transitionDelay || '',
      transitionTimingFunction: cs.transitionTimingFunction || '',
      animation: cs.animation || '',
      animationName: cs.animationName || '',
      animationDuration: cs.animationDuration || '',
      animationDelay: cs.animationDelay || '',
      animationIterationCount: cs.animationIterationCount || '',
      animationTimingFunction: cs.animationTimingFunction || ''
    };
    const key = JSON.stringify(entry);
    if (!seen.has(key)) seen.set(key, entry);
  }
  return Array.from(seen.values());
}
"""

# Rule texts mentioning timing (keyframes rules included, for per-step timing functions),
# plus keyframe names; cross-origin sheets throw and are counted.
STYLESHEETS_JS = """
() => {
  const out = { rules: [], keyframes: [], blocked: 0, sheets: 0 };
  const walk = (rules) => {
    for (const rule of Array.from(rules || [])) {
      if (typeof CSSKeyframesRule !== 'undefined' && rule instanceof CSSKeyframesRule) {
        out.keyframes.push(rule.name);
        const steps = rule.cssText || '';
        if (/cubic-bezier|animation-timing-function/i.test(steps)) out.rules.push(steps);
        continue;
      }
      if (rule.cssRules && rule.cssRules.length) {
        walk(rule.cssRules);
        continue;
      }
      const text = rule.cssText || '';
      if (/cubic-bezier|transition|animation/i.test(text)) out.rules.push(text);
    }
  };
  for (const sheet of Array.from(document.styleSheets)) {
    out.sheets++;
    try {
      walk(sheet.cssRules || sheet.rules);
    } catch (e) {
      out.blocked++;
    }
  }
  return out;
}
"""

SCRIPTS_JS = """
(maxChars) => {
  const scripts = Array.from(document.scripts || []);
  return {
    srcs: scripts.map(s => String(s.src || '')).filter(Boolean),
    inline: scripts
      .filter(s => !s.src)
      .map(s => String(s.textContent || ''))
      .filter(t => t.trim().length > 0)
      .map(t => t.slice(0, maxChars))
  };
}
"""

# Presence and version of the globals named in the signature table.
SIGNALS_JS = """
(names) => {
  const globals = {};
  const versions = {};
  for (const name of names) {
    let value;
    try { value = window[name]; } catch (e) { value = undefined; }
    globals[name] = typeof value !== 'undefined';
    if (value && (typeof value === 'object' || typeof value === 'function')) {
      try {
        if (value.version) versions[name] = String(value.version);
      } catch (e) {}
    }
  }
  let resources = [];
  try {
    resources = (performance.getEntriesByType ? performance.getEntriesByType('resource') : [])
      .map(r => String(r.name || ''));
  } catch (e) {}
  let scrollTriggerCount = null;
  try {
    const st = window.ScrollTrigger
      || (window.gsap && window.gsap.core && window.gsap.core.globals && window.gsap.core.globals().ScrollTrigger);
    if (st && typeof st.getAll === 'function') scrollTriggerCount = st.getAll().length;
    if (st && st.version && !versions.ScrollTrigger) versions.ScrollTrigger = String(st.version);
    if (st) globals.ScrollTrigger = true;
  } catch (e) {}
  let lenisSmooth = null;
  try {
    if (window.Lenis && window.Lenis.prototype) lenisSmooth = window.Lenis.prototype.smooth !== undefined;
  } catch (e) {}
  return { globals, versions, resources, scrollTriggerCount, lenisSmooth };
}
"""

PATTERNS_JS = """
(limit) => {
  const animated = document.querySelectorAll('[data-gsap], [data-scroll], [data-trigger], [class*="scroll-trigger"]');
  const samples = Array.from(animated).slice(0, limit).map(el => ({
    tag: el.tagName,
    classes: typeof el.className === 'string' ? el.className : '',
    data_attributes: Array.from(el.attributes)
      .filter(a => a.name.startsWith('data-'))
      .map(a => `${a.name}=${a.value}`)
      .join('; ')
  }));
  return {
    animated_elements_count: animated.length,
    element_samples: samples,
    has_data_attributes: document.querySelectorAll('[data-gsap], [data-scroll], [data-trigger]').length > 0,
    has_scroll_classes: document.querySelectorAll('[class*="scroll"], [class*="trigger"], [class*="animate"]').length > 0
  };
}
"""

METADATA_JS = """
() => {
  const meta = document.querySelector('meta[name="description"]');
  return {
    title: document.title || '',
    description: meta ? (meta.getAttribute('content') || '') : '',
    url: window.location.href,
    viewport: { width: window.innerWidth, height: window.innerHeight }
  };
}
"""

MAX_INLINE_SCRIPT_CHARS = 1_000_000
MAX_ELEMENT_SAMPLES = 20


def computed_styles(page: Page) -> List[Dict[str, str]]:
    return page.evaluate(COMPUTED_STYLES_JS) or []


def stylesheets(page: Page) -> Dict[str, Any]:
    return page.evaluate(STYLESHEETS_JS) or {}


def scripts(page: Page) -> Dict[str, List[str]]:
    return page.evaluate(SCRIPTS_JS, MAX_INLINE_SCRIPT_CHARS) or {}


def signals(page: Page, global_names: Sequence[str]) -> Dict[str, Any]:
    return page.evaluate(SIGNALS_JS, list(global_names)) or {}


def patterns(page: Page) -> Dict[str, Any]:
    return page.evaluate(PATTERNS_JS, MAX_ELEMENT_SAMPLES) or {}


def metadata(page: Page) -> Dict[str, Any]:
    return page.evaluate(METADATA_JS) or {}
