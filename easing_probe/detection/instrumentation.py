# easing_probe/detection/instrumentation.py
from __future__ import annotations

"""Runtime instrumentation
-------------------------
Installs an init script into every document of a browser context. The
script waits for GSAP / Anime.js to appear (they are often attached late by
bundlers), wraps their tween entry points once, and reports each call to a
per-session CaptureContext through a Playwright binding.
"""

import json
from typing import Any, Dict, List, Mapping, Optional, Tuple

from playwright.sync_api import BrowserContext, Page

from easing_probe.core.models import (
    AnimationCall,
    BUCKET_ANIME,
    BUCKET_GSAP,
    BUCKET_GSAP_TRIGGER,
    CAPTURE_BUCKETS,
)
from easing_probe.detection.signatures import ANIME, GSAP
from easing_probe.errors import InstrumentationTimeout
from easing_probe.utils.logger import get_logger
from easing_probe.utils.timing import wait_for


BINDING_NAME = "__easingProbeEmit"

# Called with {binding, intervalMs, windowMs}. Events queue until the binding exists.
INIT_SCRIPT_JS = r"""
(config) => {
  if (window.__easingProbeInstalled) return;
  window.__easingProbeInstalled = true;

  const queue = [];
  const flush = () => {
    const fn = window[config.binding];
    if (typeof fn !== 'function') return;
    while (queue.length) {
      try { fn(queue.shift()); } catch (e) {}
    }
  };
  const emit = (event) => { queue.push(event); flush(); };

  const hint = (el) => {
    if (el.id) return '#' + el.id;
    if (typeof el.className === 'string' && el.className.trim()) {
      return el.tagName.toLowerCase() + '.' + el.className.trim().split(/\s+/).join('.');
    }
    return el.tagName.toLowerCase();
  };
  const safeJson = (value) => {
    const seen = new WeakSet();
    try {
      return JSON.stringify(value, (key, v) => {
        if (typeof Element !== 'undefined' && v instanceof Element) return hint(v);
        if (typeof v === 'function') return 'callback';
        if (v && typeof v === 'object') {
          if (seen.has(v)) return '[circular]';
          seen.add(v);
        }
        return v;
      });
    } catch (e) {
      return String(value);
    }
  };
  const num = (value, fallback) => (typeof value === 'number' && isFinite(value) ? value : fallback);

  const gsapDefaults = (gsap) => {
    try { return (typeof gsap.defaults === 'function' && gsap.defaults()) || {}; } catch (e) { return {}; }
  };
  const resolveEase = (gsap, vars) => {
    const ease = vars ? vars.ease : undefined;
    if (ease === undefined || ease === null || ease === '') {
      const d = gsapDefaults(gsap).ease;
      return { ease: typeof d === 'string' && d ? d : 'power1.out', custom: null };
    }
    if (typeof ease === 'string') return { ease: ease, custom: null };
    if (typeof ease === 'function') return { ease: String(ease.toString()).slice(0, 200), custom: null };
    const text = safeJson(ease);
    return { ease: text, custom: text };
  };

  const hookGsap = () => {
    const gsap = window.gsap;
    if (!gsap || typeof gsap.to !== 'function') return false;
    if (gsap.__easingProbeHooked) return true;
    ['to', 'from', 'fromTo'].forEach((method) => {
      const original = gsap[method];
      if (typeof original !== 'function') return;
      gsap[method] = function (...args) {
        try {
          const vars = (method === 'fromTo' ? args[2] : args[1]) || {};
          const resolved = resolveEase(gsap, vars);
          emit({
            kind: 'call',
            library: 'gsap',
            method: method,
            ease: resolved.ease,
            custom_ease: resolved.custom,
            duration: num(vars.duration, num(gsapDefaults(gsap).duration, 0.5)),
            delay: num(vars.delay, 0),
            repeat: num(vars.repeat, 0),
            yoyo: !!vars.yoyo,
            stagger: vars.stagger === undefined ? null : safeJson(vars.stagger),
            trigger: vars.scrollTrigger ? safeJson(vars.scrollTrigger) : null
          });
        } catch (e) {}
        return original.apply(this, args);
      };
    });
    gsap.__easingProbeHooked = true;
    emit({ kind: 'hooked', library: 'gsap', version: gsap.version ? String(gsap.version) : null });
    return true;
  };

  const hookAnime = () => {
    const original = window.anime;
    if (typeof original !== 'function') return false;
    if (original.__easingProbeHooked) return true;
    const wrapped = function (params) {
      try {
        const p = params || {};
        const easing = p.easing === undefined ? 'easeOutElastic(1, .5)' : p.easing;
        emit({
          kind: 'call',
          library: 'anime',
          method: 'anime',
          ease: typeof easing === 'string' ? easing : safeJson(easing),
          duration: num(p.duration, 1000),
          delay: num(p.delay, 0),
          repeat: p.loop === true ? -1 : num(p.loop, 0),
          yoyo: p.direction === 'alternate',
          trigger: null
        });
      } catch (e) {}
      return original.apply(this, arguments);
    };
    Object.assign(wrapped, original);
    wrapped.__easingProbeHooked = true;
    try {
      window.anime = wrapped;
    } catch (e) {
      return false;
    }
    emit({ kind: 'hooked', library: 'anime', version: original.version ? String(original.version) : null });
    return true;
  };

  let deadline = Date.now() + config.windowMs;
  let timer = null;
  const tick = () => {
    flush();
    const gsapDone = hookGsap();
    const animeDone = hookAnime();
    if ((gsapDone && animeDone) || Date.now() > deadline) {
      clearInterval(timer);
      timer = null;
    }
  };
  const start = () => {
    if (timer === null) timer = setInterval(tick, config.intervalMs);
    tick();
  };
  window.addEventListener('load', () => {
    deadline = Date.now() + config.windowMs;
    start();
  });
  start();
}
"""


def build_init_script(interval_ms: int, window_ms: int) -> str:
    config = {"binding": BINDING_NAME, "intervalMs": int(interval_ms), "windowMs": int(window_ms)}
    return f"({INIT_SCRIPT_JS})({json.dumps(config)});"


class CaptureContext:
    """
    Receives instrumentation events for exactly one session. Calls are kept
    in arrival order per bucket and are never deduplicated.
    """

    def __init__(self) -> None:
        self.log = get_logger(__name__)
        self.calls: Dict[str, List[AnimationCall]] = {b: [] for b in CAPTURE_BUCKETS}
        self.hooked: Dict[str, Optional[str]] = {}

    @staticmethod
    def bucket_for(call: AnimationCall) -> str:
        if call.library == ANIME:
            return BUCKET_ANIME
        return BUCKET_GSAP_TRIGGER if call.trigger_bound else BUCKET_GSAP

    def receive(self, payload: Any) -> None:
        if not isinstance(payload, Mapping):
            return
        kind = payload.get("kind")
        if kind == "hooked":
            library = str(payload.get("library") or "")
            self.hooked[library] = payload.get("version")
            self.log.debug(f"Hooked {library} (version={payload.get('version')})")
        elif kind == "call":
            call = AnimationCall.from_payload(payload)
            self.calls[self.bucket_for(call)].append(call)

    def is_hooked(self, library: str = GSAP) -> bool:
        return library in self.hooked

    def version(self, library: str) -> Optional[str]:
        return self.hooked.get(library)

    def snapshot(self) -> Dict[str, Tuple[AnimationCall, ...]]:
        return {b: tuple(self.calls[b]) for b in CAPTURE_BUCKETS}

    def total(self) -> int:
        return sum(len(v) for v in self.calls.values())


def install(context: BrowserContext, capture: CaptureContext, interval_ms: int, window_ms: int) -> None:
    """Must run before the first navigation of the context."""
    context.expose_function(BINDING_NAME, capture.receive)
    context.add_init_script(script=build_init_script(interval_ms, window_ms))


def await_hooks(
    page: Page,
    capture: CaptureContext,
    timeout_ms: int,
    library: str = GSAP,
    interval_ms: int = 100,
) -> None:
    """Pump the page until `library` is hooked; InstrumentationTimeout otherwise."""
    try:
        wait_for(
            lambda: capture.is_hooked(library),
            timeout_ms=timeout_ms,
            interval_ms=interval_ms,
            description=f"{library} hook",
            sleep=page.wait_for_timeout,
        )
    except TimeoutError as exc:
        raise InstrumentationTimeout(f"{library} not hooked within {timeout_ms} ms") from exc
