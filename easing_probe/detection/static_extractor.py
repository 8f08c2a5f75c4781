# easing_probe/detection/static_extractor.py
from __future__ import annotations

"""Static easing extraction
--------------------------
Recovers easing strings from computed styles, stylesheet rules and script
text without relying on runtime interception. The page is read through the
probes in `page_probe`; every source is read inside its own containment
boundary so a cross-origin stylesheet or a throwing evaluation only removes
that one source from the record.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from playwright.sync_api import Page

from easing_probe.core.models import Channel, TARGET_CSS
from easing_probe.detection import page_probe
from easing_probe.detection.signatures import (
    CUBIC_BEZIER,
    DEFAULT_ANIMATIONS,
    DEFAULT_TRANSITIONS,
    EASING_PATTERNS,
    LIBRARIES,
    NAMED_TIMING_FUNCTIONS,
    format_bezier,
)
from easing_probe.errors import ExtractionPartialFailure
from easing_probe.utils.logger import get_logger, short_error
from easing_probe.utils.timing import measure


MAX_ANIMATION_DETAILS = 50


# ---------- CSS value parsing ----------

def split_top_level(value: str, sep: str = ",") -> List[str]:
    """Split on `sep` outside parentheses: 'a(1, 2), b' -> ['a(1, 2)', 'b']."""
    parts: List[str] = []
    depth = 0
    buf: List[str] = []
    for ch in value or "":
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        if depth == 0 and (ch == sep or (sep == " " and ch.isspace())):
            token = "".join(buf).strip()
            if token:
                parts.append(token)
            buf = []
            continue
        buf.append(ch)
    token = "".join(buf).strip()
    if token:
        parts.append(token)
    return parts


def timing_values(value: str) -> Set[str]:
    """Bezier literals and named keywords found in a timing-function or shorthand value."""
    found: Set[str] = set()
    for segment in split_top_level(value):
        for m in CUBIC_BEZIER.finditer(segment):
            found.add(format_bezier(m))
        for token in split_top_level(segment, sep=" "):
            if token in NAMED_TIMING_FUNCTIONS:
                found.add(token)
    return found


def _durations(value: str) -> List[float]:
    out = []
    for part in split_top_level(value or ""):
        part = part.strip()
        try:
            if part.endswith("ms"):
                out.append(float(part[:-2]) / 1000.0)
            elif part.endswith("s"):
                out.append(float(part[:-1]))
        except ValueError:
            continue
    return out


def has_transition(entry: Mapping[str, str]) -> bool:
    """
    A transition counts only if it animates some property for a non-zero
    duration. `transition: none` computes to `none 0s ease 0s` and carries
    the default `ease`, which must not be reported.
    """
    properties = split_top_level(entry.get("transitionProperty") or "")
    if properties and all(p == "none" for p in properties):
        return False
    durations = _durations(entry.get("transitionDuration") or "")
    if durations:
        return any(d > 0 for d in durations)
    shorthand = (entry.get("transition") or "").strip()
    if shorthand in DEFAULT_TRANSITIONS:
        return False
    for segment in split_top_level(shorthand):
        tokens = split_top_level(segment, sep=" ")
        if not tokens or tokens[0] == "none":
            continue
        # the first time value of a segment is its duration, the second its delay
        times = _durations(",".join(tokens))
        if times and times[0] > 0:
            return True
    return False


def has_animation(entry: Mapping[str, str]) -> bool:
    names = split_top_level(entry.get("animationName") or "")
    if names:
        return any(n != "none" for n in names)
    return (entry.get("animation") or "").strip() not in DEFAULT_ANIMATIONS


def css_from_computed(entries: Iterable[Mapping[str, str]]) -> Tuple[Set[str], List[Dict[str, Any]]]:
    """
    Easing strings and transition/keyframe details from computed style entries.
    Elements reporting only the no-op default contribute nothing.
    """
    found: Set[str] = set()
    details: List[Dict[str, Any]] = []
    for entry in entries or ():
        if has_transition(entry):
            found |= timing_values(entry.get("transitionTimingFunction") or entry.get("transition") or "")
            details.append({
                "type": "transition",
                "property": entry.get("transitionProperty") or "",
                "duration": entry.get("transitionDuration") or "",
                "delay": entry.get("transitionDelay") or "",
                "timing_function": entry.get("transitionTimingFunction") or "",
            })
        if has_animation(entry):
            found |= timing_values(entry.get("animationTimingFunction") or entry.get("animation") or "")
            details.append({
                "type": "keyframe",
                "animation": entry.get("animation") or entry.get("animationName") or "",
                "duration": entry.get("animationDuration") or "",
                "delay": entry.get("animationDelay") or "",
                "iteration_count": entry.get("animationIterationCount") or "",
            })
    return found, details[:MAX_ANIMATION_DETAILS]


def css_from_stylesheets(rules: Iterable[str]) -> Set[str]:
    return {format_bezier(m) for text in rules or () for m in CUBIC_BEZIER.finditer(text or "")}


def keyframe_names(names: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(n for n in names or () if n))


# ---------- Script text ----------

def script_easings(texts: Iterable[str], channel: Channel, detected: Iterable[str] = ()) -> Dict[str, Set[str]]:
    """
    Apply every EASING_PATTERNS row enabled for `channel`.

    Inline scripts must pass a row's gate; network bodies were already
    filtered for relevance when they were captured, so gates do not apply.
    """
    detected = set(detected)
    texts = [t for t in texts or () if t]
    out: Dict[str, Set[str]] = {}
    for row in EASING_PATTERNS:
        if channel not in row.channels:
            continue
        if row.requires and row.requires not in detected:
            continue
        bucket = out.setdefault(row.target, set())
        for text in texts:
            if channel == Channel.inline_script and row.gate is not None and not row.gate.search(text):
                continue
            for m in row.regex.finditer(text):
                raw = m.group(row.group)
                if not raw:
                    continue
                value = row.normalize(raw)
                if value and (row.accept is None or row.accept(value)):
                    bucket.add(value)
    return {k: v for k, v in out.items() if v}


# ---------- Page evidence ----------

@dataclass
class PageEvidence:
    """Raw evidence read from a settled page, before reconciliation."""
    metadata: Dict[str, Any] = field(default_factory=dict)
    signals: Dict[str, Any] = field(default_factory=dict)
    script_srcs: List[str] = field(default_factory=list)
    inline_scripts: List[str] = field(default_factory=list)
    css_computed: Set[str] = field(default_factory=set)
    animation_details: List[Dict[str, Any]] = field(default_factory=list)
    css_stylesheet: Set[str] = field(default_factory=set)
    keyframes: Tuple[str, ...] = ()
    blocked_stylesheets: int = 0
    patterns: Dict[str, Any] = field(default_factory=dict)
    failures: List[str] = field(default_factory=list)


class StaticExtractor:
    """Reads every static source from a page; one failing source never aborts the rest."""

    def __init__(self) -> None:
        self.log = get_logger(__name__)

    @contextmanager
    def contained(self, source: str, evidence: PageEvidence) -> Iterator[None]:
        try:
            yield
        except Exception as exc:
            failure = ExtractionPartialFailure(source, exc)
            evidence.failures.append(source)
            self.log.warning(f"Skipping source {failure.source}: {short_error(failure.cause)}")

    @measure("static extraction", level="DEBUG")
    def collect(self, page: Page, evidence: Optional[PageEvidence] = None) -> PageEvidence:
        ev = evidence or PageEvidence()
        global_names = [name for sig in LIBRARIES for name in sig.all_globals()]

        with self.contained("metadata", ev):
            ev.metadata = dict(page_probe.metadata(page))
        with self.contained("signals", ev):
            ev.signals = dict(page_probe.signals(page, global_names))
        with self.contained("scripts", ev):
            data = page_probe.scripts(page)
            ev.script_srcs = list(data.get("srcs") or [])
            ev.inline_scripts = list(data.get("inline") or [])
        with self.contained("computed-styles", ev):
            ev.css_computed, ev.animation_details = css_from_computed(page_probe.computed_styles(page))
        with self.contained("stylesheets", ev):
            sheets = page_probe.stylesheets(page)
            ev.css_stylesheet = css_from_stylesheets(sheets.get("rules") or [])
            ev.keyframes = keyframe_names(sheets.get("keyframes") or [])
            ev.blocked_stylesheets = int(sheets.get("blocked") or 0)
            if ev.blocked_stylesheets:
                self.log.debug(f"{ev.blocked_stylesheets} stylesheet(s) not readable (cross-origin)")
        with self.contained("patterns", ev):
            ev.patterns = dict(page_probe.patterns(page))
        return ev

    def easings(
        self,
        evidence: PageEvidence,
        detected: Iterable[str],
        network_texts: Iterable[str] = (),
    ) -> Dict[str, Dict[str, Set[str]]]:
        """Per-channel, per-target easing sets; each set deduplicated independently."""
        detected = list(detected)
        channels: Dict[str, Dict[str, Set[str]]] = {
            Channel.css_computed.value: {TARGET_CSS: set(evidence.css_computed)},
            Channel.stylesheet.value: {TARGET_CSS: set(evidence.css_stylesheet)},
            Channel.inline_script.value: {},
            Channel.network_script.value: {},
        }
        with self.contained("inline-script-text", evidence):
            channels[Channel.inline_script.value] = script_easings(
                evidence.inline_scripts, Channel.inline_script, detected
            )
        with self.contained("network-script-text", evidence):
            channels[Channel.network_script.value] = script_easings(
                network_texts, Channel.network_script, detected
            )
        return channels
