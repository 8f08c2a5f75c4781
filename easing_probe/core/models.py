# easing_probe/core/models.py
from __future__ import annotations

"""Per-site and per-batch records
--------------------------------
Dataclasses for everything one analysis session produces. A SiteRecord is
built once at the end of a session and never mutated afterwards; the batch
summary is always recomputed from the records.
"""

from collections import Counter
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


class Channel(str, Enum):
    """Where an easing string was observed."""
    css_computed = "css_computed"
    stylesheet = "stylesheet"
    inline_script = "inline_script"
    network_script = "network_script"


# Targets an easing string can belong to within a channel.
TARGET_CSS = "css"
TARGET_GSAP = "gsap"
TARGET_ANIME = "anime"
TARGET_FRAMER = "framer"

# Buckets of runtime-captured calls.
BUCKET_GSAP = "gsap"
BUCKET_GSAP_TRIGGER = "gsap_scroll_trigger"
BUCKET_ANIME = "anime"
CAPTURE_BUCKETS = (BUCKET_GSAP, BUCKET_GSAP_TRIGGER, BUCKET_ANIME)


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_text(value: Any) -> Optional[str]:
    if value is None or value is False:
        return None
    return value if isinstance(value, str) else str(value)


@dataclass(frozen=True)
class AnimationCall:
    """One intercepted call into an animation library, in call order."""
    library: str
    method: str
    ease: str
    duration: float
    delay: float = 0.0
    trigger: Optional[str] = None       # JSON text of a scroll/viewport trigger config
    stagger: Optional[str] = None
    repeat: float = 0.0
    yoyo: bool = False
    custom_ease: Optional[str] = None   # JSON text when the ease was an object

    @property
    def trigger_bound(self) -> bool:
        return self.trigger is not None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AnimationCall":
        return cls(
            library=str(payload.get("library") or "unknown"),
            method=str(payload.get("method") or "call"),
            ease=str(payload.get("ease") or ""),
            duration=_as_float(payload.get("duration"), 0.0),
            delay=_as_float(payload.get("delay"), 0.0),
            trigger=_as_text(payload.get("trigger")),
            stagger=_as_text(payload.get("stagger")),
            repeat=_as_float(payload.get("repeat"), 0.0),
            yoyo=bool(payload.get("yoyo")),
            custom_ease=_as_text(payload.get("custom_ease")),
        )


@dataclass
class Detection:
    """
    Verdict for one library. Evidence is additive only; `detected` is derived
    from it so the two can never disagree.
    """
    evidence: set = field(default_factory=set)
    version: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def detected(self) -> bool:
        return bool(self.evidence)

    def add_evidence(self, *tags: str) -> "Detection":
        self.evidence.update(t for t in tags if t)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detected": self.detected,
            "evidence": sorted(self.evidence),
            "version": self.version,
            "extra": dict(self.extra),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Detection":
        return cls(
            evidence=set(data.get("evidence") or []),
            version=data.get("version"),
            extra=dict(data.get("extra") or {}),
        )


@dataclass(frozen=True)
class CssFindings:
    animation_details: Tuple[Dict[str, Any], ...] = ()
    keyframes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PagePatterns:
    animated_elements_count: int = 0
    element_samples: Tuple[Dict[str, Any], ...] = ()
    has_data_attributes: bool = False
    has_scroll_classes: bool = False
    has_scroll_animations: bool = False


def easing_set(values: Iterable[str]) -> Tuple[str, ...]:
    """Deduplicate by exact string equality; sorted so reruns compare equal."""
    return tuple(sorted({v for v in values if v}))


@dataclass(frozen=True)
class SiteRecord:
    url: str
    title: str
    description: str
    captured_at: str
    viewport: Dict[str, int] = field(default_factory=dict)
    libraries: Mapping[str, Detection] = field(default_factory=dict)
    css: CssFindings = field(default_factory=CssFindings)
    captured: Mapping[str, Tuple[AnimationCall, ...]] = field(default_factory=dict)
    easings: Mapping[str, Mapping[str, Tuple[str, ...]]] = field(default_factory=dict)
    patterns: PagePatterns = field(default_factory=PagePatterns)
    network: Dict[str, Any] = field(default_factory=dict)
    partial_failures: Tuple[str, ...] = ()

    # ---------- views ----------

    def channel(self, channel: Channel | str, target: str) -> Tuple[str, ...]:
        key = channel.value if isinstance(channel, Channel) else channel
        return tuple(self.easings.get(key, {}).get(target, ()))

    def target_easings(self, target: str) -> Tuple[str, ...]:
        """Union of one target's easing strings over every channel."""
        merged: List[str] = []
        for per_target in self.easings.values():
            merged.extend(per_target.get(target, ()))
        return easing_set(merged)

    @property
    def css_easings(self) -> Tuple[str, ...]:
        return self.target_easings("css")

    def calls(self, bucket: str) -> Tuple[AnimationCall, ...]:
        return tuple(self.captured.get(bucket, ()))

    def detected(self, library: str) -> bool:
        d = self.libraries.get(library)
        return bool(d and d.detected)

    # ---------- serialization ----------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "captured_at": self.captured_at,
            "viewport": dict(self.viewport),
            "libraries": {name: d.to_dict() for name, d in self.libraries.items()},
            "css": {
                "easings": list(self.css_easings),
                "animation_details": [dict(d) for d in self.css.animation_details],
                "keyframes": list(self.css.keyframes),
            },
            "captured": {b: [asdict(c) for c in self.captured.get(b, ())] for b in CAPTURE_BUCKETS},
            "easings": {ch: {t: list(vals) for t, vals in per.items()} for ch, per in self.easings.items()},
            "patterns": asdict(self.patterns),
            "network": dict(self.network),
            "partial_failures": list(self.partial_failures),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SiteRecord":
        css = data.get("css") or {}
        patterns = data.get("patterns") or {}
        return cls(
            url=data.get("url", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            captured_at=data.get("captured_at", ""),
            viewport=dict(data.get("viewport") or {}),
            libraries={k: Detection.from_dict(v) for k, v in (data.get("libraries") or {}).items()},
            css=CssFindings(
                animation_details=tuple(css.get("animation_details") or ()),
                keyframes=tuple(css.get("keyframes") or ()),
            ),
            captured={
                b: tuple(AnimationCall.from_payload(c) for c in (data.get("captured") or {}).get(b, ()))
                for b in CAPTURE_BUCKETS
            },
            easings={
                ch: {t: easing_set(vals) for t, vals in per.items()}
                for ch, per in (data.get("easings") or {}).items()
            },
            patterns=PagePatterns(
                animated_elements_count=int(patterns.get("animated_elements_count") or 0),
                element_samples=tuple(patterns.get("element_samples") or ()),
                has_data_attributes=bool(patterns.get("has_data_attributes")),
                has_scroll_classes=bool(patterns.get("has_scroll_classes")),
                has_scroll_animations=bool(patterns.get("has_scroll_animations")),
            ),
            network=dict(data.get("network") or {}),
            partial_failures=tuple(data.get("partial_failures") or ()),
        )


@dataclass
class BatchResult:
    """One slot per input URL, in input order; a failed site leaves None."""
    urls: List[str] = field(default_factory=list)
    slots: List[Optional[SiteRecord]] = field(default_factory=list)

    def append(self, url: str, record: Optional[SiteRecord]) -> None:
        self.urls.append(url)
        self.slots.append(record)

    @property
    def records(self) -> List[SiteRecord]:
        return [r for r in self.slots if r is not None]

    @property
    def failures(self) -> List[str]:
        return [u for u, r in zip(self.urls, self.slots) if r is None]

    def summary(self) -> Dict[str, Any]:
        """Per-target union of easing strings with occurrence counts (see report.aggregator)."""
        from easing_probe.report.aggregator import summarize
        return summarize(self.records)

    def counts(self) -> Counter:
        return Counter("ok" if r is not None else "failed" for r in self.slots)
