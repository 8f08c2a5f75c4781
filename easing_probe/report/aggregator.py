# easing_probe/report/aggregator.py
from __future__ import annotations

"""Cross-site frequency tables, always recomputed from the records."""

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from easing_probe.core.models import (
    BUCKET_GSAP,
    BUCKET_GSAP_TRIGGER,
    Channel,
    SiteRecord,
    TARGET_ANIME,
    TARGET_CSS,
    TARGET_FRAMER,
    TARGET_GSAP,
)
from easing_probe.detection.signatures import LIBRARIES


SUMMARY_TARGETS = (TARGET_CSS, TARGET_GSAP, TARGET_ANIME, TARGET_FRAMER)
GSAP_CAPTURED = "gsap_captured"


def table(values: Iterable[str]) -> Dict[str, Any]:
    counts = Counter(values)
    return {
        "unique": sorted(counts),
        "frequency": dict(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))),
    }


def top(frequency: Dict[str, int], n: Optional[int] = None) -> List[Tuple[str, int]]:
    ranked = sorted(frequency.items(), key=lambda kv: (-kv[1], kv[0]))
    return ranked if n is None else ranked[:n]


def summarize(records: Sequence[SiteRecord]) -> Dict[str, Any]:
    """
    For each target: unique easing strings and how many sites used each
    (a site counts once per string). `gsap_captured` instead counts every
    captured call, since repetition is meaningful there.
    """
    per_target: Dict[str, List[str]] = {t: [] for t in SUMMARY_TARGETS}
    per_channel: Dict[str, List[str]] = {c.value: [] for c in Channel}
    captured: List[str] = []
    libraries: Counter = Counter()

    for record in records:
        for target in SUMMARY_TARGETS:
            per_target[target].extend(record.target_easings(target))
        for channel in Channel:
            values = set()
            for vals in record.easings.get(channel.value, {}).values():
                values.update(vals)
            per_channel[channel.value].extend(values)
        for bucket in (BUCKET_GSAP, BUCKET_GSAP_TRIGGER):
            captured.extend(call.ease for call in record.calls(bucket) if call.ease)
        for name, detection in record.libraries.items():
            if detection.detected:
                libraries[name] += 1

    summary: Dict[str, Any] = {t: table(per_target[t]) for t in SUMMARY_TARGETS}
    summary[GSAP_CAPTURED] = table(captured)
    summary["channels"] = {c: table(v) for c, v in per_channel.items()}
    known = [sig.name for sig in LIBRARIES]
    extra = sorted(n for n in libraries if n not in known)
    summary["libraries"] = {name: libraries.get(name, 0) for name in known + extra}
    summary["sites"] = len(records)
    return summary
