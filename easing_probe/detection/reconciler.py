# easing_probe/detection/reconciler.py
from __future__ import annotations

"""Evidence reconciliation
-------------------------
OR-combines every independent signal from the signature table into one
Detection per library. Signals only ever add evidence tags; nothing here
removes one.
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Set

from easing_probe.core.models import Detection
from easing_probe.detection.instrumentation import CaptureContext
from easing_probe.detection.signatures import LENIS, LIBRARIES, SCROLL_TRIGGER, LibrarySignature
from easing_probe.utils.logger import get_logger


TAG_LEGACY = "global.legacy"
TAG_SCRIPT_SRC = "script-src"
TAG_INLINE = "inline-code"
TAG_RESOURCE = "resource"
TAG_RUNTIME = "runtime-hook"
TAG_NETWORK_URL = "network-js-url"
TAG_NETWORK_TEXT = "network-js"


def global_tag(name: str) -> str:
    return f"global.{name}"


def _any_match(pattern, texts: Iterable[str]) -> bool:
    return pattern is not None and any(pattern.search(t or "") for t in texts)


class Reconciler:
    def __init__(self, libraries: Sequence[LibrarySignature] = LIBRARIES):
        self.log = get_logger(__name__)
        self.libraries = tuple(libraries)

    def detect(
        self,
        signals: Mapping[str, Any],
        script_srcs: Iterable[str] = (),
        inline_scripts: Iterable[str] = (),
        capture: Optional[CaptureContext] = None,
    ) -> Dict[str, Detection]:
        """First pass: in-page signals and runtime hooks."""
        present = signals.get("globals") or {}
        versions = signals.get("versions") or {}
        resources = list(signals.get("resources") or [])
        script_srcs = list(script_srcs)
        inline_scripts = list(inline_scripts)

        detections: Dict[str, Detection] = {}
        for sig in self.libraries:
            d = Detection()
            d.add_evidence(*(global_tag(name) for name in sig.globals if present.get(name)))
            if any(present.get(name) for name in sig.legacy_globals):
                d.add_evidence(TAG_LEGACY)
            if _any_match(sig.script_src, script_srcs):
                d.add_evidence(TAG_SCRIPT_SRC)
            if _any_match(sig.inline_code, inline_scripts):
                d.add_evidence(TAG_INLINE)
            if _any_match(sig.resource, resources):
                d.add_evidence(TAG_RESOURCE)
            if capture is not None and capture.is_hooked(sig.name):
                d.add_evidence(TAG_RUNTIME)

            d.version = next((str(versions[n]) for n in sig.all_globals() if versions.get(n)), None)
            if d.version is None and capture is not None:
                d.version = capture.version(sig.name)
            detections[sig.name] = d

        self._extras(detections, signals)
        return detections

    def _extras(self, detections: Dict[str, Detection], signals: Mapping[str, Any]) -> None:
        count = signals.get("scrollTriggerCount")
        if count is not None and SCROLL_TRIGGER in detections:
            detections[SCROLL_TRIGGER].extra["active_triggers"] = int(count)
        smooth = signals.get("lenisSmooth")
        if smooth is not None and LENIS in detections:
            detections[LENIS].extra["smooth"] = bool(smooth)

    def merge_network(
        self,
        detections: Dict[str, Detection],
        url_hits: Mapping[str, Set[str]],
        text_hits: Mapping[str, Set[str]],
    ) -> Dict[str, Detection]:
        """Second pass, after the page has closed: network-derived evidence."""
        for name, urls in url_hits.items():
            if urls:
                detections.setdefault(name, Detection()).add_evidence(TAG_NETWORK_URL)
        for name, urls in text_hits.items():
            if urls:
                detections.setdefault(name, Detection()).add_evidence(TAG_NETWORK_TEXT)
        found = sorted(name for name, d in detections.items() if d.detected)
        self.log.debug(f"Detected libraries: {', '.join(found) or 'none'}")
        return detections
