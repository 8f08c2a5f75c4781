from easing_probe.core.models import Detection
from easing_probe.detection.instrumentation import CaptureContext
from easing_probe.detection.reconciler import Reconciler
from easing_probe.detection.signatures import ANIME, GSAP, LENIS, LIBRARIES, SCROLL_TRIGGER


def _assert_invariant(detections):
    for name, d in detections.items():
        assert d.detected == bool(d.evidence), name


def test_missing_global_is_not_detected():
    detections = Reconciler().detect({"globals": {}, "versions": {}, "resources": []})
    assert set(detections) == {sig.name for sig in LIBRARIES}
    for d in detections.values():
        assert d.detected is False
        assert d.evidence == set()


def test_global_presence_and_version():
    detections = Reconciler().detect({"globals": {"gsap": True, "anime": False}, "versions": {"gsap": "3.12.5"}})
    assert detections[GSAP].evidence == {"global.gsap"}
    assert detections[GSAP].version == "3.12.5"
    assert detections[ANIME].detected is False
    _assert_invariant(detections)


def test_independent_signals_accumulate():
    detections = Reconciler().detect(
        {
            "globals": {"TweenMax": True},
            "resources": ["https://cdn.test/vendor/gsap.min.js"],
            "scrollTriggerCount": 4,
            "lenisSmooth": True,
        },
        script_srcs=["https://cdn.jsdelivr.net/npm/gsap@3/dist/ScrollTrigger.min.js"],
        inline_scripts=["gsap.registerPlugin(ScrollTrigger)"],
    )
    gsap = detections[GSAP]
    assert gsap.evidence == {"global.legacy", "script-src", "inline-code", "resource"}
    assert detections[SCROLL_TRIGGER].evidence == {"script-src", "inline-code"}
    assert detections[SCROLL_TRIGGER].extra["active_triggers"] == 4
    assert detections[LENIS].extra["smooth"] is True
    assert detections[LENIS].detected is False
    _assert_invariant(detections)


def test_runtime_hook_counts_as_evidence_and_supplies_version():
    capture = CaptureContext()
    capture.receive({"kind": "hooked", "library": "gsap", "version": "3.11.0"})
    detections = Reconciler().detect({"globals": {}}, capture=capture)
    assert detections[GSAP].evidence == {"runtime-hook"}
    assert detections[GSAP].version == "3.11.0"


def test_network_merge_only_adds():
    reconciler = Reconciler()
    detections = reconciler.detect({"globals": {"gsap": True}})
    merged = reconciler.merge_network(
        detections,
        url_hits={GSAP: {"https://cdn.test/gsap.min.js"}, ANIME: set()},
        text_hits={GSAP: {"https://cdn.test/app.js"}, SCROLL_TRIGGER: {"https://cdn.test/app.js"}},
    )
    assert merged[GSAP].evidence == {"global.gsap", "network-js-url", "network-js"}
    assert merged[SCROLL_TRIGGER].evidence == {"network-js"}
    assert merged[ANIME].detected is False
    _assert_invariant(merged)


def test_detection_evidence_is_additive():
    d = Detection()
    assert not d.detected
    d.add_evidence("global.gsap", "")
    d.add_evidence("script-src")
    assert d.detected
    assert d.evidence == {"global.gsap", "script-src"}
