from playwright.sync_api import Error as PWError

from easing_probe.core.engine import Analyzer, SessionState
from easing_probe.core.models import BUCKET_GSAP, BUCKET_GSAP_TRIGGER, Channel
from easing_probe.core.navigation import NavigationController, default_policies
from easing_probe.detection import page_probe
from easing_probe.detection.instrumentation import BINDING_NAME
from fakes import FakeBrowser, FakePage, FakeResponse


def _evaluations(title="Demo"):
    return {
        page_probe.METADATA_JS: {"title": title, "description": "", "url": "https://demo.test/",
                                 "viewport": {"width": 1920, "height": 1080}},
        page_probe.SIGNALS_JS: {"globals": {"gsap": True}, "versions": {"gsap": "3.12.2"}, "resources": []},
        page_probe.SCRIPTS_JS: {"srcs": [], "inline": []},
        page_probe.COMPUTED_STYLES_JS: [{"transition": "opacity 0.3s cubic-bezier(0.25, 0.1, 0.25, 1.0) 0s"}],
        page_probe.STYLESHEETS_JS: {"rules": [], "keyframes": [], "blocked": 0, "sheets": 1},
        page_probe.PATTERNS_JS: {"animated_elements_count": 0, "element_samples": []},
    }


def _analyzer(settings, sleeps=None):
    navigator = NavigationController(default_policies(1000), max_attempts=2, backoff_ms=0, sleep=lambda ms: None)
    return Analyzer(settings=settings, navigator=navigator, sleep=(sleeps.append if sleeps is not None else lambda ms: None))


def test_single_session_builds_record(fast_settings):
    page = FakePage(evaluations=_evaluations(), clickables=2)
    browser = FakeBrowser([page])
    analyzer = _analyzer(fast_settings)

    record = analyzer.analyze(browser, "https://demo.test/")

    assert record.url == "https://demo.test/"
    assert record.title == "Demo"
    assert record.css_easings == ("cubic-bezier(0.25, 0.1, 0.25, 1.0)",)
    assert record.detected("gsap")
    assert record.libraries["gsap"].version == "3.12.2"
    assert record.partial_failures == ()
    assert page.hovered == [0, 1]
    assert browser.contexts[0].closed
    assert analyzer.history == [
        SessionState.launching,
        SessionState.navigating,
        SessionState.interacting,
        SessionState.extracting,
        SessionState.reconciling,
        SessionState.closed,
    ]


def test_runtime_and_network_evidence_reach_the_record(fast_settings):
    def during_load(page):
        emit = page.context.bindings[BINDING_NAME]
        emit({"kind": "hooked", "library": "gsap", "version": "3.12.2"})
        emit({"kind": "call", "library": "gsap", "method": "to", "ease": "power3.out", "duration": 1,
              "trigger": '{"trigger":".hero"}'})
        emit({"kind": "call", "library": "gsap", "method": "from", "ease": "expo.out", "duration": 0.8})
        page.emit("response", FakeResponse("https://cdn.test/gsap.min.js", b'gsap.to(a,{ease:"sine.inOut"})'))

    page = FakePage(evaluations=_evaluations(), on_goto=during_load)
    record = _analyzer(fast_settings).analyze(FakeBrowser([page]), "https://demo.test/")

    assert [c.ease for c in record.calls(BUCKET_GSAP_TRIGGER)] == ["power3.out"]
    assert [c.ease for c in record.calls(BUCKET_GSAP)] == ["expo.out"]
    assert record.patterns.has_scroll_animations
    assert {"global.gsap", "runtime-hook", "network-js-url", "network-js"} <= record.libraries["gsap"].evidence
    assert record.channel(Channel.network_script, "gsap") == ("sine.inOut",)
    assert record.network["captured"] == 1


def test_partial_failure_keeps_the_record(fast_settings):
    evaluations = _evaluations()
    evaluations[page_probe.STYLESHEETS_JS] = PWError("SecurityError")
    record = _analyzer(fast_settings).analyze(FakeBrowser([FakePage(evaluations=evaluations)]), "https://demo.test/")
    assert record.partial_failures == ("stylesheets",)
    assert record.css_easings == ("cubic-bezier(0.25, 0.1, 0.25, 1.0)",)


def test_context_configured_before_navigation(fast_settings):
    page = FakePage(evaluations=_evaluations())
    browser = FakeBrowser([page])
    _analyzer(fast_settings).analyze(browser, "https://demo.test/")
    context = browser.contexts[0]
    assert BINDING_NAME in context.bindings
    assert len(context.init_scripts) == 1
    assert [pattern for pattern, _ in context.routes] == ["**/*"]
    assert context.default_timeout == fast_settings.DEFAULT_TIMEOUT_MS
    assert browser.context_kwargs[0]["viewport"] == {"width": 1920, "height": 1080}


def test_batch_keeps_a_slot_per_url(fast_settings):
    ok1 = FakePage(evaluations=_evaluations("One"))
    bad = FakePage(evaluations=_evaluations("Two"), goto_errors=[PWError("net::ERR_NAME_NOT_RESOLVED")] * 2)
    ok3 = FakePage(evaluations=_evaluations("Three"))
    browser = FakeBrowser([ok1, bad, ok3])
    sleeps = []
    urls = ["https://one.test/", "https://two.test/", "https://three.test/"]
    seen = []

    batch = _analyzer(fast_settings.model_copy(update={"INTER_SITE_DELAY_MS": 2000}), sleeps).analyze_all(
        browser, urls, on_result=lambda i, url, rec: seen.append((i, url, rec is not None))
    )

    assert len(batch.slots) == 3
    assert batch.slots[1] is None
    assert [r.title for r in batch.records] == ["One", "Three"]
    assert batch.failures == ["https://two.test/"]
    assert sleeps == [2000, 2000]
    assert all(c.closed for c in browser.contexts)
    assert seen == [(0, urls[0], True), (1, urls[1], False), (2, urls[2], True)]


def test_failed_session_still_ends_closed(fast_settings):
    page = FakePage(evaluations=_evaluations(), goto_errors=[PWError("x"), PWError("y")])
    browser = FakeBrowser([page])
    analyzer = _analyzer(fast_settings)
    assert analyzer.analyze_safely(browser, "https://demo.test/") is None
    assert analyzer.history[-1] == SessionState.closed
    assert SessionState.reconciling not in analyzer.history
    assert browser.contexts[0].closed


def test_loaded_scroll_trigger_alone_is_not_a_scroll_animation(fast_settings):
    evaluations = _evaluations()
    evaluations[page_probe.SIGNALS_JS] = {"globals": {"gsap": True, "ScrollTrigger": True},
                                          "versions": {}, "resources": [], "scrollTriggerCount": 0}
    record = _analyzer(fast_settings).analyze(FakeBrowser([FakePage(evaluations=evaluations)]), "https://demo.test/")
    assert record.detected("scroll_trigger")
    assert record.calls(BUCKET_GSAP_TRIGGER) == ()
    assert record.patterns.has_scroll_animations is False


def test_navigation_backoff_waits_through_the_page(fast_settings):
    page = FakePage(evaluations=_evaluations(), goto_errors=[PWError("net::ERR_TIMED_OUT"), None])
    settings = fast_settings.model_copy(update={"NAV_BACKOFF_MS": 1500})
    Analyzer(settings=settings, sleep=lambda ms: None).analyze(FakeBrowser([page]), "https://demo.test/")
    assert page.waits[0] == 1500
