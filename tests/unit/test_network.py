from easing_probe.detection.network import NetworkCollector, block_resources, is_script_response
from easing_probe.detection.signatures import GSAP, SCROLL_TRIGGER
from fakes import FakeContext, FakePage, FakeResponse, FakeRoute


GSAP_BODY = b'gsap.to(".x",{ease:"power2.inOut"})'


def test_script_classification():
    assert is_script_response("https://a.test/x", "script", "")
    assert is_script_response("https://a.test/x", "fetch", "text/javascript; charset=utf-8")
    assert is_script_response("https://a.test/chunk.mjs?v=1", "other", "")
    assert not is_script_response("https://a.test/logo.png", "image", "image/png")


def test_non_script_responses_are_ignored():
    c = NetworkCollector()
    c.on_response(FakeResponse("https://a.test/logo.png", resource_type="image", headers={"content-type": "image/png"}))
    assert c.stats.seen == 0
    assert c.drain() == []


def test_caps_are_monotonic_and_retained_cap_holds():
    c = NetworkCollector(max_scripts=2, max_nonhint=1)
    hint1 = FakeResponse("https://cdn.test/gsap.min.js", GSAP_BODY)
    plain1 = FakeResponse("https://a.test/app.js", b"import{gsap}from'x';gsap.to(a,{})")
    hint2 = FakeResponse("https://cdn.test/ScrollTrigger.min.js", b"/* st */")
    hint3 = FakeResponse("https://cdn.test/TweenMax.js", b"/* tm */")
    plain2 = FakeResponse("https://a.test/vendor.js", b"console.log(1)")
    for r in (hint1, plain1, hint2, hint3, plain2):
        c.on_response(r)

    assert c.stats.seen == 5
    assert c.stats.queued == 3
    assert c.stats.nonhint_attempts == 1
    assert plain2.body_calls == 0
    assert hint3.body_calls == 0

    bodies = c.drain()
    assert [url for url, _ in bodies] == [hint1.url, hint2.url]
    assert c.stats.captured == 2
    # the retained cap was reached before the sampled body was fetched
    assert plain1.body_calls == 0


def test_hinted_body_fetched_when_response_arrives():
    c = NetworkCollector()
    hinted = FakeResponse("https://cdn.test/gsap.min.js", GSAP_BODY)
    sampled = FakeResponse("https://a.test/app.js", b"gsap.to(a,{})")
    c.on_response(hinted)
    c.on_response(sampled)
    assert hinted.body_calls == 1
    assert sampled.body_calls == 0
    assert c.texts() == [GSAP_BODY.decode()]

    c.drain()
    assert hinted.body_calls == 1
    assert sampled.body_calls == 1
    assert c.stats.captured == 2


def test_irrelevant_sampled_body_is_dropped():
    c = NetworkCollector()
    c.on_response(FakeResponse("https://a.test/vendor.js", b"console.log('hello')"))
    assert c.drain() == []
    assert c.stats.nonhint_attempts == 1


def test_byte_ceiling_from_header_skips_fetch():
    c = NetworkCollector(max_bytes=10)
    big = FakeResponse(
        "https://cdn.test/gsap.min.js",
        GSAP_BODY,
        headers={"content-type": "application/javascript", "content-length": "5000"},
    )
    c.on_response(big)
    assert c.stats.skipped == 1
    assert c.drain() == []
    assert big.body_calls == 0


def test_byte_ceiling_applies_to_hinted_body():
    c = NetworkCollector(max_bytes=10)
    c.on_response(FakeResponse("https://cdn.test/gsap.min.js", GSAP_BODY))
    assert c.drain() == []
    assert c.stats.skipped == 1


def test_url_hits_recorded_independently_of_capture():
    c = NetworkCollector(max_scripts=0, max_nonhint=0)
    c.on_response(FakeResponse("https://cdn.test/gsap/ScrollTrigger.min.js", b""))
    c.drain()
    assert set(c.url_hits) == {GSAP, SCROLL_TRIGGER}
    assert c.stats.captured == 0
    # late response after drain still counts as URL evidence
    c.on_response(FakeResponse("https://cdn.test/greensock.js", GSAP_BODY))
    assert len(c.url_hits[GSAP]) == 2
    assert c.stats.queued == 0


def test_text_hits_and_texts():
    c = NetworkCollector()
    c.on_response(FakeResponse("https://a.test/bundle.js", b"ScrollTrigger.create({trigger:'.x'})"))
    c.drain()
    assert c.texts() == ["ScrollTrigger.create({trigger:'.x'})"]
    hits = c.text_hits()
    assert hits[GSAP] == {"https://a.test/bundle.js"}
    assert hits[SCROLL_TRIGGER] == {"https://a.test/bundle.js"}


def test_failed_response_is_not_queued():
    c = NetworkCollector()
    c.on_response(FakeResponse("https://cdn.test/gsap.min.js", GSAP_BODY, ok=False))
    assert c.stats.seen == 1
    assert c.stats.queued == 0


def test_handler_never_raises():
    class Broken:
        url = "https://a.test/x.js"

        @property
        def headers(self):
            raise RuntimeError("target closed")

    c = NetworkCollector()
    c.on_response(Broken())
    assert c.stats.seen == 0


def test_attach_and_summary():
    page = FakePage()
    c = NetworkCollector()
    c.attach(page)
    page.emit("response", FakeResponse("https://cdn.test/gsap.min.js", GSAP_BODY))
    c.drain()
    summary = c.summary()
    assert summary["captured"] == 1
    assert summary["url_hits"] == {GSAP: 1}
    assert summary["sample_urls"] == ["https://cdn.test/gsap.min.js"]


def test_block_resources_routes_by_type():
    context = FakeContext(FakePage())
    block_resources(context, ["image", "font", "media"])
    (pattern, handler), = context.routes
    assert pattern == "**/*"
    image, script = FakeRoute("image"), FakeRoute("script")
    handler(image)
    handler(script)
    assert image.outcome == "abort"
    assert script.outcome == "fallback"


def test_block_resources_noop_when_empty():
    context = FakeContext(FakePage())
    block_resources(context, [])
    assert context.routes == []
