# easing_probe/core/engine.py
from __future__ import annotations

"""Session engine
----------------
Drives one browser context per URL through navigation, interaction and
extraction, then reconciles everything into a SiteRecord. A batch shares one
browser; any failure inside a session yields an empty slot and the batch
moves on.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from playwright.sync_api import Browser, BrowserContext, Error as PWError, Page, sync_playwright

from easing_probe.core.interaction import interact
from easing_probe.core.models import (
    BUCKET_GSAP_TRIGGER,
    BatchResult,
    CssFindings,
    Detection,
    PagePatterns,
    SiteRecord,
    easing_set,
)
from easing_probe.core.navigation import NavigationController
from easing_probe.detection.instrumentation import CaptureContext, await_hooks, install
from easing_probe.detection.network import NetworkCollector, block_resources
from easing_probe.detection.reconciler import Reconciler
from easing_probe.detection.static_extractor import PageEvidence, StaticExtractor
from easing_probe.errors import InstrumentationTimeout
from easing_probe.utils.config import Settings, get_settings
from easing_probe.utils.logger import get_logger, log_with_context, short_error
from easing_probe.utils.timing import Stopwatch, sleep_ms


class SessionState(str, Enum):
    idle = "idle"
    launching = "launching"
    navigating = "navigating"
    interacting = "interacting"
    extracting = "extracting"
    reconciling = "reconciling"
    closed = "closed"


@dataclass
class Session:
    """Everything gathered while the context was open."""
    url: str
    capture: CaptureContext
    collector: NetworkCollector
    evidence: PageEvidence = field(default_factory=PageEvidence)
    detections: Dict[str, Detection] = field(default_factory=dict)
    interaction: Dict[str, int] = field(default_factory=dict)


def _ts() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class Analyzer:
    """Runs analysis sessions against a live browser."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        navigator: Optional[NavigationController] = None,
        sleep: Callable[[int], object] = sleep_ms,
    ):
        self.settings = settings or get_settings()
        self.log = get_logger(__name__)
        self.navigator = navigator or NavigationController.from_settings(self.settings)
        self.extractor = StaticExtractor()
        self.reconciler = Reconciler()
        self.sleep = sleep
        self.state = SessionState.idle
        self.history: List[SessionState] = []

    def _transition(self, state: SessionState, log=None) -> None:
        (log or self.log).debug(f"Session state: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    # ---------- one session ----------

    def analyze(self, browser: Browser, url: str) -> SiteRecord:
        """
        Analyze one URL in a fresh context. The context is closed on every
        exit path; exceptions propagate to the caller.
        """
        log = log_with_context(self.log, url=url)
        self.history = []
        self._transition(SessionState.launching, log)
        try:
            context = browser.new_context(**self.settings.playwright_context_kwargs())
            try:
                session = self._drive(context, url, log)
            finally:
                self._close(context, log)
            self._transition(SessionState.reconciling, log)
            record = self._reconcile(session, log)
        finally:
            self._transition(SessionState.closed, log)
        return record

    def _drive(self, context: BrowserContext, url: str, log) -> Session:
        s = self.settings
        context.set_default_timeout(s.DEFAULT_TIMEOUT_MS)
        capture = CaptureContext()
        install(context, capture, s.HOOK_POLL_INTERVAL_MS, s.HOOK_POLL_WINDOW_MS)
        block_resources(context, s.blocked_resource_types)

        page = context.new_page()
        collector = NetworkCollector(
            max_scripts=s.MAX_CAPTURED_SCRIPTS,
            max_nonhint=s.MAX_SAMPLED_NON_HINT_SCRIPTS,
            max_bytes=s.MAX_CAPTURED_SCRIPT_BYTES,
        )
        collector.attach(page)
        session = Session(url=url, capture=capture, collector=collector)

        self._transition(SessionState.navigating, log)
        self.navigator.navigate(page, url, log=log)
        self._settle(page, capture, log)

        self._transition(SessionState.interacting, log)
        session.interaction = interact(page, s, log)

        self._transition(SessionState.extracting, log)
        session.evidence = self.extractor.collect(page)
        session.detections = self.reconciler.detect(
            session.evidence.signals,
            session.evidence.script_srcs,
            session.evidence.inline_scripts,
            capture,
        )
        collector.drain()
        return session

    def _settle(self, page: Page, capture: CaptureContext, log) -> None:
        """Give late-attaching libraries the full animation window."""
        wait_ms = self.settings.ANIMATION_WAIT_MS
        sw = Stopwatch().start()
        try:
            await_hooks(page, capture, wait_ms)
        except InstrumentationTimeout as exc:
            log.debug(str(exc))
        remaining = wait_ms - sw.elapsed_ms()
        if remaining > 0:
            page.wait_for_timeout(remaining)

    def _close(self, context: BrowserContext, log) -> None:
        try:
            context.close()
        except PWError as exc:
            log.debug(f"Context close failed: {short_error(exc)}")

    def _reconcile(self, session: Session, log) -> SiteRecord:
        ev = session.evidence
        collector = session.collector
        detections = self.reconciler.merge_network(
            session.detections, collector.url_hits, collector.text_hits()
        )
        detected = [name for name, d in detections.items() if d.detected]
        channels = self.extractor.easings(ev, detected, collector.texts())
        captured = session.capture.snapshot()

        patterns = ev.patterns
        record = SiteRecord(
            url=session.url,
            title=str(ev.metadata.get("title") or ""),
            description=str(ev.metadata.get("description") or ""),
            captured_at=_ts(),
            viewport=dict(ev.metadata.get("viewport") or {}),
            libraries=detections,
            css=CssFindings(animation_details=tuple(ev.animation_details), keyframes=ev.keyframes),
            captured=captured,
            easings={ch: {t: easing_set(vals) for t, vals in per.items()} for ch, per in channels.items()},
            patterns=PagePatterns(
                animated_elements_count=int(patterns.get("animated_elements_count") or 0),
                element_samples=tuple(patterns.get("element_samples") or ()),
                has_data_attributes=bool(patterns.get("has_data_attributes")),
                has_scroll_classes=bool(patterns.get("has_scroll_classes")),
                has_scroll_animations=bool(captured[BUCKET_GSAP_TRIGGER]),
            ),
            network=collector.summary(),
            partial_failures=tuple(ev.failures),
        )
        log.info(
            f"Analyzed: libraries=[{', '.join(sorted(detected)) or 'none'}] "
            f"css={len(record.css_easings)} captured_calls={session.capture.total()}"
        )
        return record

    # ---------- batch ----------

    def analyze_safely(self, browser: Browser, url: str) -> Optional[SiteRecord]:
        try:
            return self.analyze(browser, url)
        except Exception as e:
            self.log.error(f"Failed {url}: {e.__class__.__name__}: {short_error(e)}")
            return None

    def analyze_all(
        self,
        browser: Browser,
        urls: Iterable[str],
        on_result: Optional[Callable[[int, str, Optional[SiteRecord]], None]] = None,
    ) -> BatchResult:
        """One slot per URL in input order; INTER_SITE_DELAY_MS between sessions."""
        result = BatchResult()
        for index, url in enumerate(urls):
            if index:
                self.sleep(self.settings.INTER_SITE_DELAY_MS)
            record = self.analyze_safely(browser, url)
            result.append(url, record)
            if on_result is not None:
                on_result(index, url, record)
        counts = result.counts()
        self.log.info(f"Batch complete: {counts.get('ok', 0)} ok, {counts.get('failed', 0)} failed")
        return result

    def run_batch(self, urls: Iterable[str], on_result=None) -> BatchResult:
        """Launch one browser for the whole batch. A launch failure propagates."""
        s = self.settings
        with sync_playwright() as p:
            browser_type = getattr(p, s.BROWSER_TYPE.value)
            browser = browser_type.launch(**s.playwright_launch_kwargs())
            try:
                return self.analyze_all(browser, list(urls), on_result=on_result)
            finally:
                try:
                    browser.close()
                except PWError as exc:
                    self.log.debug(f"Browser close failed: {short_error(exc)}")


def analyze_urls(urls: Iterable[str], settings: Optional[Settings] = None) -> BatchResult:
    return Analyzer(settings=settings or get_settings()).run_batch(urls)
