# easing_probe/detection/network.py
from __future__ import annotations

"""Network evidence
------------------
Watches script responses for one session. Bodies of GSAP-hinted URLs are
fetched as their responses arrive, before the browser can evict them; a
capped sample of other scripts is queued and fetched in `drain()` right
before the context closes.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple
from urllib.parse import urlparse

from playwright.sync_api import BrowserContext, Page, Response, Route

from easing_probe.detection.signatures import GSAP_HINT, LIBRARIES, LibrarySignature
from easing_probe.errors import ResourceCaptureSkipped
from easing_probe.utils.logger import get_logger, short_error


SCRIPT_CONTENT_TYPES = ("javascript", "ecmascript")
SCRIPT_EXTENSIONS = (".js", ".mjs")
MAX_SAMPLE_URLS = 8


def is_script_response(url: str, resource_type: str, content_type: str) -> bool:
    if resource_type == "script":
        return True
    ct = (content_type or "").lower()
    if any(t in ct for t in SCRIPT_CONTENT_TYPES):
        return True
    return urlparse(url).path.lower().endswith(SCRIPT_EXTENSIONS)


@dataclass
class NetworkStats:
    seen: int = 0
    queued: int = 0
    captured: int = 0
    nonhint_attempts: int = 0
    skipped: int = 0
    sample_urls: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seen": self.seen,
            "queued": self.queued,
            "captured": self.captured,
            "nonhint_attempts": self.nonhint_attempts,
            "skipped": self.skipped,
            "sample_urls": list(self.sample_urls),
        }


class NetworkCollector:
    """
    Per-session script capture.

    Counters only ever grow, so the caps hold no matter how many responses
    arrive while a blocking page call is pumping events.
    """

    def __init__(
        self,
        max_scripts: int = 40,
        max_nonhint: int = 15,
        max_bytes: int = 4 * 1024 * 1024,
        libraries: Sequence[LibrarySignature] = LIBRARIES,
    ):
        self.log = get_logger(__name__)
        self.max_scripts = max_scripts
        self.max_nonhint = max_nonhint
        self.max_bytes = max_bytes
        self.libraries = tuple(libraries)
        self.stats = NetworkStats()
        self.url_hits: Dict[str, Set[str]] = {}
        self.bodies: List[Tuple[str, str]] = []
        self._queue: List[Response] = []
        self._hint_queued = 0
        self._drained = False

    # ---------- wiring ----------

    def attach(self, page: Page) -> None:
        page.on("response", self.on_response)

    # ---------- dispatcher side ----------

    def on_response(self, response: Response) -> None:
        try:
            self._classify(response)
        except Exception as exc:
            # raising here would surface inside whatever page call is pumping events
            self.log.debug(f"Response classification failed for {getattr(response, 'url', '?')}: {short_error(exc)}")

    def _classify(self, response: Response) -> None:
        url = response.url
        headers = response.headers or {}
        if not is_script_response(url, response.request.resource_type, headers.get("content-type", "")):
            return
        self.stats.seen += 1
        if len(self.stats.sample_urls) < MAX_SAMPLE_URLS:
            self.stats.sample_urls.append(url)

        for sig in self.libraries:
            if sig.network_url is not None and sig.network_url.search(url):
                self.url_hits.setdefault(sig.name, set()).add(url)

        if self._drained or not response.ok:
            return

        length = _content_length(headers)
        if length is not None and length > self.max_bytes:
            self._skip(ResourceCaptureSkipped(url, f"content-length {length} over {self.max_bytes} bytes"))
            return

        if GSAP_HINT.search(url):
            if self._hint_queued >= self.max_scripts:
                return
            self._hint_queued += 1
            self.stats.queued += 1
            # fetched now; the browser may evict the body before drain()
            self._retain(response, hinted=True)
            return
        if self.stats.nonhint_attempts >= self.max_nonhint:
            return
        self.stats.nonhint_attempts += 1
        self._queue.append(response)
        self.stats.queued += 1

    # ---------- body capture ----------

    def _retain(self, response: Response, hinted: bool) -> None:
        """Fetch one body and keep it if relevant, while under the retained cap."""
        if len(self.bodies) >= self.max_scripts:
            return
        url = response.url
        try:
            body = response.body()
        except Exception as exc:
            self._skip(ResourceCaptureSkipped(url, f"body unavailable ({short_error(exc, 60)})"))
            return
        if len(body) > self.max_bytes:
            self._skip(ResourceCaptureSkipped(url, f"body of {len(body)} bytes over {self.max_bytes}"))
            return
        text = body.decode("utf-8", errors="replace")
        if hinted or GSAP_HINT.search(text):
            self.bodies.append((url, text))
            self.stats.captured += 1

    # ---------- after settle ----------

    def drain(self) -> List[Tuple[str, str]]:
        """Fetch the sampled non-hint bodies; keep relevant ones up to the retained cap. Idempotent."""
        if self._drained:
            return self.bodies
        self._drained = True
        queue, self._queue = self._queue, []
        for response in queue:
            if len(self.bodies) >= self.max_scripts:
                break
            self._retain(response, hinted=False)
        self.log.debug(
            f"Network: seen={self.stats.seen} queued={self.stats.queued} "
            f"captured={self.stats.captured} skipped={self.stats.skipped}"
        )
        return self.bodies

    def texts(self) -> List[str]:
        return [text for _, text in self.bodies]

    def text_hits(self) -> Dict[str, Set[str]]:
        """Library name -> URLs of retained bodies whose text matches that library."""
        hits: Dict[str, Set[str]] = {}
        for url, text in self.bodies:
            for sig in self.libraries:
                if sig.network_text is not None and sig.network_text.search(text):
                    hits.setdefault(sig.name, set()).add(url)
        return hits

    def summary(self) -> Dict[str, Any]:
        data = self.stats.to_dict()
        data["url_hits"] = {name: len(urls) for name, urls in sorted(self.url_hits.items())}
        return data

    def _skip(self, reason: ResourceCaptureSkipped) -> None:
        self.stats.skipped += 1
        self.log.debug(f"Skipped script: {reason}")


def _content_length(headers: Dict[str, str]) -> Optional[int]:
    raw = headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def block_resources(context: BrowserContext, resource_types: Iterable[str]) -> None:
    """Abort requests of the given resource types for every page of the context."""
    blocked = frozenset(t.strip().lower() for t in resource_types if t and t.strip())
    if not blocked:
        return

    def handler(route: Route) -> None:
        if route.request.resource_type in blocked:
            route.abort()
        else:
            route.fallback()

    context.route("**/*", handler)
