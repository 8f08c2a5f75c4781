# easing_probe/core/navigation.py
from __future__ import annotations

"""Resilient navigation
----------------------
Loads one URL with escalating readiness criteria. Cheap criteria come first
because some sites never reach network idle; stricter ones follow for sites
whose libraries only settle late. Failures back off linearly under a fixed
ceiling, and connection resets get a reload before the next attempt.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from playwright.sync_api import Error as PWError, Page

from easing_probe.errors import NavigationFailed
from easing_probe.utils.config import Settings, get_settings
from easing_probe.utils.logger import get_logger, short_error
from easing_probe.utils.timing import linear_backoff_delays_ms


READINESS_ESCALATION = ("domcontentloaded", "load", "networkidle")

RESET_MARKERS = (
    "ERR_CONNECTION_RESET",
    "ERR_CONNECTION_CLOSED",
    "ECONNRESET",
    "socket hang up",
    "ERR_SOCKET_NOT_CONNECTED",
)


@dataclass(frozen=True)
class NavigationPolicy:
    wait_until: str
    timeout_ms: int


def default_policies(timeout_ms: int) -> Tuple[NavigationPolicy, ...]:
    return tuple(NavigationPolicy(w, timeout_ms) for w in READINESS_ESCALATION)


def looks_like_reset(exc: BaseException) -> bool:
    text = str(exc).lower()
    return any(marker.lower() in text for marker in RESET_MARKERS)


class NavigationController:
    def __init__(
        self,
        policies: Sequence[NavigationPolicy],
        max_attempts: int = 4,
        backoff_ms: int = 3000,
        backoff_ceiling_ms: int = 20000,
        sleep: Optional[Callable[[int], object]] = None,
    ):
        if not policies:
            raise ValueError("at least one navigation policy is required")
        self.policies = tuple(policies)
        self.max_attempts = max(1, max_attempts)
        self.backoff_ms = backoff_ms
        self.backoff_ceiling_ms = backoff_ceiling_ms
        self.sleep = sleep  # None: page.wait_for_timeout
        self.log = get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "NavigationController":
        s = settings or get_settings()
        return cls(
            default_policies(s.NAV_TIMEOUT_MS),
            max_attempts=s.NAV_MAX_ATTEMPTS,
            backoff_ms=s.NAV_BACKOFF_MS,
            backoff_ceiling_ms=s.NAV_BACKOFF_CEILING_MS,
            **kwargs,
        )

    def policy_for(self, attempt: int) -> NavigationPolicy:
        """Attempt n (1-based) uses the n-th policy; later attempts keep the strictest."""
        return self.policies[min(attempt, len(self.policies)) - 1]

    def navigate(self, page: Page, url: str, log=None) -> NavigationPolicy:
        """
        Returns the policy that succeeded.

        Raises:
            NavigationFailed once every attempt is exhausted.
        """
        log = log or self.log
        delays = list(linear_backoff_delays_ms(self.max_attempts, self.backoff_ms, self.backoff_ceiling_ms))
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            policy = self.policy_for(attempt)
            try:
                page.goto(url, wait_until=policy.wait_until, timeout=policy.timeout_ms)
                log.debug(f"Loaded {url} (wait_until={policy.wait_until}, attempt {attempt})")
                return policy
            except PWError as exc:
                last_error = exc
                log.warning(
                    f"Navigation attempt {attempt}/{self.max_attempts} failed "
                    f"({policy.wait_until}): {short_error(exc)}"
                )
            if attempt == self.max_attempts:
                break
            if looks_like_reset(last_error):
                self._reload(page, policy, log)
            (self.sleep or page.wait_for_timeout)(delays[attempt - 1])

        raise NavigationFailed(url, self.max_attempts, last_error)

    def _reload(self, page: Page, policy: NavigationPolicy, log) -> None:
        log.info("Connection reset; reloading before retry")
        try:
            page.reload(wait_until="domcontentloaded", timeout=policy.timeout_ms)
        except PWError as exc:
            log.debug(f"Reload failed: {short_error(exc)}")
