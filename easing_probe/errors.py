"""Error taxonomy
--------------
Only NavigationFailed crosses a component boundary (up to the session
orchestrator). The others are raised and handled inside the component that
owns the source.
"""

from __future__ import annotations

from typing import Optional


class EasingProbeError(RuntimeError):
    pass


class NavigationFailed(EasingProbeError):
    """All navigation attempts for one URL were exhausted."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException] = None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        cause = f": {last_error}" if last_error is not None else ""
        super().__init__(f"Failed to load {url} after {attempts} attempt(s){cause}")


class ExtractionPartialFailure(EasingProbeError):
    """One extraction source could not be read; the rest of the record still stands."""

    def __init__(self, source: str, cause: BaseException):
        self.source = source
        self.cause = cause
        super().__init__(f"{source}: {cause}")


class InstrumentationTimeout(EasingProbeError):
    """A target library never appeared within the hook polling window."""


class ResourceCaptureSkipped(EasingProbeError):
    """A script body was not retained because a size or count cap applied."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")
