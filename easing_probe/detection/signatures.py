# easing_probe/detection/signatures.py
from __future__ import annotations

"""Library signatures and easing patterns
---------------------------------------
Declarative tables consumed by the reconciler and the static extractor.
Adding a library means adding a row here; neither consumer needs to change.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Optional, Pattern, Tuple

from easing_probe.core.models import Channel, TARGET_ANIME, TARGET_FRAMER, TARGET_GSAP


GSAP = "gsap"
SCROLL_TRIGGER = "scroll_trigger"
ANIME = "anime"
LENIS = "lenis"
LOCOMOTIVE_SCROLL = "locomotive_scroll"


def _rx(pattern: str, flags: int = re.IGNORECASE) -> Pattern[str]:
    return re.compile(pattern, flags)


@dataclass(frozen=True)
class LibrarySignature:
    """Every independent signal that can prove a library is present on a page."""
    name: str
    globals: Tuple[str, ...] = ()
    legacy_globals: Tuple[str, ...] = ()
    script_src: Optional[Pattern[str]] = None
    inline_code: Optional[Pattern[str]] = None
    resource: Optional[Pattern[str]] = None
    network_url: Optional[Pattern[str]] = None
    network_text: Optional[Pattern[str]] = None

    def all_globals(self) -> Tuple[str, ...]:
        return self.globals + self.legacy_globals


# Relevance test for captured script bodies and URLs.
GSAP_HINT = _rx(r"(\bgsap\b|greensock|scrolltrigger|customease|tweenmax|tweenlite|timelinemax|timelinelite)")

LIBRARIES: Tuple[LibrarySignature, ...] = (
    LibrarySignature(
        name=GSAP,
        globals=("gsap",),
        legacy_globals=("TweenMax", "TweenLite", "TimelineMax", "TimelineLite"),
        script_src=_rx(r"(gsap|greensock|tweenmax|tweenlite|scrolltrigger)"),
        inline_code=_rx(r"(\bgsap\b|CustomEase|ScrollTrigger|TweenMax|TweenLite)"),
        resource=_rx(r"(gsap|greensock|scrolltrigger|tweenmax|tweenlite)"),
        network_url=GSAP_HINT,
        network_text=GSAP_HINT,
    ),
    LibrarySignature(
        name=SCROLL_TRIGGER,
        globals=("ScrollTrigger",),
        script_src=_rx(r"scrolltrigger"),
        inline_code=_rx(r"\bScrollTrigger\b"),
        network_url=_rx(r"scrolltrigger"),
        network_text=_rx(r"scrolltrigger"),
    ),
    LibrarySignature(
        name=ANIME,
        globals=("anime",),
        script_src=_rx(r"anime(\.min)?\.js"),
        inline_code=_rx(r"\banime\b"),
    ),
    LibrarySignature(
        name=LENIS,
        globals=("Lenis",),
        script_src=_rx(r"\blenis\b"),
    ),
    LibrarySignature(
        name=LOCOMOTIVE_SCROLL,
        globals=("LocomotiveScroll",),
        script_src=_rx(r"locomotive-scroll"),
    ),
)

LIBRARIES_BY_NAME = {sig.name: sig for sig in LIBRARIES}


def library(name: str) -> LibrarySignature:
    return LIBRARIES_BY_NAME[name]


# ---------- Easing text patterns ----------

def _strip(value: str) -> str:
    return value.strip()


def _bracket(value: str) -> str:
    return f"[{value.strip()}]"


def _not_gsap_named(value: str) -> bool:
    # power*/expo* names are GSAP's convention; keep them out of the Framer set
    return "power" not in value and "expo" not in value


@dataclass(frozen=True)
class EasingPattern:
    """
    One row of the text-extraction table.

    `group` selects the capture group holding the value (0 = whole match).
    `gate` must match an inline script's text before the row applies to it.
    `requires` names a library that must already be detected.
    `accept` filters normalized values.
    """
    target: str
    name: str
    regex: Pattern[str]
    group: int = 1
    normalize: Callable[[str], str] = _strip
    gate: Optional[Pattern[str]] = None
    requires: Optional[str] = None
    accept: Optional[Callable[[str], bool]] = None
    channels: Tuple[Channel, ...] = field(default=(Channel.inline_script,))


_GSAP_GATE = library(GSAP).inline_code
_BOTH_SCRIPT_CHANNELS = (Channel.inline_script, Channel.network_script)

EASING_PATTERNS: Tuple[EasingPattern, ...] = (
    EasingPattern(
        target=TARGET_GSAP,
        name="quoted-ease",
        regex=re.compile(r"""ease\s*:\s*["']([^"']+)["']"""),
        gate=_GSAP_GATE,
        channels=_BOTH_SCRIPT_CHANNELS,
    ),
    EasingPattern(
        target=TARGET_GSAP,
        name="identifier-ease",
        regex=re.compile(r"ease\s*:\s*([a-zA-Z_$][\w$]*(?:\.[\w$]+)*(?:\([^)]*\))?)(?=\s*[,}])"),
        gate=_GSAP_GATE,
        channels=_BOTH_SCRIPT_CHANNELS,
    ),
    EasingPattern(
        target=TARGET_GSAP,
        name="custom-ease",
        regex=re.compile(r"CustomEase\.create\([^)]*\)"),
        group=0,
        gate=_GSAP_GATE,
        channels=_BOTH_SCRIPT_CHANNELS,
    ),
    EasingPattern(
        target=TARGET_ANIME,
        name="anime-easing",
        regex=re.compile(r"""easing\s*:\s*["']([^"']+)["']"""),
        normalize=lambda v: v,
        requires=ANIME,
    ),
    EasingPattern(
        target=TARGET_FRAMER,
        name="array-ease",
        regex=re.compile(r"ease\s*:\s*\[([^\]]+)\]"),
        normalize=_bracket,
    ),
    EasingPattern(
        target=TARGET_FRAMER,
        name="named-ease",
        regex=re.compile(r"""ease\s*:\s*["']([^"']+)["']"""),
        normalize=lambda v: v,
        accept=_not_gsap_named,
    ),
)


# ---------- CSS ----------

CUBIC_BEZIER = re.compile(r"cubic-bezier\(\s*([-\d.]+)\s*,\s*([-\d.]+)\s*,\s*([-\d.]+)\s*,\s*([-\d.]+)\s*\)")

NAMED_TIMING_FUNCTIONS = frozenset({
    "linear", "ease", "ease-in", "ease-out", "ease-in-out", "step-start", "step-end",
})

# Computed values an element reports when it declares no real transition/animation.
DEFAULT_TRANSITIONS = frozenset({"", "none", "all", "all 0s ease 0s", "all 0s ease 0s normal"})
DEFAULT_ANIMATIONS = frozenset({"", "none", "none 0s ease 0s 1 normal none running"})


def format_bezier(match: "re.Match[str]") -> str:
    return "cubic-bezier({}, {}, {}, {})".format(*match.groups())
