# easing_probe/report/writer.py
from __future__ import annotations

"""Results JSON and Markdown report rendering."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from easing_probe.core.models import (
    AnimationCall,
    BUCKET_ANIME,
    BUCKET_GSAP,
    BUCKET_GSAP_TRIGGER,
    BatchResult,
    SiteRecord,
)
from easing_probe.detection.signatures import ANIME, GSAP, LENIS, LOCOMOTIVE_SCROLL, SCROLL_TRIGGER
from easing_probe.report.aggregator import GSAP_CAPTURED, top
from easing_probe.utils.logger import get_logger, short_error


TOP_CSS = 15
SITE_CSS_DETAILS = 10
TRIGGER_PREVIEW = 120

LIBRARY_LABELS = {
    GSAP: "GSAP",
    SCROLL_TRIGGER: "ScrollTrigger",
    LENIS: "Lenis",
    ANIME: "Anime.js",
    LOCOMOTIVE_SCROLL: "Locomotive Scroll",
}

log = get_logger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ---------- JSON ----------

def results_document(batch: BatchResult, extracted_at: Optional[str] = None) -> Dict[str, Any]:
    return {
        "extracted_at": extracted_at or _now(),
        "total_sites": len(batch.slots),
        "urls": list(batch.urls),
        "failures": batch.failures,
        "sites": [r.to_dict() if r is not None else None for r in batch.slots],
        "summary": batch.summary(),
    }


def write_results(batch: BatchResult, out_dir: Path | str, name: str) -> Path:
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    path = out / f"{name}-results.json"
    path.write_text(json.dumps(results_document(batch), indent=2, ensure_ascii=False), encoding="utf-8")
    log.info(f"Results saved to {path}")
    return path


def load_results(path: Path | str) -> BatchResult:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict) or "sites" not in data:
        raise ValueError(f"{path} is not a results file (missing 'sites')")
    sites = data.get("sites") or []
    urls = data.get("urls") or [(s or {}).get("url", "") for s in sites]
    batch = BatchResult()
    for url, site in zip(urls, sites):
        batch.append(url, SiteRecord.from_dict(site) if site else None)
    return batch


# ---------- Markdown ----------

def _ranked(lines: List[str], frequency: Dict[str, int], n: Optional[int], empty: str) -> None:
    ranked = top(frequency, n)
    if not ranked:
        lines.append(empty)
    for value, count in ranked:
        lines.append(f"- `{value}` (used {count}x)")
    lines.append("")


def _yes_no(record: SiteRecord, library: str) -> str:
    d = record.libraries.get(library)
    if not d or not d.detected:
        return "no"
    parts = ["yes"]
    if d.version:
        parts.append(f"v{d.version}")
    if "active_triggers" in d.extra:
        parts.append(f"{d.extra['active_triggers']} active triggers")
    return parts[0] if len(parts) == 1 else f"{parts[0]} ({', '.join(parts[1:])})"


def element_label(el: Dict[str, Any]) -> str:
    """Render a sampled element as `<tag class="...">` plus its data attributes."""
    tag = str(el.get("tag") or "").lower()
    classes = f' class="{el["classes"]}"' if el.get("classes") else ""
    data = f" {el['data_attributes']}" if el.get("data_attributes") else ""
    return f"<{tag}{classes}>{data}"


def _call_bullet(call: AnimationCall) -> str:
    text = f"- `{call.method}` ease `{call.ease or '-'}`, {call.duration:g}s"
    if call.delay:
        text += f", delay {call.delay:g}s"
    if call.stagger:
        text += f", stagger {call.stagger}"
    if call.custom_ease:
        text += f", custom ease `{call.custom_ease}`"
    return text


def _captured_sections(lines: List[str], record: SiteRecord) -> None:
    plain, bound = record.calls(BUCKET_GSAP), record.calls(BUCKET_GSAP_TRIGGER)
    if plain:
        lines.append("**Captured GSAP animations:**")
        lines += [_call_bullet(c) for c in plain]
        lines.append("")
    if bound:
        lines.append("**ScrollTrigger animations:**")
        for call in bound:
            lines.append(_call_bullet(call))
            lines.append(f"  - trigger: `{short_error(call.trigger or '', TRIGGER_PREVIEW)}`")
        lines.append("")


def _pattern_section(lines: List[str], record: SiteRecord) -> None:
    p = record.patterns
    if not (p.animated_elements_count or p.has_data_attributes or p.has_scroll_classes or p.has_scroll_animations):
        return
    lines += [
        "**Element patterns:**",
        f"- Scroll animations: {'yes' if p.has_scroll_animations else 'no'}",
        f"- Data attributes: {'yes' if p.has_data_attributes else 'no'}",
        f"- Scroll/animate classes: {'yes' if p.has_scroll_classes else 'no'}",
    ]
    lines += [f"- {element_label(el)}" for el in p.element_samples]
    lines.append("")


def _css_detail_section(lines: List[str], record: SiteRecord) -> None:
    details = record.css.animation_details
    if not details:
        return
    lines.append(f"**CSS animation details (first {min(len(details), SITE_CSS_DETAILS)} of {len(details)}):**")
    for detail in details[:SITE_CSS_DETAILS]:
        if detail.get("type") == "keyframe":
            lines.append(
                f"- keyframe `{detail.get('animation', '')}`: {detail.get('duration', '')}, "
                f"iterations {detail.get('iteration_count') or '1'}"
            )
        else:
            lines.append(
                f"- transition `{detail.get('property', '')}`: {detail.get('duration', '')} "
                f"`{detail.get('timing_function', '')}`, delay {detail.get('delay') or '0s'}"
            )
    lines.append("")


def _site_section(lines: List[str], index: int, url: str, record: Optional[SiteRecord]) -> None:
    if record is None:
        lines += [f"### {index}. {url}", "", "Analysis failed; see the run log.", ""]
        return
    lines += [f"### {index}. {record.title or record.url}", f"URL: {record.url}", "", "**Libraries detected:**"]
    for name, label in LIBRARY_LABELS.items():
        lines.append(f"- {label}: {_yes_no(record, name)}")
    lines += [
        "",
        "**Animation data:**",
        f"- CSS easings: {len(record.css_easings)}",
        f"- CSS animation details: {len(record.css.animation_details)}",
        f"- GSAP animations: {len(record.calls(BUCKET_GSAP))}",
        f"- GSAP ScrollTrigger animations: {len(record.calls(BUCKET_GSAP_TRIGGER))}",
        f"- Anime.js animations: {len(record.calls(BUCKET_ANIME))}",
        f"- Scroll-animated elements: {record.patterns.animated_elements_count}",
        "",
    ]
    if record.css_easings:
        lines.append("**CSS easings:**")
        lines += [f"- `{e}`" for e in record.css_easings]
        lines.append("")
    gsap_source = record.target_easings("gsap")
    if gsap_source:
        lines.append("**GSAP easings (from code):**")
        lines += [f"- `{e}`" for e in gsap_source]
        lines.append("")
    _captured_sections(lines, record)
    _pattern_section(lines, record)
    _css_detail_section(lines, record)
    if record.partial_failures:
        lines += [f"Skipped sources: {', '.join(record.partial_failures)}", ""]


def render_report(batch: BatchResult, generated_at: Optional[str] = None) -> str:
    summary = batch.summary()
    total = len(batch.slots)
    lines: List[str] = [
        "# Easing Analysis Report",
        "",
        f"Generated: {generated_at or _now()}",
        f"Total sites analyzed: {total} ({len(batch.failures)} failed)",
        "",
        "## Most common CSS easings",
        "",
    ]
    _ranked(lines, summary["css"]["frequency"], TOP_CSS, "No CSS easings found.")
    lines += ["## GSAP easings (from source code)", ""]
    _ranked(lines, summary["gsap"]["frequency"], None, "No GSAP easings found in source.")
    lines += ["## GSAP easings (captured live)", ""]
    _ranked(lines, summary[GSAP_CAPTURED]["frequency"], None, "No GSAP animations were captured.")

    lines += ["## Library distribution", ""]
    for name, label in LIBRARY_LABELS.items():
        lines.append(f"- **{label}**: {summary['libraries'].get(name, 0)}/{total} sites")
    lines.append("")

    lines += ["## Site-by-site breakdown", ""]
    for index, (url, record) in enumerate(zip(batch.urls, batch.slots), start=1):
        _site_section(lines, index, url, record)
    return "\n".join(lines).rstrip() + "\n"


def write_report(batch: BatchResult, out_dir: Path | str, name: str) -> Path:
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    path = out / f"{name}-report.md"
    path.write_text(render_report(batch), encoding="utf-8")
    log.info(f"Report saved to {path}")
    return path
