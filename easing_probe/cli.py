# easing_probe/cli.py
from __future__ import annotations

"""Command-line interface
------------------------
Commands to list site categories, analyze URLs/categories, re-render reports
and inspect a results file. Thin wrapper around the loader, engine and
report modules.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import click

from easing_probe.core.models import AnimationCall, BUCKET_ANIME, BUCKET_GSAP, BUCKET_GSAP_TRIGGER, SiteRecord
from easing_probe.core.site_loader import load_sites
from easing_probe.detection.signatures import LENIS, SCROLL_TRIGGER
from easing_probe.report.aggregator import SUMMARY_TARGETS, top
from easing_probe.report.writer import LIBRARY_LABELS, element_label, load_results, write_report, write_results
from easing_probe.utils.config import get_settings
from easing_probe.utils.logger import (
    attach_file_logger,
    bind,
    detach_file_logger,
    get_logger,
    set_log_level,
    short_error,
    unbind,
)


TRIGGER_PREVIEW = 80
CSS_DETAIL_LIMIT = 15
CODE_PRESETS = 10
CODE_TWEENS = 5
CODE_TRIGGERS = 3


# -------- helpers --------


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, indent=2, ensure_ascii=False))


def _run_id() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _is_url(target: str) -> bool:
    return target.startswith(("http://", "https://"))


def _resolve_targets(targets: List[str], sites_file: Optional[str]) -> List[str]:
    if all(_is_url(t) for t in targets):
        return list(dict.fromkeys(targets))
    return load_sites(sites_file).resolve(targets)


def _report_name(results_path: Path) -> str:
    stem = results_path.stem
    return stem[: -len("-results")] if stem.endswith("-results") else stem


# -------- show views --------
# Each view renders one analyzed site as text lines.


def _flag(value: bool) -> str:
    return "yes" if value else "no"


def _call_line(call: AnimationCall) -> str:
    parts = [f"{call.method} ease={call.ease or '-'} duration={call.duration:g} delay={call.delay:g}"]
    if call.stagger:
        parts.append(f"stagger={call.stagger}")
    if call.custom_ease:
        parts.append(f"custom_ease={call.custom_ease}")
    return " ".join(parts)


def _view_easings(record: SiteRecord) -> List[str]:
    lines = []
    for target in SUMMARY_TARGETS:
        values = record.target_easings(target)
        if values:
            lines.append(f"  {target}: {', '.join(values)}")
    for bucket in (BUCKET_GSAP, BUCKET_GSAP_TRIGGER, BUCKET_ANIME):
        eases = sorted({c.ease for c in record.calls(bucket) if c.ease})
        if eases:
            lines.append(f"  {bucket} (captured): {', '.join(eases)}")
    return lines


def _view_triggers(record: SiteRecord) -> List[str]:
    calls = record.calls(BUCKET_GSAP_TRIGGER)
    if not calls:
        return ["  no trigger-bound animations captured"]
    lines = []
    for call in calls:
        lines.append(f"  {call.method} ease={call.ease} duration={call.duration:g} delay={call.delay:g}")
        lines.append(f"    trigger: {call.trigger}")
    return lines


def _view_gsap_animations(record: SiteRecord) -> List[str]:
    plain, bound = record.calls(BUCKET_GSAP), record.calls(BUCKET_GSAP_TRIGGER)
    if not plain and not bound:
        return ["  no GSAP animations captured"]
    lines = []
    if plain:
        lines.append("  standard:")
        lines += [f"    {i}. {_call_line(c)}" for i, c in enumerate(plain, 1)]
    if bound:
        lines.append("  scroll-triggered:")
        for i, call in enumerate(bound, 1):
            lines.append(f"    {i}. {_call_line(call)}")
            lines.append(f"       trigger: {call.trigger}")
    return lines


def _view_scroll_triggers(record: SiteRecord) -> List[str]:
    d = record.libraries.get(SCROLL_TRIGGER)
    if d and d.detected:
        lines = [f"  ScrollTrigger: detected ({d.extra.get('active_triggers', 0)} active triggers)"]
    else:
        lines = ["  ScrollTrigger: not used"]
    for i, call in enumerate(record.calls(BUCKET_GSAP_TRIGGER), 1):
        lines.append(f"  {i}. {call.method} ease={call.ease or '-'} duration={call.duration:g}s")
        lines.append(f"     trigger: {short_error(call.trigger or '', TRIGGER_PREVIEW)}")
    return lines


def _view_lenis_config(record: SiteRecord) -> List[str]:
    d = record.libraries.get(LENIS)
    if not d or not d.detected:
        return ["  Lenis: not used"]
    smooth = d.extra.get("smooth")
    lines = [f"  Lenis: detected{f' (v{d.version})' if d.version else ''}"]
    lines.append(f"  smooth: {'unknown' if smooth is None else _flag(smooth)}")
    lines.append(f"  evidence: {', '.join(sorted(d.evidence))}")
    return lines


def _view_element_patterns(record: SiteRecord) -> List[str]:
    p = record.patterns
    lines = [f"  animated elements: {p.animated_elements_count}"]
    lines += [f"  {i}. {element_label(el)}" for i, el in enumerate(p.element_samples, 1)]
    lines += [
        f"  scroll animations: {_flag(p.has_scroll_animations)}",
        f"  data attributes: {_flag(p.has_data_attributes)}",
        f"  scroll classes: {_flag(p.has_scroll_classes)}",
    ]
    return lines


def _view_animation_summary(record: SiteRecord) -> List[str]:
    captured = record.calls(BUCKET_GSAP) + record.calls(BUCKET_GSAP_TRIGGER)
    lines = ["  libraries:"]
    for name, label in LIBRARY_LABELS.items():
        d = record.libraries.get(name)
        version = f" v{d.version}" if d and d.version else ""
        lines.append(f"    {label}: {_flag(bool(d and d.detected))}{version}")
    lines += [
        "  counts:",
        f"    CSS easings: {len(record.css_easings)}",
        f"    CSS animation details: {len(record.css.animation_details)}",
        f"    GSAP animations: {len(record.calls(BUCKET_GSAP))}",
        f"    GSAP ScrollTrigger animations: {len(record.calls(BUCKET_GSAP_TRIGGER))}",
        f"    Anime.js animations: {len(record.calls(BUCKET_ANIME))}",
        f"    animated elements: {record.patterns.animated_elements_count}",
        "  features:",
        f"    stagger: {_flag(any(c.stagger for c in captured))}",
        f"    custom ease: {_flag(any(c.custom_ease for c in captured))}",
    ]
    return lines


def _view_css_animations(record: SiteRecord) -> List[str]:
    details = record.css.animation_details[:CSS_DETAIL_LIMIT]
    if not details:
        return ["  no CSS animations or transitions"]
    lines = []
    for i, detail in enumerate(details, 1):
        subject = detail.get("property") or detail.get("animation") or ""
        timing = detail.get("timing_function") or detail.get("iteration_count") or ""
        line = f"  {i}. {detail.get('type', '?')} {subject} duration={detail.get('duration', '')} timing={timing}"
        if detail.get("delay") and detail.get("delay") != "0s":
            line += f" delay={detail['delay']}"
        lines.append(line)
    if record.css.keyframes:
        lines.append(f"  keyframes: {', '.join(record.css.keyframes)}")
    return lines


def _view_generate_code(record: SiteRecord) -> List[str]:
    plain, bound = record.calls(BUCKET_GSAP), record.calls(BUCKET_GSAP_TRIGGER)
    lines = [
        f"// Site: {record.title or record.url}",
        "import gsap from 'gsap'",
        "import { ScrollTrigger } from 'gsap/ScrollTrigger'",
        "gsap.registerPlugin(ScrollTrigger)",
        "",
    ]
    if record.detected(LENIS):
        lines += [
            "import Lenis from 'lenis'",
            "const lenis = new Lenis({ smooth: true })",
            "function raf(time) { lenis.raf(time); requestAnimationFrame(raf) }",
            "requestAnimationFrame(raf)",
            "",
        ]
    presets = list(dict.fromkeys([c.ease for c in plain + bound if c.ease] + list(record.css_easings)))
    lines.append("const easings = {")
    lines += [f"  ease_{i}: '{e}'," for i, e in enumerate(presets[:CODE_PRESETS])]
    lines += ["}", ""]
    for i, call in enumerate(plain[:CODE_TWEENS], 1):
        lines.append(f"gsap.{call.method}('.animate-{i}', {{")
        lines.append(f"  duration: {call.duration:g},")
        lines.append(f"  ease: '{call.ease}',")
        if call.stagger:
            lines.append(f"  stagger: {call.stagger},")
        lines += ["})", ""]
    for i, call in enumerate(bound[:CODE_TRIGGERS], 1):
        lines += [
            f"gsap.{call.method}('.scroll-animate-{i}', {{",
            f"  duration: {call.duration:g},",
            f"  ease: '{call.ease}',",
            f"  scrollTrigger: {{ trigger: '.scroll-animate-{i}', start: 'top center', end: 'bottom center' }},",
            "})",
            "",
        ]
    css = list(record.css_easings)
    if css:
        lines.append("/* CSS */")
        lines += [f".ease-{i} {{ transition-timing-function: {e}; }}" for i, e in enumerate(css[:CODE_PRESETS])]
    return lines


SITE_VIEWS = {
    "easings": _view_easings,
    "triggers": _view_triggers,
    "gsap-animations": _view_gsap_animations,
    "scroll-triggers": _view_scroll_triggers,
    "lenis-config": _view_lenis_config,
    "element-patterns": _view_element_patterns,
    "animation-summary": _view_animation_summary,
    "css-animations": _view_css_animations,
    "generate-code": _view_generate_code,
}


# -------- CLI root --------


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL from settings",
)
@click.version_option(package_name="easing-probe")
def cli(log_level: Optional[str]):
    _ = get_settings()
    if log_level:
        set_log_level(log_level.upper())


# -------- commands --------


@cli.command("config")
def cmd_config():
    """Print effective configuration (after .env & env vars)."""
    s = get_settings()
    data = {k: (str(v) if isinstance(v, Path) else v) for k, v in s.__dict__.items()}
    if data.get("PROXY_PASSWORD"):
        data["PROXY_PASSWORD"] = "***"
    _echo_json(data)


@cli.command("sites")
@click.option("--sites-file", type=click.Path(dir_okay=False, exists=True), default=None,
              help="Category YAML (defaults to SITES_FILE or the bundled list)")
def cmd_sites(sites_file: Optional[str]):
    """List site categories."""
    try:
        catalog = load_sites(sites_file)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"ERR {e}")
        sys.exit(1)
    if not catalog.categories:
        click.echo("No categories found.")
        return
    click.echo(f"Found {len(catalog.categories)} categories:\n")
    for name, cat in catalog.categories.items():
        desc = f"  {cat.description}" if cat.description else ""
        click.echo(f" - {name} ({len(cat.urls)} sites){desc}")


@cli.command("analyze")
@click.argument("targets", nargs=-1, required=True)
@click.option("--name", default="easing", show_default=True, help="Base name for the results/report files")
@click.option("--out-dir", type=click.Path(file_okay=False), default=None, help="Override OUTPUT_DIR")
@click.option("--sites-file", type=click.Path(dir_okay=False, exists=True), default=None)
@click.option("--headless/--headed", default=None, help="Override HEADLESS from settings")
def cmd_analyze(targets: List[str], name: str, out_dir: Optional[str], sites_file: Optional[str], headless: Optional[bool]):
    """
    Analyze URLs and/or site categories, then write results JSON and a Markdown report.

    Examples:
      easing-probe analyze https://resn.co.nz/
      easing-probe analyze agencies portfolios --name agencies
      easing-probe analyze all
    """
    settings = get_settings()
    if headless is not None:
        settings = settings.model_copy(update={"HEADLESS": headless})
    log = get_logger(__name__)

    try:
        urls = _resolve_targets(list(targets), sites_file)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"ERR {e}")
        sys.exit(2)
    if not urls:
        click.echo("No URLs matched.")
        sys.exit(1)

    settings.ensure_dirs()
    output = Path(out_dir).resolve() if out_dir else settings.OUTPUT_DIR
    output.mkdir(parents=True, exist_ok=True)

    run_id = _run_id()
    bind(run_id=run_id)
    handler = attach_file_logger(output / f"{name}-{run_id}.log")
    click.echo(f"Analyzing {len(urls)} site(s)...")

    from easing_probe.core.engine import Analyzer  # local import keeps playwright off the CLI import path

    def _progress(index: int, url: str, record: Optional[SiteRecord]) -> None:
        status = "OK " if record is not None else "ERR"
        click.echo(f"{status} [{index + 1}/{len(urls)}] {url}")

    try:
        batch = Analyzer(settings=settings).run_batch(urls, on_result=_progress)
    except Exception as e:
        log.error(f"Batch aborted: {short_error(e)}")
        click.echo(f"ERR batch aborted: {e}")
        sys.exit(1)
    finally:
        detach_file_logger(handler)
        unbind("run_id")

    results_path = write_results(batch, output, name)
    report_path = write_report(batch, output, name)
    counts = batch.counts()
    click.echo(f"Done. OK={counts.get('ok', 0)}  FAIL={counts.get('failed', 0)}")
    click.echo(f"Wrote results: {results_path}")
    click.echo(f"Wrote report:  {report_path}")
    sys.exit(0 if batch.records else 1)


@cli.command("report")
@click.argument("results_json", type=click.Path(dir_okay=False, exists=True))
@click.option("--out-dir", type=click.Path(file_okay=False), default=None,
              help="Directory for the report (defaults to the results file's directory)")
def cmd_report(results_json: str, out_dir: Optional[str]):
    """Re-render the Markdown report from a results file."""
    path = Path(results_json).resolve()
    try:
        batch = load_results(path)
    except (ValueError, json.JSONDecodeError) as e:
        click.echo(f"ERR {path}  ->  {e}")
        sys.exit(1)
    report_path = write_report(batch, Path(out_dir).resolve() if out_dir else path.parent, _report_name(path))
    click.echo(f"Wrote report: {report_path}")


@cli.command("show")
@click.argument("view", type=click.Choice(["summary", *SITE_VIEWS]))
@click.argument("results_json", type=click.Path(dir_okay=False, exists=True))
def cmd_show(view: str, results_json: str):
    """
    Views over one results file.

    summary is batch-wide JSON; every other view prints one block per analyzed
    site (generate-code emits a JavaScript starter built from the captured
    eases and durations).
    """
    try:
        batch = load_results(results_json)
    except (ValueError, json.JSONDecodeError) as e:
        click.echo(f"ERR {results_json}  ->  {e}")
        sys.exit(1)

    if view == "summary":
        summary = batch.summary()
        _echo_json({
            "sites": summary["sites"],
            "failed": len(batch.failures),
            "libraries": summary["libraries"],
            "top": {t: dict(top(summary[t]["frequency"], 10)) for t in SUMMARY_TARGETS},
            "gsap_captured": dict(top(summary["gsap_captured"]["frequency"], 10)),
        })
        return

    if not batch.records:
        click.echo("No analyzed sites in results.")
        return

    header = "//" if view == "generate-code" else "#"
    for record in batch.records:
        click.echo(f"{header} {record.title or record.url}  ({record.url})")
        for line in SITE_VIEWS[view](record):
            click.echo(line)


def main() -> None:
    cli(prog_name="easing-probe")


if __name__ == "__main__":
    main()
