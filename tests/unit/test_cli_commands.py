import json
import sys
import types
from pathlib import Path
import textwrap

from click.testing import CliRunner

from easing_probe.cli import cli
from easing_probe.core.models import (
    AnimationCall,
    BatchResult,
    Channel,
    CssFindings,
    Detection,
    PagePatterns,
    SiteRecord,
)
from easing_probe.report.writer import write_results


def write_sites_yaml(tmp_path: Path) -> Path:
    y = textwrap.dedent(
        """
        agencies:
          description: Studios
          urls:
            - https://one.test/
            - https://two.test/
        ---
        portfolios:
          - https://three.test/
        """
    )
    p = tmp_path / "sites.yaml"
    p.write_text(y, encoding="utf-8")
    return p


def _record(url: str) -> SiteRecord:
    return SiteRecord(
        url=url,
        title="One",
        description="",
        captured_at="2026-01-01T00:00:00Z",
        libraries={"gsap": Detection(evidence={"global.gsap"})},
        captured={
            "gsap_scroll_trigger": (
                AnimationCall(library="gsap", method="to", ease="power2.out", duration=1.0,
                              trigger='{"trigger":".hero"}'),
            ),
        },
        easings={Channel.css_computed.value: {"css": ("ease",)}},
    )


def _results_file(tmp_path: Path) -> Path:
    batch = BatchResult()
    batch.append("https://one.test/", _record("https://one.test/"))
    batch.append("https://two.test/", None)
    return write_results(batch, tmp_path, "demo")


LONG_TRIGGER = '{"trigger":".pin","start":"top top","end":"+=2000","scrub":1,"pin":true,"anticipatePin":1,"markers":false}'


def _rich_record() -> SiteRecord:
    return SiteRecord(
        url="https://rich.test/",
        title="Rich",
        description="",
        captured_at="2026-01-01T00:00:00Z",
        libraries={
            "gsap": Detection(evidence={"global.gsap"}, version="3.12.5"),
            "scroll_trigger": Detection(evidence={"global.ScrollTrigger"}, extra={"active_triggers": 4}),
            "lenis": Detection(evidence={"global.Lenis"}, extra={"smooth": True}),
        },
        css=CssFindings(
            animation_details=(
                {"type": "transition", "property": "opacity", "duration": "0.3s", "delay": "0.1s",
                 "timing_function": "ease-out"},
                {"type": "keyframe", "animation": "spin 2s linear infinite", "duration": "2s", "delay": "0s",
                 "iteration_count": "infinite"},
            ),
            keyframes=("spin",),
        ),
        captured={
            "gsap": (
                AnimationCall(library="gsap", method="to", ease="expo.inOut", duration=1.2,
                              stagger="0.1", custom_ease='{"ease":"M0,0 C0.7,0 0.3,1 1,1"}'),
            ),
            "gsap_scroll_trigger": (
                AnimationCall(library="gsap", method="from", ease="power3.out", duration=0.8, trigger=LONG_TRIGGER),
            ),
        },
        easings={Channel.css_computed.value: {"css": ("ease-out",)}},
        patterns=PagePatterns(
            animated_elements_count=3,
            element_samples=({"tag": "SECTION", "classes": "hero scroll-trigger", "data_attributes": "data-scroll=true"},),
            has_data_attributes=True,
            has_scroll_classes=True,
            has_scroll_animations=True,
        ),
    )


def _rich_results_file(tmp_path: Path) -> Path:
    batch = BatchResult()
    batch.append("https://rich.test/", _rich_record())
    return write_results(batch, tmp_path, "rich")


def test_cli_sites_lists_categories(tmp_path: Path):
    sites = write_sites_yaml(tmp_path)
    result = CliRunner().invoke(cli, ["sites", "--sites-file", str(sites)])
    assert result.exit_code == 0
    assert "Found 2 categories" in result.output
    assert " - agencies (2 sites)  Studios" in result.output


def test_cli_config_masks_password(monkeypatch):
    monkeypatch.setenv("PROXY_PASSWORD", "hunter2")
    result = CliRunner().invoke(cli, ["config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["PROXY_PASSWORD"] == "***"


def test_cli_analyze_unknown_target(tmp_path: Path):
    sites = write_sites_yaml(tmp_path)
    result = CliRunner().invoke(cli, ["analyze", "nowhere", "--sites-file", str(sites)])
    assert result.exit_code == 2
    assert "Unknown target 'nowhere'" in result.output


def test_cli_analyze_monkeypatch_engine(tmp_path: Path, monkeypatch):
    sites = write_sites_yaml(tmp_path)
    seen = {}

    # Stand-in engine module so the command never launches a browser
    fake_engine = types.ModuleType("easing_probe.core.engine")

    class FakeAnalyzer:
        def __init__(self, settings=None):
            seen["headless"] = settings.HEADLESS

        def run_batch(self, urls, on_result=None):
            seen["urls"] = list(urls)
            batch = BatchResult()
            for i, url in enumerate(urls):
                record = _record(url) if i == 0 else None
                batch.append(url, record)
                if on_result:
                    on_result(i, url, record)
            return batch

    fake_engine.Analyzer = FakeAnalyzer
    monkeypatch.setitem(sys.modules, "easing_probe.core.engine", fake_engine)

    out = tmp_path / "out"
    result = CliRunner().invoke(
        cli,
        ["analyze", "agencies", "https://one.test/", "--sites-file", str(sites),
         "--out-dir", str(out), "--name", "run", "--headed"],
    )
    assert result.exit_code == 0
    assert seen == {"headless": False, "urls": ["https://one.test/", "https://two.test/"]}
    assert "OK  [1/2] https://one.test/" in result.output
    assert "ERR [2/2] https://two.test/" in result.output
    assert "Done. OK=1  FAIL=1" in result.output
    assert (out / "run-results.json").exists()
    assert (out / "run-report.md").exists()


def test_cli_report_rerenders(tmp_path: Path):
    results = _results_file(tmp_path)
    out = tmp_path / "md"
    result = CliRunner().invoke(cli, ["report", str(results), "--out-dir", str(out)])
    assert result.exit_code == 0
    report = out / "demo-report.md"
    assert report.exists()
    assert "# Easing Analysis Report" in report.read_text(encoding="utf-8")


def test_cli_show_views(tmp_path: Path):
    results = _results_file(tmp_path)
    runner = CliRunner()

    summary = runner.invoke(cli, ["show", "summary", str(results)])
    assert summary.exit_code == 0
    data = json.loads(summary.output)
    assert data["sites"] == 1
    assert data["failed"] == 1
    assert data["gsap_captured"] == {"power2.out": 1}

    easings = runner.invoke(cli, ["show", "easings", str(results)])
    assert "  css: ease" in easings.output

    triggers = runner.invoke(cli, ["show", "triggers", str(results)])
    assert "to ease=power2.out duration=1 delay=0" in triggers.output
    assert '.hero' in triggers.output


def test_cli_show_rejects_non_results_file(tmp_path: Path):
    bogus = tmp_path / "bogus.json"
    bogus.write_text("{}", encoding="utf-8")
    result = CliRunner().invoke(cli, ["show", "summary", str(bogus)])
    assert result.exit_code == 1
    assert "not a results file" in result.output


def test_cli_show_gsap_animations(tmp_path: Path):
    out = CliRunner().invoke(cli, ["show", "gsap-animations", str(_rich_results_file(tmp_path))]).output
    assert "# Rich  (https://rich.test/)" in out
    assert '1. to ease=expo.inOut duration=1.2 delay=0 stagger=0.1 custom_ease={"ease":"M0,0 C0.7,0 0.3,1 1,1"}' in out
    assert "1. from ease=power3.out duration=0.8 delay=0" in out
    assert f"trigger: {LONG_TRIGGER}" in out


def test_cli_show_scroll_triggers_truncates_config(tmp_path: Path):
    out = CliRunner().invoke(cli, ["show", "scroll-triggers", str(_rich_results_file(tmp_path))]).output
    assert "ScrollTrigger: detected (4 active triggers)" in out
    assert "1. from ease=power3.out duration=0.8s" in out
    assert f"trigger: {LONG_TRIGGER[:77]}..." in out
    assert '"markers":false' not in out


def test_cli_show_lenis_config(tmp_path: Path):
    runner = CliRunner()
    out = runner.invoke(cli, ["show", "lenis-config", str(_rich_results_file(tmp_path))]).output
    assert "Lenis: detected" in out
    assert "smooth: yes" in out
    assert "evidence: global.Lenis" in out

    absent = runner.invoke(cli, ["show", "lenis-config", str(_results_file(tmp_path))]).output
    assert "Lenis: not used" in absent


def test_cli_show_element_patterns(tmp_path: Path):
    out = CliRunner().invoke(cli, ["show", "element-patterns", str(_rich_results_file(tmp_path))]).output
    assert "animated elements: 3" in out
    assert '1. <section class="hero scroll-trigger"> data-scroll=true' in out
    assert "scroll animations: yes" in out
    assert "data attributes: yes" in out


def test_cli_show_animation_summary(tmp_path: Path):
    out = CliRunner().invoke(cli, ["show", "animation-summary", str(_rich_results_file(tmp_path))]).output
    assert "GSAP: yes v3.12.5" in out
    assert "Lenis: yes" in out
    assert "Anime.js: no" in out
    assert "CSS animation details: 2" in out
    assert "GSAP ScrollTrigger animations: 1" in out
    assert "stagger: yes" in out
    assert "custom ease: yes" in out


def test_cli_show_css_animations(tmp_path: Path):
    out = CliRunner().invoke(cli, ["show", "css-animations", str(_rich_results_file(tmp_path))]).output
    assert "1. transition opacity duration=0.3s timing=ease-out delay=0.1s" in out
    assert "2. keyframe spin 2s linear infinite duration=2s timing=infinite" in out
    assert "delay=0s" not in out
    assert "keyframes: spin" in out


def test_cli_show_generate_code(tmp_path: Path):
    result = CliRunner().invoke(cli, ["show", "generate-code", str(_rich_results_file(tmp_path))])
    assert result.exit_code == 0
    out = result.output
    assert "// Rich  (https://rich.test/)" in out
    assert "import Lenis from 'lenis'" in out
    assert "  ease_0: 'expo.inOut'," in out
    assert "  ease_1: 'power3.out'," in out
    assert "  ease_2: 'ease-out'," in out
    assert "gsap.to('.animate-1', {" in out
    assert "  stagger: 0.1," in out
    assert "gsap.from('.scroll-animate-1', {" in out
    assert ".ease-0 { transition-timing-function: ease-out; }" in out


def test_cli_show_rejects_unknown_view_listing_choices(tmp_path: Path):
    result = CliRunner().invoke(cli, ["show", "timelines", str(_results_file(tmp_path))])
    assert result.exit_code == 2
    for view in ("gsap-animations", "scroll-triggers", "lenis-config", "element-patterns",
                 "animation-summary", "css-animations", "generate-code"):
        assert view in result.output
