"""
Core package for easing-probe.
Lightweight package init to avoid import cycles.

Consumers should import submodules directly, e.g.:
  from easing_probe.core.site_loader import load_sites
  from easing_probe.core.engine import Analyzer, analyze_urls
  from easing_probe.core.models import SiteRecord, BatchResult
"""

__all__: list[str] = []
