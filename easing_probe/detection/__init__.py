# easing_probe/detection/__init__.py
"""
Detection package
-----------------
Lightweight init; import submodules directly, e.g.
  from easing_probe.detection.static_extractor import StaticExtractor
  from easing_probe.detection.reconciler import Reconciler
Importing this package does not pull in Playwright.
"""

__all__: list[str] = []
