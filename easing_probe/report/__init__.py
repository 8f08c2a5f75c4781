from .aggregator import summarize
from .writer import load_results, render_report, write_report, write_results

__all__ = ["summarize", "load_results", "render_report", "write_report", "write_results"]
