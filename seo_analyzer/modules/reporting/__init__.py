"""Reporting module -- report aggregation and rendering."""

from seo_analyzer.modules.reporting.report_engine import ReportEngine
from seo_analyzer.modules.reporting.report_renderer import ReportRenderer

__all__ = ["ReportEngine", "ReportRenderer"]
