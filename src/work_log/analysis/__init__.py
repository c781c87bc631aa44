"""Rendering of work summaries."""

from work_log.analysis.reports import ReportGenerator, TimeFormat, as_csv, as_json, format_time

__all__ = ["ReportGenerator", "TimeFormat", "as_csv", "as_json", "format_time"]
