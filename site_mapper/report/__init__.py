"""site_mapper.report: serialization of crawl reports."""

from site_mapper.report.json_report import render_json

__all__ = ["render_json"]
