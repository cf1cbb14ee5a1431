# site_mapper/report/json_report.py
"""
JSON sitemap report for SiteMapper.

Writes a SiteReport to a file.
"""
from __future__ import annotations

from pathlib import Path

from site_mapper.aggregator import SiteReport


def render_json(report: SiteReport, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Save ``report`` as JSON at ``output_path`` and return the path.

    ```python
    from site_mapper.report.json_report import render_json
    report_path = render_json(report, 'reports/sitemap.json')
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(report.json(pretty=pretty), encoding="utf-8")
    return output
