"""
CLI commands for exporting a panel's query results.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from rich.markup import escape

from paneldump.cli.ux import console, header, info, print_key_value, print_table, spinner, success, warning
from paneldump.clients.grafana import GrafanaClient
from paneldump.config import Settings, get_settings
from paneldump.core.errors import ConfigurationError, ExitCode, main_with_error_handling
from paneldump.dashboards.models import ExtractedQuery, PanelRecord
from paneldump.pipeline import ExportParams, ExportSession
from paneldump.queries.batch import ref_id_for_index


@main_with_error_handling()
def export_command(
    dashboard: Optional[str],
    panel: Optional[str],
    timerange: Optional[str],
    output_dir: Optional[str] = None,
    datasource: Optional[str] = None,
) -> int:
    """
    Export a panel's query results as a Prometheus exposition file.

    Exit codes:
        0 = File written
        1 = Nothing to export (no datasource or no queries)
        10 = Missing or invalid parameters
        11 = Grafana error (dashboard, panel or query failure)
    """
    params = ExportParams.from_mapping({"dashboard": dashboard, "panel": panel, "timerange": timerange})
    settings = get_settings()
    session = ExportSession(_client(settings), params, settings)

    header(f"Panel export: {params.dashboard_uid} / {params.panel_id}")
    with spinner("Loading panel..."):
        asyncio.run(session.load())
    _display_panel(session.panel, session.queries)

    with spinner("Running queries..."):
        result = asyncio.run(session.export(output_dir, datasource_uid=datasource))

    if result is None:
        warning("Nothing exported: no datasource could be resolved or the panel has no queries")
        return ExitCode.WARNING

    if result.query_errors:
        for ref_id, message in result.query_errors.items():
            warning(f"Query {ref_id} failed: {message}")
    success(f"Wrote {result.line_count} lines to {result.path}")
    return ExitCode.SUCCESS


@main_with_error_handling()
def queries_command(dashboard: Optional[str], panel: Optional[str]) -> int:
    """Show a panel's queries without running them."""
    # the time range is not used when only listing queries
    params = ExportParams.from_mapping(
        {"dashboard": dashboard, "panel": panel, "timerange": '{"from": "now-1h", "to": "now"}'}
    )
    settings = get_settings()
    session = ExportSession(_client(settings), params, settings)

    with spinner("Loading panel..."):
        asyncio.run(session.load())
    _display_panel(session.panel, session.queries)
    return ExitCode.SUCCESS


def _display_panel(panel: Optional[PanelRecord], queries: list[ExtractedQuery]) -> None:
    if panel is None:
        return
    datasource = "-"
    if panel.datasource:
        datasource = panel.datasource.uid or "-"
        if panel.datasource.type:
            datasource = f"{datasource} ({panel.datasource.type})"
    print_key_value(
        {
            "Title": escape(panel.title or "(untitled)"),
            "Type": panel.type or "-",
            "Datasource": escape(datasource),
        },
        title="Panel",
    )
    console.print()

    if not queries:
        info("Panel has no queries")
        return

    rows = []
    for query in queries:
        expr = escape(query.expr) if query.ok else f"[error]{escape(query.fault or '')}[/error]"
        rows.append([ref_id_for_index(query.index), expr])
    print_table("Queries", ["Ref", "Expression"], rows)


def _client(settings: Settings) -> GrafanaClient:
    if not settings.grafana_url.strip():
        raise ConfigurationError("Grafana URL is not configured", {"setting": "PANELDUMP_GRAFANA_URL"})
    return GrafanaClient.from_settings(settings)
