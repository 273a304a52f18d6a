"""
Panel export pipeline.

Two sequential stages, each awaiting Grafana once:

1. ``ExportSession.load``: fetch the dashboard, locate the panel, list its queries
2. ``ExportSession.export``: build the batch, run it, convert, save

A session that is closed while a stage is in flight discards that stage's
result. ``export`` refuses to start while another export of the same session
is still running.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from paneldump.clients.grafana import GrafanaClient, GrafanaClientError
from paneldump.config import Settings, get_settings
from paneldump.core.errors import (
    InvalidParameterError,
    MissingParameterError,
    QueryExecutionError,
)
from paneldump.dashboards.extractor import extract_queries, fetch_panel_info
from paneldump.dashboards.models import ExtractedQuery, PanelRecord
from paneldump.exposition.converter import convert_result
from paneldump.exposition.export import export_filename, save_export
from paneldump.logging import bind_context
from paneldump.queries.batch import build_query_batch, resolve_datasource_uid
from paneldump.queries.models import QueryBatch, TimeRange, TimeRangeError
from paneldump.queries.results import QueryResult

REQUIRED_PARAMETERS = ("dashboard", "panel", "timerange")


@dataclass(frozen=True)
class ExportParams:
    """Everything a run needs from the caller."""

    dashboard_uid: str
    panel_id: int
    time_range: TimeRange

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> "ExportParams":
        """
        Build params from ``dashboard``, ``panel`` and ``timerange`` entries.

        Raises:
            MissingParameterError: a parameter is absent or empty
            InvalidParameterError: panel is not an integer, or timerange is
                not a JSON object with ``from``/``to``
        """
        for name in REQUIRED_PARAMETERS:
            value = params.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise MissingParameterError(name)

        try:
            panel_id = int(str(params["panel"]).strip())
        except ValueError as exc:
            raise InvalidParameterError("panel", "expected an integer") from exc

        try:
            time_range = TimeRange.from_json(str(params["timerange"]))
        except TimeRangeError as exc:
            raise InvalidParameterError("timerange", str(exc)) from exc

        return cls(
            dashboard_uid=str(params["dashboard"]).strip(),
            panel_id=panel_id,
            time_range=time_range,
        )


@dataclass(frozen=True)
class ExportResult:
    """Outcome of a completed export."""

    filename: str
    text: str
    line_count: int
    batch: QueryBatch
    path: Optional[Path] = None
    query_errors: Optional[dict[str, str]] = None


class ExportSession:
    """State for one panel view: the panel, its queries, and export runs."""

    def __init__(
        self,
        client: GrafanaClient,
        params: ExportParams,
        settings: Optional[Settings] = None,
    ) -> None:
        self._client = client
        self.params = params
        self._settings = settings or get_settings()
        self._log = bind_context(dashboard_uid=params.dashboard_uid, panel_id=params.panel_id)

        self.panel: Optional[PanelRecord] = None
        self.queries: List[ExtractedQuery] = []
        self.last_export: Optional[ExportResult] = None
        self._cancelled = False
        self._busy = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def busy(self) -> bool:
        return self._busy

    def close(self) -> None:
        """Tear down: results of any in-flight stage are dropped."""
        self._cancelled = True

    async def load(self) -> Optional[PanelRecord]:
        """Stage 1: look up the panel and list its queries."""
        panel = await fetch_panel_info(self._client, self.params.dashboard_uid, self.params.panel_id)
        if self._cancelled:
            self._log.info("stage_discarded", stage="load")
            return None

        queries = extract_queries(panel)
        self.panel = panel
        self.queries = queries
        self._log.info(
            "panel_loaded",
            title=panel.title,
            datasource=panel.datasource.uid if panel.datasource else None,
            targets=len(panel.targets),
        )
        return panel

    async def export(
        self,
        output_dir: Union[str, Path, None] = None,
        *,
        datasource_uid: Optional[str] = None,
        save: bool = True,
    ) -> Optional[ExportResult]:
        """
        Stage 2: run the panel's queries and write the exposition file.

        Returns None when the session was closed, another export is running,
        or no datasource could be resolved.

        Raises:
            QueryExecutionError: Grafana rejected the batch or was unreachable
        """
        if self._cancelled:
            return None
        if self._busy:
            self._log.warning("export_in_progress")
            return None
        self._busy = True
        try:
            if self.panel is None and await self.load() is None:
                return None
            return await self._run_export(output_dir, datasource_uid, save)
        finally:
            self._busy = False

    async def _run_export(
        self,
        output_dir: Union[str, Path, None],
        datasource_uid: Optional[str],
        save: bool,
    ) -> Optional[ExportResult]:
        assert self.panel is not None
        uid = datasource_uid or resolve_datasource_uid(self.panel, self._settings.default_datasource_uid)
        if not uid:
            self._log.warning("datasource_unresolved")
            return None

        batch = build_query_batch(
            [q.expr for q in self.queries],
            uid,
            self.params.time_range,
            interval_ms=self._settings.query_interval_ms,
            max_data_points=self._settings.query_max_data_points,
        )
        if not batch.queries:
            self._log.warning("no_queries_to_run", skipped=batch.skipped_ref_ids)
            return None

        try:
            response = await self._client.query(batch.to_payload())
        except GrafanaClientError as exc:
            raise QueryExecutionError(
                f"Query execution failed: {exc}",
                {"dashboard_uid": self.params.dashboard_uid, "status": exc.status_code},
            ) from exc

        if self._cancelled:
            self._log.info("stage_discarded", stage="export")
            return None

        result = QueryResult.from_api_response(response)
        lines = convert_result(result)
        text = "\n".join(lines)
        filename = export_filename(self.panel)
        path = None
        if save:
            path = save_export(output_dir or self._settings.output_dir, filename, text)

        export = ExportResult(
            filename=filename,
            text=text,
            line_count=len(lines),
            batch=batch,
            path=path,
            query_errors=result.errors or None,
        )
        self.last_export = export
        self._log.info("export_complete", lines=len(lines), ref_ids=batch.ref_ids, filename=filename)
        return export


async def run_export(
    params: ExportParams,
    *,
    client: Optional[GrafanaClient] = None,
    settings: Optional[Settings] = None,
    output_dir: Union[str, Path, None] = None,
    datasource_uid: Optional[str] = None,
    save: bool = True,
) -> Optional[ExportResult]:
    """One-shot export: load the panel, then export it."""
    settings = settings or get_settings()
    client = client or GrafanaClient.from_settings(settings)
    session = ExportSession(client, params, settings)
    await session.load()
    return await session.export(output_dir, datasource_uid=datasource_uid, save=save)
