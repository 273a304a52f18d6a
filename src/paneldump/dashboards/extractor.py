"""
Turn a dashboard panel into a PanelRecord and list its query expressions.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog

from paneldump.clients.grafana import GrafanaClient, GrafanaClientError
from paneldump.core.errors import (
    DashboardInvalidError,
    DashboardNotFoundError,
    PanelNotFoundError,
)
from paneldump.dashboards.locator import find_panel_by_id
from paneldump.dashboards.models import DatasourceRef, ExtractedQuery, PanelRecord

logger = structlog.get_logger()

# Prometheus/Loki targets use "expr"; raw Flux and SQL style targets use "query"
EXPRESSION_FIELDS = ("expr", "query")


async def fetch_dashboard(client: GrafanaClient, dashboard_uid: str) -> Dict[str, Any]:
    """
    Fetch the dashboard model for a UID.

    Raises:
        DashboardNotFoundError: the request failed (404, 401/403, network)
        DashboardInvalidError: the response has no ``dashboard`` object
    """
    try:
        data = await client.get_dashboard(dashboard_uid)
    except GrafanaClientError as exc:
        raise DashboardNotFoundError(dashboard_uid, str(exc)) from exc

    dashboard = data.get("dashboard") if isinstance(data, dict) else None
    if not isinstance(dashboard, dict):
        raise DashboardInvalidError(dashboard_uid)

    logger.info(
        "dashboard_fetched",
        dashboard_uid=dashboard_uid,
        title=dashboard.get("title"),
        top_level_panels=len(dashboard.get("panels") or []),
    )
    return dashboard


def panel_record_from_node(
    node: Optional[Dict[str, Any]],
    dashboard_uid: str,
    panel_id: int,
) -> PanelRecord:
    """Normalize a located panel node; ``None`` means the lookup failed."""
    if node is None:
        logger.warning("panel_not_found", dashboard_uid=dashboard_uid, panel_id=panel_id)
        raise PanelNotFoundError(dashboard_uid, panel_id)

    targets = node.get("targets")
    title = node.get("title")
    return PanelRecord(
        id=node["id"],
        dashboard_uid=dashboard_uid,
        title=title if isinstance(title, str) else None,
        datasource=DatasourceRef.from_raw(node.get("datasource")),
        targets=list(targets) if isinstance(targets, list) else [],
        raw_panel=node,
    )


async def fetch_panel_info(
    client: GrafanaClient,
    dashboard_uid: str,
    panel_id: int,
) -> PanelRecord:
    """Fetch a dashboard by UID and return the panel with ``panel_id``."""
    dashboard = await fetch_dashboard(client, dashboard_uid)
    node = find_panel_by_id(dashboard.get("panels"), panel_id)
    return panel_record_from_node(node, dashboard_uid, panel_id)


def extract_queries(panel: PanelRecord) -> List[ExtractedQuery]:
    """
    Read one expression per target, in target order.

    A target with no readable expression does not abort the list; its entry
    carries an empty ``expr`` and a ``fault`` describing the problem.
    """
    queries: List[ExtractedQuery] = []
    for index, target in enumerate(panel.targets):
        queries.append(_extract_one(index, target))

    faults = [q.index for q in queries if not q.ok]
    if faults:
        logger.warning(
            "query_extraction_faults",
            dashboard_uid=panel.dashboard_uid,
            panel_id=panel.id,
            positions=faults,
        )
    return queries


def _extract_one(index: int, target: Any) -> ExtractedQuery:
    if not isinstance(target, dict):
        return ExtractedQuery(index=index, expr="", fault="target is not an object")

    for key in EXPRESSION_FIELDS:
        if key not in target:
            continue
        value = target[key]
        if isinstance(value, str):
            return ExtractedQuery(index=index, expr=value)
        return ExtractedQuery(index=index, expr="", fault=f"target field {key!r} is not a string")

    return ExtractedQuery(index=index, expr="", fault="target has no expression field")
