"""
Build ``/api/ds/query`` batches from a panel's expressions.

Reference ids are positional: ``A``..``Z`` for the first 26 expressions, then
``Q26``, ``Q27``, ... Results come back keyed by these ids, so the rule must
not change.
"""

from __future__ import annotations

import string
from typing import Optional, Sequence

import structlog

from paneldump.dashboards.models import DatasourceRef, PanelRecord
from paneldump.queries.models import QueryBatch, QuerySpec, TimeRange

logger = structlog.get_logger()

_LETTERS = string.ascii_uppercase

# panel-level placeholder when every target names its own datasource
MIXED_DATASOURCE_UID = "-- Mixed --"


def ref_id_for_index(index: int) -> str:
    """Return the reference id for the expression at ``index``."""
    if index < 0:
        raise ValueError(f"query index must be non-negative, got {index}")
    if index < len(_LETTERS):
        return _LETTERS[index]
    return f"Q{index}"


def build_query_batch(
    exprs: Sequence[str],
    datasource_uid: str,
    time_range: TimeRange,
    *,
    interval_ms: Optional[int] = None,
    max_data_points: Optional[int] = None,
) -> QueryBatch:
    """
    Build an instant-mode query batch.

    Every query shares ``datasource_uid`` and ``time_range``. Blank
    expressions are left out of the request but still use up their
    position's reference id.

    Args:
        exprs: Query expressions in target order
        datasource_uid: Resolved datasource UID (must be non-empty)
        time_range: Bounds passed through to Grafana
        interval_ms: Optional ``intervalMs`` for every query
        max_data_points: Optional ``maxDataPoints`` for every query

    Returns:
        QueryBatch ready for ``GrafanaClient.query``
    """
    if not datasource_uid:
        raise ValueError("datasource_uid is required to build a query batch")

    queries: list[QuerySpec] = []
    skipped: list[str] = []
    for index, expr in enumerate(exprs):
        ref_id = ref_id_for_index(index)
        if not expr or not expr.strip():
            skipped.append(ref_id)
            continue
        queries.append(
            QuerySpec(
                ref_id=ref_id,
                expr=expr,
                datasource_uid=datasource_uid,
                instant=True,
                range=False,
                interval_ms=interval_ms,
                max_data_points=max_data_points,
            )
        )

    if skipped:
        logger.debug("blank_queries_skipped", ref_ids=skipped)
    return QueryBatch(queries=queries, time_range=time_range, skipped_ref_ids=skipped)


def resolve_datasource_uid(panel: PanelRecord, default_uid: Optional[str] = None) -> Optional[str]:
    """
    Pick the datasource UID for a panel's batch.

    Order: the panel's datasource, then the first target-level datasource,
    then ``default_uid``. Dashboard variable references are not resolvable
    here and are skipped.
    """
    panel_uid = panel.datasource.resolved_uid if panel.datasource else None
    if panel_uid and panel_uid != MIXED_DATASOURCE_UID:
        return panel_uid

    for target in panel.targets:
        if not isinstance(target, dict):
            continue
        ref = DatasourceRef.from_raw(target.get("datasource"))
        if ref and ref.resolved_uid:
            return ref.resolved_uid

    return default_uid or None
