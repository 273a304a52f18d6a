"""Dashboard lookup: locate panels and read their query definitions."""

from paneldump.dashboards.extractor import (
    extract_queries,
    fetch_dashboard,
    fetch_panel_info,
    panel_record_from_node,
)
from paneldump.dashboards.locator import find_panel_by_id
from paneldump.dashboards.models import DatasourceRef, ExtractedQuery, PanelRecord

__all__ = [
    "DatasourceRef",
    "ExtractedQuery",
    "PanelRecord",
    "extract_queries",
    "fetch_dashboard",
    "fetch_panel_info",
    "find_panel_by_id",
    "panel_record_from_node",
]
