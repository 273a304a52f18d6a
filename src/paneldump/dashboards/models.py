"""Grafana dashboard data models.

Typed views over the dashboard JSON returned by ``/api/dashboards/uid/{uid}``.
Decoding is permissive: absent or unexpected fields fall back to defaults.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

_TEMPLATE_REF = re.compile(r"^\$\{?[\w.:]+\}?$")


@dataclass(frozen=True)
class DatasourceRef:
    """Reference to the backend a panel or target queries."""

    uid: Optional[str] = None
    type: Optional[str] = None
    legacy: bool = False  # plain string form used by older dashboards

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["DatasourceRef"]:
        """Decode a string, a ``{uid, type}`` object, or nothing."""
        if raw is None:
            return None
        if isinstance(raw, str):
            return cls(uid=raw or None, legacy=True) if raw else None
        if isinstance(raw, dict):
            uid = raw.get("uid")
            ds_type = raw.get("type")
            return cls(
                uid=str(uid) if uid not in (None, "") else None,
                type=str(ds_type) if ds_type else None,
            )
        return None

    @property
    def is_template(self) -> bool:
        """True for dashboard variable references such as ``${DS_PROMETHEUS}``."""
        return bool(self.uid and _TEMPLATE_REF.match(self.uid))

    @property
    def resolved_uid(self) -> Optional[str]:
        if self.is_template:
            return None
        return self.uid


@dataclass(frozen=True)
class PanelRecord:
    """A panel found in a dashboard, normalized for the export pipeline."""

    id: int
    dashboard_uid: str
    title: Optional[str] = None
    datasource: Optional[DatasourceRef] = None
    targets: List[Dict[str, Any]] = field(default_factory=list)
    raw_panel: Dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> Optional[str]:
        return self.raw_panel.get("type")


@dataclass(frozen=True)
class ExtractedQuery:
    """One target's expression, or the reason it could not be read."""

    index: int
    expr: str
    fault: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.fault is None
