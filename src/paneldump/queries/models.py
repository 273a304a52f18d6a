"""Query batch request models for Grafana's ``/api/ds/query`` endpoint."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class TimeRangeError(ValueError):
    """Raised when a time range cannot be decoded."""


@dataclass(frozen=True)
class TimeRange:
    """Shared ``from``/``to`` bounds for a query batch.

    Bounds are kept in a form Grafana accepts: epoch milliseconds as strings,
    or relative expressions such as ``now-6h`` passed through verbatim.
    """

    from_: str
    to: str

    @classmethod
    def from_json(cls, text: str) -> "TimeRange":
        """Decode the JSON object carried by the ``timerange`` parameter."""
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as exc:
            raise TimeRangeError(f"not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise TimeRangeError("expected a JSON object with 'from' and 'to'")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeRange":
        missing = [key for key in ("from", "to") if data.get(key) in (None, "")]
        if missing:
            raise TimeRangeError(f"missing {', '.join(missing)}")
        return cls(from_=normalize_bound(data["from"]), to=normalize_bound(data["to"]))

    def to_payload(self) -> Dict[str, str]:
        return {"from": self.from_, "to": self.to}


def normalize_bound(value: Any) -> str:
    """Convert a time bound to epoch milliseconds where possible."""
    if isinstance(value, bool):
        raise TimeRangeError(f"invalid time bound: {value!r}")
    if isinstance(value, (int, float)):
        return str(int(value))
    if not isinstance(value, str):
        raise TimeRangeError(f"invalid time bound: {value!r}")

    text = value.strip()
    if text.isdigit():
        return text
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        # relative expressions (now-6h, now/d) are resolved by Grafana
        return text
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return str(int(parsed.timestamp() * 1000))


@dataclass(frozen=True)
class QuerySpec:
    """A single query in a batch."""

    ref_id: str
    expr: str
    datasource_uid: str
    instant: bool = True
    range: bool = False
    interval_ms: Optional[int] = None
    max_data_points: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the Grafana query JSON format."""
        result: Dict[str, Any] = {
            "refId": self.ref_id,
            "expr": self.expr,
            "datasource": {"uid": self.datasource_uid},
            "instant": self.instant,
            "range": self.range,
        }
        if self.interval_ms is not None:
            result["intervalMs"] = self.interval_ms
        if self.max_data_points is not None:
            result["maxDataPoints"] = self.max_data_points
        return result


@dataclass(frozen=True)
class QueryBatch:
    """Queries sharing one time range, sent in a single request."""

    queries: List[QuerySpec]
    time_range: TimeRange
    skipped_ref_ids: List[str] = field(default_factory=list)

    @property
    def ref_ids(self) -> List[str]:
        return [q.ref_id for q in self.queries]

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"queries": [q.to_dict() for q in self.queries]}
        payload.update(self.time_range.to_payload())
        return payload
