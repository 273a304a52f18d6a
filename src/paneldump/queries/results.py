"""Data models for Grafana ``/api/ds/query`` responses.

A response maps each query reference id to a result group; each group holds
data frames made of a field schema plus one value array per field.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Grafana moves non-JSON floats out of data.values into data.entities
_ENTITY_VALUES = {"NaN": math.nan, "Inf": math.inf, "NegInf": -math.inf}


@dataclass(frozen=True)
class Field:
    """One column of a data frame."""

    name: str
    type: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)
    config: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api_response(cls, raw: Any) -> "Field":
        if not isinstance(raw, dict):
            return cls(name="")
        labels = raw.get("labels")
        config = raw.get("config")
        return cls(
            name=str(raw.get("name") or ""),
            type=raw.get("type"),
            labels=dict(labels) if isinstance(labels, dict) else {},
            config=dict(config) if isinstance(config, dict) else {},
        )

    @property
    def display_name(self) -> str:
        return self.config.get("displayNameFromDS") or self.config.get("displayName") or self.name


@dataclass(frozen=True)
class Frame:
    """A data frame: field schema plus parallel value arrays."""

    fields: List[Field]
    values: List[List[Any]]
    name: str = ""
    ref_id: Optional[str] = None

    @classmethod
    def from_api_response(cls, raw: Any) -> "Frame":
        """Parse a frame; a missing schema or data block yields empty lists."""
        if not isinstance(raw, dict):
            return cls(fields=[], values=[])
        schema = raw.get("schema") if isinstance(raw.get("schema"), dict) else {}
        data = raw.get("data") if isinstance(raw.get("data"), dict) else {}

        raw_fields = schema.get("fields")
        raw_values = data.get("values")
        fields = [Field.from_api_response(f) for f in raw_fields] if isinstance(raw_fields, list) else []
        values = [list(v) if isinstance(v, list) else [] for v in raw_values] if isinstance(raw_values, list) else []
        _apply_entities(values, data.get("entities"))

        return cls(
            fields=fields,
            values=values,
            name=str(schema.get("name") or ""),
            ref_id=schema.get("refId"),
        )

    def first_index_of_type(self, field_type: str) -> Optional[int]:
        for index, f in enumerate(self.fields):
            if f.type == field_type:
                return index
        return None

    def column(self, index: int) -> Optional[List[Any]]:
        if 0 <= index < len(self.values):
            return self.values[index]
        return None


@dataclass(frozen=True)
class ResultGroup:
    """All frames returned for one query reference id."""

    ref_id: str
    frames: List[Frame] = field(default_factory=list)
    status: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def from_api_response(cls, ref_id: str, raw: Any) -> "ResultGroup":
        if not isinstance(raw, dict):
            return cls(ref_id=ref_id)
        raw_frames = raw.get("frames")
        frames = [Frame.from_api_response(f) for f in raw_frames] if isinstance(raw_frames, list) else []
        error = raw.get("error")
        return cls(
            ref_id=ref_id,
            frames=frames,
            status=raw.get("status"),
            error=str(error) if error else None,
        )


@dataclass(frozen=True)
class QueryResult:
    """Result groups keyed by reference id, in response order."""

    groups: Dict[str, ResultGroup] = field(default_factory=dict)

    @classmethod
    def from_api_response(cls, response: Any) -> "QueryResult":
        results = response.get("results") if isinstance(response, dict) else None
        if not isinstance(results, dict):
            return cls()
        return cls(
            groups={
                str(ref_id): ResultGroup.from_api_response(str(ref_id), raw)
                for ref_id, raw in results.items()
            }
        )

    @property
    def errors(self) -> Dict[str, str]:
        return {ref_id: g.error for ref_id, g in self.groups.items() if g.error}


def _apply_entities(values: List[List[Any]], entities: Any) -> None:
    if not isinstance(entities, list):
        return
    for column, entity in zip(values, entities):
        if not isinstance(entity, dict):
            continue
        for key, replacement in _ENTITY_VALUES.items():
            for position in entity.get(key) or []:
                if isinstance(position, int) and 0 <= position < len(column):
                    column[position] = replacement
