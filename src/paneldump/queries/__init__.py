"""Query batches for Grafana's datasource query API and their results."""

from paneldump.queries.batch import build_query_batch, ref_id_for_index, resolve_datasource_uid
from paneldump.queries.models import QueryBatch, QuerySpec, TimeRange, TimeRangeError
from paneldump.queries.results import Field, Frame, QueryResult, ResultGroup

__all__ = [
    "Field",
    "Frame",
    "QueryBatch",
    "QueryResult",
    "QuerySpec",
    "ResultGroup",
    "TimeRange",
    "TimeRangeError",
    "build_query_batch",
    "ref_id_for_index",
    "resolve_datasource_uid",
]
