"""PromQL function and aggregation signatures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from paneldump.promql.ast import ValueType

S = ValueType.SCALAR
V = ValueType.VECTOR
M = ValueType.MATRIX
STR = ValueType.STRING


@dataclass(frozen=True)
class Function:
    """Argument types and arity of a PromQL function.

    ``variadic`` 0 means exactly ``len(arg_types)`` arguments; a positive value
    allows the last argument to be omitted or repeated up to that many times;
    -1 allows unlimited repeats of the last argument type.
    """

    name: str
    arg_types: Tuple[ValueType, ...]
    return_type: ValueType = V
    variadic: int = 0

    def arg_type(self, index: int) -> ValueType:
        return self.arg_types[min(index, len(self.arg_types) - 1)]

    @property
    def min_args(self) -> int:
        return len(self.arg_types) if self.variadic == 0 else len(self.arg_types) - 1

    @property
    def max_args(self) -> int | None:
        if self.variadic == 0:
            return len(self.arg_types)
        if self.variadic < 0:
            return None
        return len(self.arg_types) + self.variadic - 1


def _f(name: str, *arg_types: ValueType, returns: ValueType = V, variadic: int = 0) -> Function:
    return Function(name, tuple(arg_types), returns, variadic)


_SIGNATURES = [
    _f("abs", V),
    _f("absent", V),
    _f("absent_over_time", M),
    _f("acos", V),
    _f("acosh", V),
    _f("asin", V),
    _f("asinh", V),
    _f("atan", V),
    _f("atanh", V),
    _f("avg_over_time", M),
    _f("ceil", V),
    _f("changes", M),
    _f("clamp", V, S, S),
    _f("clamp_max", V, S),
    _f("clamp_min", V, S),
    _f("cos", V),
    _f("cosh", V),
    _f("count_over_time", M),
    _f("day_of_month", V, variadic=1),
    _f("day_of_week", V, variadic=1),
    _f("day_of_year", V, variadic=1),
    _f("days_in_month", V, variadic=1),
    _f("deg", V),
    _f("delta", M),
    _f("deriv", M),
    _f("double_exponential_smoothing", M, S, S),
    _f("exp", V),
    _f("floor", V),
    _f("histogram_avg", V),
    _f("histogram_count", V),
    _f("histogram_fraction", S, S, V),
    _f("histogram_quantile", S, V),
    _f("histogram_stddev", V),
    _f("histogram_stdvar", V),
    _f("histogram_sum", V),
    _f("holt_winters", M, S, S),
    _f("hour", V, variadic=1),
    _f("idelta", M),
    _f("increase", M),
    _f("irate", M),
    _f("label_join", V, STR, STR, STR, variadic=-1),
    _f("label_replace", V, STR, STR, STR, STR),
    _f("last_over_time", M),
    _f("ln", V),
    _f("log10", V),
    _f("log2", V),
    _f("mad_over_time", M),
    _f("max_over_time", M),
    _f("min_over_time", M),
    _f("minute", V, variadic=1),
    _f("month", V, variadic=1),
    _f("pi", returns=S),
    _f("predict_linear", M, S),
    _f("present_over_time", M),
    _f("quantile_over_time", S, M),
    _f("rad", V),
    _f("rate", M),
    _f("resets", M),
    _f("round", V, S, variadic=1),
    _f("scalar", V, returns=S),
    _f("sgn", V),
    _f("sin", V),
    _f("sinh", V),
    _f("sort", V),
    _f("sort_by_label", V, STR, variadic=-1),
    _f("sort_by_label_desc", V, STR, variadic=-1),
    _f("sort_desc", V),
    _f("sqrt", V),
    _f("stddev_over_time", M),
    _f("stdvar_over_time", M),
    _f("sum_over_time", M),
    _f("tan", V),
    _f("tanh", V),
    _f("time", returns=S),
    _f("timestamp", V),
    _f("vector", S),
    _f("year", V, variadic=1),
]

FUNCTIONS: Dict[str, Function] = {f.name: f for f in _SIGNATURES}

# Aggregation operators and the type of their leading parameter, if any
AGGREGATIONS: Dict[str, ValueType | None] = {
    "avg": None,
    "bottomk": S,
    "count": None,
    "count_values": STR,
    "group": None,
    "limit_ratio": S,
    "limitk": S,
    "max": None,
    "min": None,
    "quantile": S,
    "stddev": None,
    "stdvar": None,
    "sum": None,
    "topk": S,
}
