"""
CLI command for listing the metrics referenced by PromQL expressions.
"""

from __future__ import annotations

import sys
from typing import Sequence

from paneldump.api.routes.parse import build_parse_response, encode_response
from paneldump.core.errors import ExitCode


def parse_command(exprs: Sequence[str]) -> int:
    """
    Print the parse response for ``exprs`` as JSON on stdout.

    Exit codes:
        0 = Every expression parsed
        1 = At least one expression has a parse error
    """
    payload = build_parse_response(list(exprs))
    sys.stdout.write(encode_response(payload))

    if any(payload.parse_errors_by_idx):
        return ExitCode.WARNING
    return ExitCode.SUCCESS
