from __future__ import annotations

import json
from typing import Any, List, Optional

from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from paneldump.promql import extract_metric_names

router = APIRouter()

_DECODER = json.JSONDecoder()

# HTML-sensitive characters are escaped inside strings, as the plugin backend does
_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class ParseResponse(BaseModel):
    """Metric names found in a list of expressions."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    queries_received: int = Field(alias="queriesReceived")
    exprs: Optional[List[str]]
    metrics: Optional[List[str]]
    metrics_count: int = Field(alias="metricsCount")
    parse_errors_by_idx: List[str] = Field(alias="parseErrorsByIdx")


def build_parse_response(exprs: Optional[List[str]]) -> ParseResponse:
    metrics, errors = extract_metric_names(exprs or [])
    return ParseResponse(
        ok=True,
        queries_received=len(exprs or []),
        exprs=exprs,
        metrics=metrics or None,
        metrics_count=len(metrics),
        parse_errors_by_idx=errors,
    )


def encode_response(payload: ParseResponse) -> str:
    """Render the body byte-for-byte as the plugin backend always has."""
    body = json.dumps(
        payload.model_dump(by_alias=True),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    for char, escaped in _HTML_ESCAPES.items():
        body = body.replace(char, escaped)
    return body + "\n"


def _decode_exprs(raw: bytes) -> Optional[List[str]]:
    """
    Decode the first JSON value of the body; anything after it is ignored.

    A ``null`` element decodes to ``""``.
    """
    text = raw.decode("utf-8").lstrip(" \t\r\n")
    data: Any
    data, _ = _DECODER.raw_decode(text)
    if data is None:
        return None
    if not isinstance(data, list):
        raise ValueError("expected a JSON array of strings")
    exprs: List[str] = []
    for item in data:
        if item is None:
            item = ""
        if not isinstance(item, str):
            raise ValueError("expected a JSON array of strings")
        exprs.append(item)
    return exprs


@router.post("/parse", response_model=ParseResponse, status_code=status.HTTP_200_OK)
async def parse_expressions(request: Request) -> Response:
    """Extract metric names from a JSON array of PromQL expressions."""
    try:
        exprs = _decode_exprs(await request.body())
    except ValueError:
        return PlainTextResponse("invalid JSON body\n", status_code=status.HTTP_400_BAD_REQUEST)

    payload = build_parse_response(exprs)
    return Response(
        content=encode_response(payload),
        media_type="application/json",
        status_code=status.HTTP_200_OK,
    )


@router.api_route(
    "/parse",
    methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
async def parse_method_not_allowed() -> Response:
    return PlainTextResponse("method not allowed\n", status_code=status.HTTP_405_METHOD_NOT_ALLOWED)
