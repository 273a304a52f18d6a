from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from paneldump import __version__

logger = structlog.get_logger()

DEFAULT_USER_AGENT = f"paneldump/{__version__}"

DASHBOARD_PATH = "/api/dashboards/uid/{uid}"
QUERY_PATH = "/api/ds/query"


class GrafanaClientError(RuntimeError):
    """HTTP or network failure talking to Grafana."""

    def __init__(self, message: str, *, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class GrafanaClient:
    """Async Grafana HTTP API client. Single attempt per call, no retries."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        org_id: int | None = None,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._org_id = org_id
        self._timeout = timeout
        self._user_agent = user_agent

    @classmethod
    def from_settings(cls, settings: Any) -> "GrafanaClient":
        return cls(
            settings.grafana_url,
            settings.grafana_token,
            org_id=settings.grafana_org_id,
            timeout=settings.http_timeout,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "User-Agent": self._user_agent}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        if self._org_id is not None:
            headers["X-Grafana-Org-Id"] = str(self._org_id)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, json=json, headers=self._headers())
                response.raise_for_status()
                return response.json() if response.content else {}
        except httpx.HTTPStatusError as exc:
            body = _safe_body(exc.response)
            logger.warning(
                "grafana_http_error",
                status=exc.response.status_code,
                method=method,
                url=url,
            )
            raise GrafanaClientError(
                _describe(exc.response, body),
                status_code=exc.response.status_code,
                body=body,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("grafana_network_error", method=method, url=url, error=str(exc))
            raise GrafanaClientError(str(exc)) from exc
        except ValueError as exc:
            logger.warning("grafana_invalid_json", method=method, url=url, error=str(exc))
            raise GrafanaClientError(f"Invalid JSON from {url}") from exc

    async def get_dashboard(self, uid: str) -> dict[str, Any]:
        """Fetch dashboard JSON and meta by UID."""
        return await self._request("GET", DASHBOARD_PATH.format(uid=quote(uid, safe="")))

    async def query(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Run a datasource query batch (``/api/ds/query`` body)."""
        return await self._request("POST", QUERY_PATH, json=payload)


def _safe_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _describe(response: httpx.Response, body: Any) -> str:
    message = body.get("message") if isinstance(body, dict) else None
    if message:
        return f"HTTP {response.status_code}: {message}"
    return f"HTTP {response.status_code}"
