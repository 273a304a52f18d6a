import httpx
import pytest
import respx
from httpx import Response

from paneldump.clients.grafana import GrafanaClient, GrafanaClientError
from paneldump.config import Settings


@pytest.mark.asyncio
async def test_get_dashboard_headers():
    client = GrafanaClient("https://grafana.example.com/", "test-token", org_id=3)

    with respx.mock:
        route = respx.get("https://grafana.example.com/api/dashboards/uid/d1").mock(
            return_value=Response(200, json={"dashboard": {"uid": "d1"}})
        )

        data = await client.get_dashboard("d1")

        request = route.calls.last.request
        assert data["dashboard"]["uid"] == "d1"
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.headers["X-Grafana-Org-Id"] == "3"
        assert request.headers["User-Agent"].startswith("paneldump/")


@pytest.mark.asyncio
async def test_uid_is_quoted():
    client = GrafanaClient("https://grafana.example.com")

    with respx.mock:
        route = respx.get(url__regex=r".*/api/dashboards/uid/.*").mock(
            return_value=Response(200, json={})
        )

        await client.get_dashboard("a/b")

        assert route.calls.last.request.url.raw_path == b"/api/dashboards/uid/a%2Fb"


@pytest.mark.asyncio
async def test_no_token_no_auth_header():
    client = GrafanaClient("https://grafana.example.com")

    with respx.mock:
        route = respx.post("https://grafana.example.com/api/ds/query").mock(
            return_value=Response(200, json={"results": {}})
        )

        assert await client.query({"queries": []}) == {"results": {}}
        assert "Authorization" not in route.calls.last.request.headers


@pytest.mark.asyncio
async def test_http_error_single_attempt():
    client = GrafanaClient("https://grafana.example.com")

    with respx.mock:
        route = respx.post("https://grafana.example.com/api/ds/query").mock(
            return_value=Response(503, json={"message": "unavailable"})
        )

        with pytest.raises(GrafanaClientError) as exc_info:
            await client.query({"queries": []})

        assert route.call_count == 1
        assert exc_info.value.status_code == 503
        assert str(exc_info.value) == "HTTP 503: unavailable"


@pytest.mark.asyncio
async def test_network_error():
    client = GrafanaClient("https://grafana.example.com")

    with respx.mock:
        respx.get("https://grafana.example.com/api/dashboards/uid/d1").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with pytest.raises(GrafanaClientError) as exc_info:
            await client.get_dashboard("d1")

        assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_invalid_json():
    client = GrafanaClient("https://grafana.example.com")

    with respx.mock:
        respx.get("https://grafana.example.com/api/dashboards/uid/d1").mock(
            return_value=Response(200, text="<html>")
        )

        with pytest.raises(GrafanaClientError):
            await client.get_dashboard("d1")


def test_from_settings():
    settings = Settings(grafana_url="https://g.example.com", grafana_token="t", http_timeout=5.0)

    client = GrafanaClient.from_settings(settings)

    assert client._base_url == "https://g.example.com"
    assert client._token == "t"
    assert client._timeout == 5.0
