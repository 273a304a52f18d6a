"""Root test configuration."""

import logging

import pytest
import structlog

from paneldump.config import get_settings


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def _clear_settings_cache(monkeypatch):
    """Each test sees settings built from its own environment."""
    for name in ("PANELDUMP_GRAFANA_URL", "PANELDUMP_GRAFANA_TOKEN", "PANELDUMP_DEFAULT_DATASOURCE_UID"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def dashboard_json():
    """Dashboard d1 with panel 42 nested two levels deep."""
    return {
        "dashboard": {
            "uid": "d1",
            "title": "Service overview",
            "panels": [
                {"id": 1, "type": "stat", "title": "Uptime", "targets": [{"expr": "up"}]},
                {
                    "id": 10,
                    "type": "row",
                    "title": "Details",
                    "panels": [
                        {
                            "id": 11,
                            "type": "row",
                            "title": "Inner",
                            "panels": [
                                {
                                    "id": 42,
                                    "type": "timeseries",
                                    "title": "CPU",
                                    "datasource": {"uid": "prom-1", "type": "prometheus"},
                                    "targets": [
                                        {"refId": "A", "expr": "up"},
                                        {"refId": "B", "expr": "rate(x[5m])"},
                                    ],
                                }
                            ],
                        }
                    ],
                },
            ],
        },
        "meta": {"slug": "service-overview"},
    }


def _frame(values, times, labels=None, name="value", config=None):
    return {
        "schema": {
            "fields": [
                {"name": "Time", "type": "time"},
                {"name": name, "type": "number", "labels": labels or {}, "config": config or {}},
            ]
        },
        "data": {"values": [times, values]},
    }


@pytest.fixture
def make_frame():
    """Build a raw ``/api/ds/query`` frame with a time and a number field."""
    return _frame


@pytest.fixture
def query_response():
    """Two result groups of one frame each, three samples per frame."""
    times = [1000, 2000, 3000]
    return {
        "results": {
            "A": {
                "status": 200,
                "frames": [_frame([1, 1, 0], times, {"__name__": "up", "job": "api"})],
            },
            "B": {
                "status": 200,
                "frames": [_frame([0.5, 0.25, 2.0], times, {"instance": "h1"}, name="rate(x[5m])")],
            },
        }
    }
