from paneldump.clients.grafana import GrafanaClient, GrafanaClientError

__all__ = ["GrafanaClient", "GrafanaClientError"]
