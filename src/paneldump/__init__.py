"""Dump a Grafana panel's query results as Prometheus exposition text."""

__version__ = "0.1.0"
