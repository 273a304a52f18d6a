"""
CLI command for serving the HTTP resources.
"""

from __future__ import annotations

import uvicorn

from paneldump.cli.ux import info


def serve_command(host: str = "127.0.0.1", port: int = 8000) -> int:
    info(f"Serving paneldump resources on http://{host}:{port}")
    uvicorn.run("paneldump.api.main:app", host=host, port=port, log_level="info")
    return 0
