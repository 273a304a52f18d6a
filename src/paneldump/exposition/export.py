"""Save exported exposition text to disk."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Union

import structlog

from paneldump.dashboards.models import PanelRecord

logger = structlog.get_logger()

DEFAULT_FILENAME = "panel-export.prom"
EXPORT_EXTENSION = ".prom"

_FORBIDDEN = re.compile(r'[/\\:*?"<>|]')


def sanitize_filename(name: str | None, default: str = DEFAULT_FILENAME) -> str:
    """
    Replace characters that are invalid in file names with ``_``.

    A blank name, or one made only of forbidden characters, falls back to
    ``default``.
    """
    if not name or not name.strip():
        return default
    if not _FORBIDDEN.sub("", name).strip():
        return default
    return _FORBIDDEN.sub("_", name)


def export_filename(panel: PanelRecord) -> str:
    """
    File name for a panel export: its title, or ``panel-<id>`` when untitled.

    A title made only of invalid characters falls back to ``DEFAULT_FILENAME``.
    """
    title = (panel.title or "").strip()
    if not title:
        return f"panel-{panel.id}{EXPORT_EXTENSION}"
    stem = sanitize_filename(title, default="")
    if not stem:
        return DEFAULT_FILENAME
    return f"{stem}{EXPORT_EXTENSION}"


def save_export(directory: Union[str, Path], filename: str, text: str) -> Path:
    """
    Write ``text`` unchanged to ``directory/filename``.

    The text is written as UTF-8 bytes so line endings are never translated.
    """
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / sanitize_filename(filename)
    path.write_bytes(text.encode("utf-8"))
    logger.info("export_saved", path=str(path), bytes=path.stat().st_size)
    return path
