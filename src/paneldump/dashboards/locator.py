"""Find a panel by id anywhere in a dashboard's panel tree."""

from __future__ import annotations

from typing import Any, Iterable, Optional


def find_panel_by_id(panels: Optional[Iterable[Any]], panel_id: int) -> Optional[dict[str, Any]]:
    """
    Depth-first, pre-order search of a panel tree.

    A node is checked before its children, and children are searched only when
    the node carries a non-empty ``panels`` list (rows and grouping panels).
    When ids repeat, the first node in pre-order wins.

    Args:
        panels: Top-level panel list of a dashboard (``None`` is treated as empty)
        panel_id: Integer id to look for

    Returns:
        The matching panel node, or None
    """
    for panel in panels or []:
        if not isinstance(panel, dict):
            continue
        if _matches(panel.get("id"), panel_id):
            return panel
        children = panel.get("panels")
        if isinstance(children, list) and children:
            found = find_panel_by_id(children, panel_id)
            if found is not None:
                return found
    return None


def _matches(candidate: Any, panel_id: int) -> bool:
    # bool is an int subclass; a stray "id": true must not match panel 1
    return isinstance(candidate, int) and not isinstance(candidate, bool) and candidate == panel_id
