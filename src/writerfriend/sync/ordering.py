"""Sibling order repair."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from writerfriend.catalog import Document, Folder, ItemCatalog

LOGGER = logging.getLogger(__name__)


def compute_order_repairs(items: Iterable[Folder | Document]) -> dict[str, int]:
    """Return the order changes that make every sibling group a dense 1..n sequence.

    Items are grouped by ``parent_id`` (root items share one group). Within a
    group they are ranked by their current ``order``; ties keep the relative
    position they have in ``items``, which should be catalog iteration order.

    Returns:
        dict[str, int]: New order for each item whose order changes; unchanged
        items are left out so callers write nothing for them.
    """
    groups: dict[str | None, list[Folder | Document]] = defaultdict(list)
    for item in items:
        groups[item.parent_id].append(item)

    changes: dict[str, int] = {}
    for siblings in groups.values():
        ranked = sorted(siblings, key=lambda item: item.order)
        for rank, item in enumerate(ranked, start=1):
            if item.order != rank:
                changes[item.id] = rank
    return changes


def repair_order(catalog: ItemCatalog) -> dict[str, int]:
    """Renumber sibling groups in ``catalog`` and persist only the changed rows."""
    changes = compute_order_repairs(catalog.list_items())
    if changes:
        catalog.update_orders(changes)
        LOGGER.info("Repaired order of %d item(s) in %s", len(changes), catalog.path)
    return changes


__all__ = ["compute_order_repairs", "repair_order"]
