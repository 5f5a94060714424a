"""Sibling order repair tests."""

from __future__ import annotations

from collections import defaultdict
from pathlib import Path

from writerfriend.catalog import Document, Folder, ItemCatalog
from writerfriend.sync import compute_order_repairs, repair_order


def _doc(item_id: str, order: int, parent_id: str | None = None) -> Document:
    return Document(id=item_id, name=item_id, content_path=f"{item_id}.md", parent_id=parent_id, order=order)


def test_duplicate_orders_follow_catalog_iteration_order(tmp_path: Path) -> None:
    with ItemCatalog(tmp_path / "project.sqlite") as catalog:
        catalog.insert_items([_doc("A", 1), _doc("B", 1)])

        changes = repair_order(catalog)

        orders = {item.id: item.order for item in catalog.list_items()}
    assert orders == {"A": 1, "B": 2}
    assert changes == {"B": 2}


def test_placeholders_and_gaps_become_dense_per_parent(tmp_path: Path) -> None:
    items = [
        Folder(id="F", name="F", relative_path="F", order=3),
        _doc("a", 7),
        _doc("b", 0),
        _doc("c", 5, parent_id="F"),
        _doc("d", 5, parent_id="F"),
        _doc("e", 0, parent_id="F"),
    ]
    with ItemCatalog(tmp_path / "project.sqlite") as catalog:
        catalog.insert_items(items)
        repair_order(catalog)
        repaired = catalog.list_items()

    groups: dict[str | None, dict[str, int]] = defaultdict(dict)
    for item in repaired:
        groups[item.parent_id][item.id] = item.order

    assert groups[None] == {"b": 1, "F": 2, "a": 3}
    assert groups["F"] == {"e": 1, "c": 2, "d": 3}
    for group in groups.values():
        assert sorted(group.values()) == list(range(1, len(group) + 1))


def test_repair_skips_rows_that_are_already_dense() -> None:
    items = [_doc("a", 1), _doc("b", 2), _doc("c", 3)]

    assert compute_order_repairs(items) == {}


def test_repair_is_idempotent(tmp_path: Path) -> None:
    with ItemCatalog(tmp_path / "project.sqlite") as catalog:
        catalog.insert_items([_doc("a", 4), _doc("b", 4), _doc("c", 0)])

        assert repair_order(catalog)
        assert repair_order(catalog) == {}
