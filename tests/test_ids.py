"""Identifier generator tests."""

import string

from writerfriend.ids import ITEM_ID_LENGTH, PROJECT_ID_LENGTH, new_item_id, new_project_id

_ALLOWED = set(string.ascii_lowercase + string.digits)


def test_project_ids_are_six_characters() -> None:
    value = new_project_id()

    assert len(value) == PROJECT_ID_LENGTH == 6
    assert set(value) <= _ALLOWED


def test_item_ids_are_longer_and_unique() -> None:
    values = {new_item_id() for _ in range(500)}

    assert len(values) == 500
    assert all(len(value) == ITEM_ID_LENGTH for value in values)
    assert all(set(value) <= _ALLOWED for value in values)
