"""Metadata sidecar repository tests."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path

import pytest

from writerfriend.errors import CorruptMetadataError
from writerfriend.metadata import (
    DEFAULT_AUTHOR,
    DEFAULT_DESCRIPTION,
    MetadataDescriptor,
    MetadataRepository,
)


def _repository() -> MetadataRepository:
    return MetadataRepository(id_factory=lambda: "abc123")


def test_write_then_read_round_trips_every_field(tmp_path: Path) -> None:
    repo = _repository()
    descriptor = MetadataDescriptor(
        name="Novel", author_name="Ann", id="q1w2e3", description="A story"
    )

    repo.write(tmp_path, descriptor)
    loaded = repo.read(tmp_path)

    assert loaded == descriptor
    on_disk = json.loads((tmp_path / "metadata.json").read_text(encoding="utf-8"))
    assert on_disk == {
        "Name": "Novel",
        "Author Name": "Ann",
        "ID": "q1w2e3",
        "Description": "A story",
    }


def test_write_uses_four_space_indent_and_leaves_no_temp_files(tmp_path: Path) -> None:
    repo = _repository()

    repo.write(tmp_path, MetadataDescriptor(name="Novel", id="q1w2e3"))

    text = (tmp_path / "metadata.json").read_text(encoding="utf-8")
    assert '\n    "Name": "Novel"' in text
    assert sorted(path.name for path in tmp_path.iterdir()) == ["metadata.json"]


def test_read_returns_none_without_file(tmp_path: Path) -> None:
    assert _repository().read(tmp_path) is None


def test_read_treats_empty_file_as_empty_descriptor(tmp_path: Path) -> None:
    (tmp_path / "metadata.json").write_text("", encoding="utf-8")

    assert _repository().read(tmp_path) == MetadataDescriptor()


@pytest.mark.parametrize("payload", ["{not json", "[1, 2]", '{"Name": ["list"]}'])
def test_read_rejects_corrupt_files(tmp_path: Path, payload: str) -> None:
    (tmp_path / "metadata.json").write_text(payload, encoding="utf-8")

    with pytest.raises(CorruptMetadataError) as excinfo:
        _repository().read(tmp_path)

    assert excinfo.value.path == tmp_path / "metadata.json"


def test_extra_keys_survive_a_rewrite(tmp_path: Path) -> None:
    (tmp_path / "metadata.json").write_text(
        json.dumps({"Name": "Novel", "ID": "q1w2e3", "coverImage": "cover.png"}),
        encoding="utf-8",
    )
    repo = _repository()

    descriptor = repo.read(tmp_path)
    assert descriptor is not None
    repo.write(tmp_path, descriptor.model_copy(update={"description": "Updated"}))

    on_disk = json.loads((tmp_path / "metadata.json").read_text(encoding="utf-8"))
    assert on_disk["coverImage"] == "cover.png"
    assert on_disk["Description"] == "Updated"


def test_ensure_complete_fills_missing_fields_only() -> None:
    repo = _repository()
    descriptor = MetadataDescriptor(name="Kept", description="")

    completed, filled = repo.ensure_complete(descriptor, "DirectoryName")

    assert completed.name == "Kept"
    assert completed.id == "abc123"
    assert completed.author_name == DEFAULT_AUTHOR
    assert completed.description == DEFAULT_DESCRIPTION
    assert filled == ["ID", "Author Name", "Description"]


def test_ensure_complete_is_a_no_op_for_complete_descriptors() -> None:
    repo = _repository()
    descriptor = MetadataDescriptor(name="N", author_name="A", id="zzzzzz", description="D")

    completed, filled = repo.ensure_complete(descriptor, "ignored")

    assert completed is descriptor
    assert filled == []


def test_ensure_complete_uses_fallback_name() -> None:
    completed, filled = _repository().ensure_complete(MetadataDescriptor(), "BookOne")

    assert completed.name == "BookOne"
    assert "Name" in filled


def test_read_rejects_non_utf8_bytes_as_corrupt(tmp_path: Path) -> None:
    (tmp_path / "metadata.json").write_bytes(b'{"Name": "\xff\xfe"}')

    with pytest.raises(CorruptMetadataError) as excinfo:
        _repository().read(tmp_path)

    assert excinfo.value.path == tmp_path / "metadata.json"
    assert "UTF-8" in str(excinfo.value)


def test_rewrite_keeps_existing_permission_bits(tmp_path: Path) -> None:
    path = tmp_path / "metadata.json"
    path.write_text("{}", encoding="utf-8")
    path.chmod(0o644)

    _repository().write(tmp_path, MetadataDescriptor(name="Novel", id="q1w2e3"))

    assert stat.S_IMODE(path.stat().st_mode) == 0o644


def test_new_file_gets_the_umask_default(tmp_path: Path) -> None:
    previous = os.umask(0o022)
    try:
        _repository().write(tmp_path, MetadataDescriptor(name="Novel", id="q1w2e3"))
    finally:
        os.umask(previous)

    assert stat.S_IMODE((tmp_path / "metadata.json").stat().st_mode) == 0o644
