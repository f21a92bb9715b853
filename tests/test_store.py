"""Tests for the mapping store and reconciliation."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from imgpipe.errors import StateIOError
from imgpipe.settings import PipelineSettings
from imgpipe.store import MappingStore, cleanup_image_mappings, reconcile
from tests.image_factory import write_solid


def _record(tag: str) -> dict[str, Any]:
    return {"versions": {"small": {"url": f"https://cdn/{tag}"}}, "metadata": {"processedAt": "x"}}


def test_reconcile_keeps_only_names_still_on_disk() -> None:
    """Store {A,B,C} with disk {A,C}: A and C retained, B removed."""
    mapping = {"A.jpg": _record("a"), "B.jpg": _record("b"), "C.jpg": _record("c")}

    kept, report = reconcile(mapping, {"A.jpg", "C.jpg"})

    assert set(kept) == {"A.jpg", "C.jpg"}
    assert report.retained == 2
    assert report.removed == 1
    assert report.errors == []
    assert report.duration.endswith("s")
    # retained entries are carried over untouched
    assert kept["A.jpg"] is mapping["A.jpg"]
    assert kept["A.jpg"] == _record("a")


def test_reconcile_reports_malformed_entries_but_keeps_present_ones() -> None:
    """A malformed entry for an image still on disk is kept so it is not reprocessed."""
    mapping = {"A.jpg": _record("a"), "junk.jpg": "oops", "gone.jpg": 42}

    kept, report = reconcile(mapping, {"A.jpg", "junk.jpg"})

    assert kept == {"A.jpg": _record("a"), "junk.jpg": "oops"}
    assert report.retained == 2
    assert report.removed == 1
    assert [e["image"] for e in report.errors] == ["junk.jpg", "gone.jpg"]


def test_load_missing_store_is_empty(tmp_path: Path) -> None:
    assert MappingStore(tmp_path / "image-mappings.json").load() == {}


def test_save_then_load_rewrites_whole_file(tmp_path: Path) -> None:
    store = MappingStore(tmp_path / "state" / "image-mappings.json")
    store.save({"A.jpg": _record("a"), "B.jpg": _record("b")})
    store.save({"A.jpg": _record("a")})

    assert store.load() == {"A.jpg": _record("a")}


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"], ids=["invalid", "not-object"])
def test_unreadable_store_is_fatal(tmp_path: Path, content: str) -> None:
    path = tmp_path / "image-mappings.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(StateIOError):
        MappingStore(path).load()


def test_save_into_a_file_path_is_fatal(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(StateIOError):
        MappingStore(blocker / "image-mappings.json").save({})


def test_cleanup_without_store_returns_empty_report(settings: PipelineSettings) -> None:
    report = cleanup_image_mappings(settings)

    assert (report.removed, report.retained, report.errors) == (0, 0, [])
    assert not settings.mapping_path.exists()
    written = json.loads(settings.cleanup_report_path.read_text(encoding="utf-8"))
    assert written["removed"] == 0
    assert set(written) == {"removed", "retained", "errors", "duration"}


def test_cleanup_prunes_deleted_images_and_persists(settings: PipelineSettings) -> None:
    root = settings.root_dir
    write_solid(root / "A.jpg", 8, 8, (1, 2, 3))
    write_solid(root / "nested" / "C.jpg", 8, 8, (1, 2, 3))
    # names under ignored folders do not count as present
    write_solid(root / "processed" / "B.jpg", 8, 8, (1, 2, 3))
    MappingStore(settings.mapping_path).save(
        {"A.jpg": _record("a"), "B.jpg": _record("b"), "C.jpg": _record("c")}
    )

    report = cleanup_image_mappings(settings)

    assert report.removed == 1
    assert report.retained == 2
    assert set(MappingStore(settings.mapping_path).load()) == {"A.jpg", "C.jpg"}
    written = json.loads(settings.cleanup_report_path.read_text(encoding="utf-8"))
    assert written["removed"] == 1
    assert written["retained"] == 2
