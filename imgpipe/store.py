"""Persisted mapping of processed originals, and its reconciliation with disk.

The mapping is a JSON object keyed by original basename. It is always
rewritten whole. MappingStore is the only code that touches the file, so a
different backend only needs a class with the same load()/save()/exists().
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Optional, Tuple

from loguru import logger

from .discovery import existing_basenames
from .errors import StateIOError
from .report import CleanupReport, format_duration, save_report_json, utc_now_iso
from .settings import PipelineSettings

if TYPE_CHECKING:
    from loguru import Logger


Mapping = dict[str, Any]


class MappingStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Mapping:
        """Return the stored mapping, or an empty one when no file exists yet."""
        if not self.exists():
            return {}

        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise StateIOError(f"cannot read mapping store {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StateIOError(f"mapping store {self.path} is not a JSON object")
        return data

    def save(self, mapping: Mapping) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(mapping, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError, ValueError) as exc:
            raise StateIOError(f"cannot write mapping store {self.path}: {exc}") from exc


def reconcile(
    mapping: Mapping,
    existing: Iterable[str],
    log: Logger = logger,
) -> Tuple[Mapping, CleanupReport]:
    """
    Keep only the entries whose basename is still on disk.

    Retained values are carried over untouched (same objects). Entries that
    are not JSON objects are listed in the report's errors but otherwise
    follow the same rule, so a present image is never uploaded again.
    """
    start = time.time()
    present = set(existing)
    report = CleanupReport()
    kept: Mapping = {}

    for name, record in mapping.items():
        if not isinstance(record, dict):
            report.errors.append(
                {
                    "image": name,
                    "error": f"malformed record of type {type(record).__name__}",
                    "timestamp": utc_now_iso(),
                }
            )
            log.error("malformed_mapping_entry", image=name)

        if name in present:
            kept[name] = record
            report.retained += 1
        else:
            log.info("mapping_removed_for_deleted_image", image=name)
            report.removed += 1

    report.duration = format_duration(start)
    return kept, report


def cleanup_image_mappings(
    settings: PipelineSettings,
    store: Optional[MappingStore] = None,
    log: Logger = logger,
) -> CleanupReport:
    """
    Drop mapping entries for images that no longer exist, once per batch.

    A missing store is not an error: an empty report is written and returned.
    Store and report I/O failures raise StateIOError.
    """
    store = store or MappingStore(settings.mapping_path)
    start = time.time()

    if not store.exists():
        log.warning("no_image_mappings_file", path=str(store.path))
        report = CleanupReport(duration=format_duration(start))
    else:
        mapping = store.load()
        kept, report = reconcile(mapping, existing_basenames(settings), log=log)
        store.save(kept)
        report.duration = format_duration(start)

    log.info("cleanup_completed", **report.to_dict())
    save_report_json(report, settings.cleanup_report_path)
    return report
