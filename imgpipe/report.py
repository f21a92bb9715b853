from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from .errors import StateIOError
from .results import RunStatistics


MEGABYTE = 1024 * 1024


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_duration(start: float, end: Optional[float] = None) -> str:
    end = time.time() if end is None else end
    return f"{end - start:.2f}s"


@dataclass
class CleanupReport:
    removed: int = 0
    retained: int = 0
    errors: List[dict[str, Any]] = field(default_factory=list)
    duration: str = "0.00s"

    def to_dict(self) -> dict[str, Any]:
        return {
            "removed": self.removed,
            "retained": self.retained,
            "errors": list(self.errors),
            "duration": self.duration,
        }


@dataclass(frozen=True)
class ProcessingReport:
    created_utc: str
    processed: int
    skipped: int
    failed: int
    total_size_before: int
    total_size_after: int
    errors: List[dict[str, Any]]
    warnings: List[dict[str, Any]]
    duration: str
    compression_ratio: str
    size_saved: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "createdUtc": self.created_utc,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "totalSizeBefore": self.total_size_before,
            "totalSizeAfter": self.total_size_after,
            "errors": self.errors,
            "warnings": self.warnings,
            "duration": self.duration,
            "compressionRatio": self.compression_ratio,
            "sizeSaved": self.size_saved,
        }


def build_processing_report(stats: RunStatistics, end_time: Optional[float] = None) -> ProcessingReport:
    """
    Freeze run statistics into the report written at the end of a run.

    compressionRatio compares the originals with every variant uploaded for
    them; an empty run reports "0.00%".
    """
    if stats.total_size_before > 0:
        ratio = stats.saved_bytes / stats.total_size_before * 100
    else:
        ratio = 0.0

    return ProcessingReport(
        created_utc=utc_now_iso(),
        processed=stats.processed,
        skipped=stats.skipped,
        failed=stats.failed,
        total_size_before=stats.total_size_before,
        total_size_after=stats.total_size_after,
        errors=list(stats.errors),
        warnings=list(stats.warnings),
        duration=format_duration(stats.start_time, end_time),
        compression_ratio=f"{ratio:.2f}%",
        size_saved=f"{stats.saved_bytes / MEGABYTE:.2f}MB",
    )


def save_report_json(report: Any, path: Path) -> None:
    """Write a report (anything with to_dict()) as indented JSON, replacing the old one."""
    path = Path(path)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
    except OSError as exc:
        raise StateIOError(f"cannot write report {path}: {exc}") from exc
