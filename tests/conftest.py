from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

import pytest
from loguru import logger

from imgpipe.errors import UploadError
from imgpipe.retry import RetryPolicy
from imgpipe.settings import PipelineSettings


@pytest.fixture
def log_records() -> Iterator[list[dict[str, Any]]]:
    """Every loguru record emitted during the test, oldest first."""
    records: list[dict[str, Any]] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def no_wait_retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay_ms=5000, sleep=lambda _seconds: None)


@pytest.fixture
def settings(tmp_path: Path) -> PipelineSettings:
    root = tmp_path / "site"
    root.mkdir()
    return PipelineSettings(root_dir=root)


class FakeUploader:
    """Stands in for upload_file; records calls and can fail on demand."""

    def __init__(self, fail_on: set[str] | None = None, failures_before_success: int = 0) -> None:
        self.fail_on = fail_on or set()
        self.failures_before_success = failures_before_success
        self.calls: list[dict[str, Any]] = []

    def __call__(self, file_path: Path, api_key: str, endpoint: str, timeout: float) -> str:
        self.calls.append(
            {
                "name": file_path.name,
                "exists": file_path.exists(),
                "api_key": api_key,
                "endpoint": endpoint,
            }
        )
        if any(token in file_path.name for token in self.fail_on):
            raise UploadError(f"rejected {file_path.name}")
        if self.failures_before_success > 0:
            self.failures_before_success -= 1
            raise UploadError("temporary outage")
        return f"https://media.example/{file_path.name}"


@pytest.fixture
def fake_upload() -> FakeUploader:
    return FakeUploader()
