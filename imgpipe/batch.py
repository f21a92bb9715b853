from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence

from loguru import logger

from .analyzer import analyze_image
from .discovery import list_images
from .engine import optimize_image
from .errors import ImageProcessingError
from .presets import PROFILES, ProcessingProfile
from .report import build_processing_report, save_report_json, utc_now_iso
from .results import ImageRecord, RunStatistics, VariantRecord
from .retry import RetryPolicy
from .settings import PipelineSettings, TransformSettings
from .store import Mapping, MappingStore, cleanup_image_mappings
from .uploader import UploadFunc, upload_file

if TYPE_CHECKING:
    from loguru import Logger


def process_images(
    api_key: str,
    settings: PipelineSettings = PipelineSettings(),
    *,
    profiles: Sequence[ProcessingProfile] = PROFILES,
    transform: TransformSettings = TransformSettings(),
    retry: Optional[RetryPolicy] = None,
    upload: UploadFunc = upload_file,
    store: Optional[MappingStore] = None,
    log: Logger = logger,
) -> RunStatistics:
    """
    Run one batch: reconcile, then analyze/optimize/upload every new image.

    Images are handled one at a time and profiles in order. A failing image
    is recorded and skipped; it never stops the batch. Store or report I/O
    failures raise StateIOError and abort the run.
    """
    retry = retry or RetryPolicy(max_attempts=settings.max_attempts, base_delay_ms=settings.base_delay_ms)
    store = store or MappingStore(settings.mapping_path)
    stats = RunStatistics(start_time=time.time())

    cleanup_image_mappings(settings, store=store, log=log)

    image_map = store.load()
    images = list_images(settings)

    log.info("batch_started", images=len(images))

    for img_path in images:
        name = img_path.name

        if name in image_map:
            log.debug("image_skipped", image=name, reason="already_processed")
            stats.skipped += 1
            continue

        uploaded: dict[str, VariantRecord] = {}
        try:
            with log.contextualize(image=name):
                record = _process_one(
                    img_path,
                    api_key,
                    settings,
                    profiles,
                    transform,
                    retry,
                    upload,
                    uploaded,
                    log,
                )
        except ImageProcessingError as exc:
            _record_failure(stats, name, exc, uploaded, log)
            continue

        image_map[name] = record.to_dict()
        stats.processed += 1
        stats.total_size_before += record.original.size
        stats.total_size_after += sum(v.size for v in record.versions.values())

    store.save(image_map)

    report = build_processing_report(stats)
    log.info(
        "processing_completed",
        processed=report.processed,
        skipped=report.skipped,
        failed=report.failed,
        duration=report.duration,
        compression_ratio=report.compression_ratio,
        size_saved=report.size_saved,
    )
    save_report_json(report, settings.processing_report_path)

    return stats


def _process_one(
    img_path: Path,
    api_key: str,
    settings: PipelineSettings,
    profiles: Sequence[ProcessingProfile],
    transform: TransformSettings,
    retry: RetryPolicy,
    upload: UploadFunc,
    uploaded: dict[str, VariantRecord],
    log: Logger,
) -> ImageRecord:
    """
    Build the full record for one image, or raise.

    `uploaded` is filled as each profile completes so the caller can report
    remote uploads left behind when a later profile fails.
    """
    analysis = retry.call(lambda: analyze_image(img_path, log=log), log=log)

    for profile in profiles:
        log.debug("creating_variant", profile=profile.name)

        result = retry.call(
            lambda: optimize_image(img_path, profile, analysis, transform, log=log),
            log=log,
        )

        try:
            url = retry.call(
                lambda: upload(
                    result.path,
                    api_key,
                    endpoint=settings.upload_endpoint,
                    timeout=settings.upload_timeout,
                ),
                log=log,
            )
        finally:
            # The variant is removed whether or not the upload went through.
            _remove_variant(result.path, log)

        uploaded[profile.name] = VariantRecord.from_result(url, result, analysis)

    return ImageRecord(
        versions=dict(uploaded),
        original=analysis,
        processed_at=utc_now_iso(),
    )


def _remove_variant(path: Path, log: Logger) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        log.warning("variant_cleanup_failed", path=str(path), error=str(exc))


def _record_failure(
    stats: RunStatistics,
    name: str,
    exc: ImageProcessingError,
    uploaded: dict[str, VariantRecord],
    log: Logger,
) -> None:
    stats.failed += 1
    stats.errors.append(
        {
            "image": name,
            "error": str(exc),
            "timestamp": utc_now_iso(),
        }
    )
    log.error("image_failed", image=name, error=str(exc), kind=type(exc).__name__)

    if uploaded:
        # Already-hosted variants stay on the media host with no local record.
        urls = [v.url for v in uploaded.values()]
        stats.warnings.append(
            {
                "image": name,
                "warning": "orphaned_uploads",
                "urls": urls,
                "timestamp": utc_now_iso(),
            }
        )
        log.warning("orphaned_uploads", image=name, urls=urls)
