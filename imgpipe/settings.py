from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


# Defaults can be overridden from the environment (useful in CI jobs).
DEFAULT_UPLOAD_ENDPOINT = os.getenv("IMGPIPE_UPLOAD_ENDPOINT", "https://api.fivemerr.com/v1/media/images")
DEFAULT_UPLOAD_TIMEOUT = float(os.getenv("IMGPIPE_UPLOAD_TIMEOUT", "60"))
DEFAULT_MAX_ATTEMPTS = int(os.getenv("IMGPIPE_MAX_ATTEMPTS", "3"))
DEFAULT_BASE_DELAY_MS = int(os.getenv("IMGPIPE_BASE_DELAY_MS", "5000"))

SUPPORTED_EXTS = frozenset({".jpg", ".jpeg", ".png", ".gif"})

# Directory names never scanned for source images.
IGNORED_DIRS = frozenset({"node_modules", ".git", "processed"})


@dataclass(frozen=True)
class PipelineSettings:
    """
    Where the pipeline reads from and writes to, plus the upload/retry knobs.

    Relative file names are resolved against root_dir, so a run started from
    any working directory keeps its state next to the images it scanned.
    """

    root_dir: Path = Path(".")

    # ----- Persisted state and reports -----
    mapping_file: Path = Path("image-mappings.json")
    cleanup_report_file: Path = Path("cleanup-report.json")
    processing_report_file: Path = Path("processing-report.json")

    # ----- Upload -----
    upload_endpoint: str = DEFAULT_UPLOAD_ENDPOINT
    upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT

    # ----- Retry -----
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS

    # ----- Discovery -----
    extensions: frozenset[str] = SUPPORTED_EXTS
    ignored_dirs: frozenset[str] = IGNORED_DIRS

    def resolve(self, path: Path) -> Path:
        path = Path(path)
        if path.is_absolute():
            return path
        return Path(self.root_dir) / path

    @property
    def mapping_path(self) -> Path:
        return self.resolve(self.mapping_file)

    @property
    def cleanup_report_path(self) -> Path:
        return self.resolve(self.cleanup_report_file)

    @property
    def processing_report_path(self) -> Path:
        return self.resolve(self.processing_report_file)


@dataclass(frozen=True)
class TransformSettings:
    """
    Fixed transform constants applied to every variant, whatever the profile.

    The sharpen values mirror a sigma/flat/jagged unsharp mask:
    radius ~ sigma, percent ~ flat * 100, threshold ~ jagged.
    """

    # ----- Sharpening -----
    sharpen_radius: float = 1.2
    sharpen_percent: int = 100
    sharpen_threshold: int = 2

    # ----- Colour -----
    saturation: float = 1.1
    brightness: float = 1.0
    gamma: float = 1.1

    # ----- WebP encoding -----
    # Pillow's "method" (0-6). Higher = smaller but slower.
    webp_method: int = 6
    alpha_quality: int = 100

    # Sources reporting this quality are encoded losslessly.
    lossless_source_quality: int = 100

    target_space: str = "srgb"
    output_format: str = "webp"
