from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int

    @property
    def aspect_ratio(self) -> str:
        # Stored as text, two decimals: 2000x1000 -> "2.00"
        if self.height <= 0:
            return "0.00"
        return f"{self.width / self.height:.2f}"

    def to_dict(self, with_aspect: bool = True) -> dict[str, Any]:
        d: dict[str, Any] = {"width": self.width, "height": self.height}
        if with_aspect:
            d["aspectRatio"] = self.aspect_ratio
        return d


@dataclass(frozen=True)
class ColorStats:
    is_transparent: bool
    dominant: dict[str, int]  # {"r": .., "g": .., "b": ..}
    entropy: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "isTransparent": self.is_transparent,
            "dominant": dict(self.dominant),
            "entropy": self.entropy,
        }


@dataclass(frozen=True)
class OriginalMetadata:
    """
    Facts measured on one image file.

    Immutable once computed; also used to describe generated variants.
    """
    format: str
    dimensions: Dimensions
    size: int  # bytes on disk, not decoded size
    color_stats: ColorStats
    quality: Optional[int] = None
    chroma_subsampling: Optional[str] = None
    space: str = "srgb"

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "dimensions": self.dimensions.to_dict(),
            "size": self.size,
            "colorStats": self.color_stats.to_dict(),
            "quality": self.quality,
            "chromaSubsampling": self.chroma_subsampling,
            "space": self.space,
        }


@dataclass(frozen=True)
class VariantResult:
    """
    Output of generating a single variant, before upload.
    """
    path: Path
    dimensions: Dimensions
    size: int
    space: str


def compression_ratio(original_bytes: int, optimized_bytes: int) -> str:
    """
    Percent of bytes saved, two decimals, as text.

    Example: 1_000_000 -> 400_000 gives "60.00".
    """
    if original_bytes <= 0:
        return "0.00"
    return f"{(original_bytes - optimized_bytes) / original_bytes * 100:.2f}"


@dataclass(frozen=True)
class OptimizationStats:
    compression_ratio: str
    original_format: str
    color_profile: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "compressionRatio": self.compression_ratio,
            "originalFormat": self.original_format,
            "colorProfile": self.color_profile,
        }


@dataclass(frozen=True)
class VariantRecord:
    url: str
    dimensions: Dimensions
    size: int
    optimization_stats: OptimizationStats
    format: str = "webp"

    @classmethod
    def from_result(cls, url: str, result: VariantResult, analysis: OriginalMetadata) -> "VariantRecord":
        return cls(
            url=url,
            dimensions=result.dimensions,
            size=result.size,
            optimization_stats=OptimizationStats(
                compression_ratio=compression_ratio(analysis.size, result.size),
                original_format=analysis.format,
                color_profile=result.space,
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "dimensions": self.dimensions.to_dict(with_aspect=False),
            "size": self.size,
            "format": self.format,
            "optimizationStats": self.optimization_stats.to_dict(),
        }


@dataclass(frozen=True)
class ImageRecord:
    """
    Everything persisted for one fully processed original.

    Only built once every profile has been generated and uploaded.
    """
    versions: dict[str, VariantRecord]
    original: OriginalMetadata
    processed_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "versions": {name: v.to_dict() for name, v in self.versions.items()},
            "metadata": {
                "original": self.original.to_dict(),
                "processedAt": self.processed_at,
            },
        }


@dataclass
class RunStatistics:
    """
    Counters accumulated over one batch run.

    Mutated in place by the orchestrator; derived values are computed when
    the processing report is built.
    """
    start_time: float
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    total_size_before: int = 0
    total_size_after: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)
    warnings: list[dict[str, Any]] = field(default_factory=list)

    @property
    def saved_bytes(self) -> int:
        return self.total_size_before - self.total_size_after
