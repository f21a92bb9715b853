"""Tests for image analysis."""

from __future__ import annotations

from pathlib import Path

import pytest

from imgpipe.analyzer import analyze_image
from imgpipe.errors import AnalysisError
from tests.image_factory import write_corrupt, write_image, write_solid


def test_png_dimensions_size_and_aspect_ratio(tmp_path: Path) -> None:
    """Aspect ratio is width/height to two decimals; size is the on-disk byte count."""
    path = write_image(tmp_path / "wide.png", 2000, 1000)

    meta = analyze_image(path)

    assert meta.format == "png"
    assert meta.dimensions.width == 2000
    assert meta.dimensions.height == 1000
    assert meta.dimensions.aspect_ratio == "2.00"
    assert meta.size == path.stat().st_size
    assert meta.space == "srgb"
    assert meta.quality is None
    assert meta.chroma_subsampling is None


def test_aspect_ratio_rounds_to_two_decimals(tmp_path: Path) -> None:
    path = write_image(tmp_path / "odd.png", 1000, 300)
    assert analyze_image(path).dimensions.aspect_ratio == "3.33"


def test_transparency_follows_alpha_channel(tmp_path: Path) -> None:
    rgba = write_image(tmp_path / "alpha.png", 64, 64, mode="RGBA")
    rgb = write_image(tmp_path / "opaque.png", 64, 64)

    assert analyze_image(rgba).color_stats.is_transparent is True
    assert analyze_image(rgb).color_stats.is_transparent is False


def test_solid_image_has_zero_entropy_and_its_colour_dominates(tmp_path: Path) -> None:
    path = write_solid(tmp_path / "red.png", 50, 50, (255, 0, 0))

    stats = analyze_image(path).color_stats

    assert stats.entropy == 0.0
    assert stats.dominant["r"] > 200
    assert stats.dominant["g"] < 50
    assert stats.dominant["b"] < 50


def test_jpeg_quality_and_chroma_subsampling(tmp_path: Path) -> None:
    path = write_image(tmp_path / "photo.jpg", 320, 240, quality=75, subsampling=2)

    meta = analyze_image(path)

    assert meta.format == "jpeg"
    assert meta.quality is not None
    assert abs(meta.quality - 75) <= 2
    assert meta.chroma_subsampling == "4:2:0"


def test_max_quality_jpeg_reports_100(tmp_path: Path) -> None:
    path = write_image(tmp_path / "best.jpg", 64, 64, quality=100, subsampling=0)

    meta = analyze_image(path)

    assert meta.quality == 100
    assert meta.chroma_subsampling == "4:4:4"


def test_greyscale_and_gif_spaces(tmp_path: Path) -> None:
    grey = write_image(tmp_path / "grey.png", 32, 32, mode="L")
    gif = write_image(tmp_path / "anim.gif", 32, 32, mode="P")

    assert analyze_image(grey).space == "b-w"
    gif_meta = analyze_image(gif)
    assert gif_meta.format == "gif"
    assert gif_meta.space == "srgb"


def test_corrupt_file_raises_analysis_error(tmp_path: Path) -> None:
    path = write_corrupt(tmp_path / "broken.png")

    with pytest.raises(AnalysisError) as excinfo:
        analyze_image(path)
    assert excinfo.value.__cause__ is not None


def test_missing_file_raises_analysis_error(tmp_path: Path) -> None:
    with pytest.raises(AnalysisError):
        analyze_image(tmp_path / "nope.jpg")


def test_metadata_serialises_with_camel_case_keys(tmp_path: Path) -> None:
    path = write_image(tmp_path / "wide.png", 2000, 1000)

    d = analyze_image(path).to_dict()

    assert d["dimensions"] == {"width": 2000, "height": 1000, "aspectRatio": "2.00"}
    assert set(d["colorStats"]) == {"isTransparent", "dominant", "entropy"}
    assert "chromaSubsampling" in d
