from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

from loguru import logger
from PIL import Image, JpegImagePlugin

from .errors import AnalysisError
from .results import ColorStats, Dimensions, OriginalMetadata

if TYPE_CHECKING:
    from loguru import Logger


# Pillow mode -> colour space name reported in metadata.
MODE_TO_SPACE = {
    "1": "b-w",
    "L": "b-w",
    "LA": "b-w",
    "I": "grey16",
    "I;16": "grey16",
    "P": "srgb",
    "PA": "srgb",
    "RGB": "srgb",
    "RGBA": "srgb",
    "RGBX": "srgb",
    "CMYK": "cmyk",
    "LAB": "lab",
    "HSV": "hsv",
}

# JpegImagePlugin.get_sampling() codes.
SAMPLING_TO_CHROMA = {
    0: "4:4:4",
    1: "4:2:2",
    2: "4:2:0",
}

# IJG standard luminance quantization table (quality 50).
_STD_LUMINANCE_TABLE = (
    16, 11, 10, 16, 24, 40, 51, 61,
    12, 12, 14, 19, 26, 58, 60, 55,
    14, 13, 16, 24, 40, 57, 69, 56,
    14, 17, 22, 29, 51, 87, 80, 62,
    18, 22, 37, 56, 68, 109, 103, 77,
    24, 35, 55, 64, 81, 104, 113, 92,
    49, 64, 78, 87, 103, 121, 120, 101,
    72, 92, 95, 98, 112, 100, 103, 99,
)

DOMINANT_SAMPLE_SIZE = (64, 64)
DOMINANT_PALETTE_COLORS = 8


def analyze_image(path: Path, log: Logger = logger) -> OriginalMetadata:
    """
    Measure one image file: format, size, colour facts and encoder hints.

    Reads the file once. Byte size comes from the filesystem, not the
    decoded pixels. Raises AnalysisError if the file cannot be read or decoded.
    """
    path = Path(path)

    try:
        size = path.stat().st_size

        with Image.open(path) as im:
            im.load()

            fmt = (im.format or path.suffix.lstrip(".")).lower()
            width, height = im.size

            return OriginalMetadata(
                format=fmt,
                dimensions=Dimensions(width=width, height=height),
                size=size,
                color_stats=ColorStats(
                    is_transparent=has_alpha(im),
                    dominant=_dominant_color(im),
                    entropy=_entropy(im),
                ),
                quality=_estimate_quality(im),
                chroma_subsampling=_chroma_subsampling(im),
                space=MODE_TO_SPACE.get(im.mode, im.mode.lower()),
            )
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        log.error("image_analysis_failed", path=str(path), error=str(exc))
        raise AnalysisError(f"cannot analyze {path.name}: {exc}") from exc


def has_alpha(im: Image.Image) -> bool:
    if im.mode in ("RGBA", "LA", "PA"):
        return True
    if im.mode == "P" and "transparency" in im.info:
        return True
    return False


def _dominant_color(im: Image.Image) -> dict[str, int]:
    # Quantize a thumbnail and take the most frequent palette entry.
    sample = im.convert("RGB")
    sample.thumbnail(DOMINANT_SAMPLE_SIZE)

    quantized = sample.quantize(colors=DOMINANT_PALETTE_COLORS)
    palette = quantized.getpalette() or []
    colors = quantized.getcolors() or []
    if not colors or not palette:
        return {"r": 0, "g": 0, "b": 0}

    _, index = max(colors)
    r, g, b = palette[index * 3:index * 3 + 3]
    return {"r": r, "g": g, "b": b}


def _entropy(im: Image.Image) -> float:
    # Shannon entropy of the greyscale histogram, in bits.
    return round(im.convert("L").entropy(), 4)


def _estimate_quality(im: Image.Image) -> Optional[int]:
    """
    Estimate the JPEG quality setting from the luminance quantization table.

    Uses the inverse of the IJG scaling formula on the table sums, so the
    table's storage order does not matter. Non-JPEG images return None.
    """
    tables = getattr(im, "quantization", None)
    if im.format != "JPEG" or not tables:
        return None

    luma = list(tables.get(0) or next(iter(tables.values())))
    if not luma:
        return None

    if all(v <= 1 for v in luma):
        return 100

    scale = sum(luma) * 100.0 / sum(_STD_LUMINANCE_TABLE[:len(luma)])
    if scale <= 100:
        quality = (200 - scale) / 2
    else:
        quality = 5000 / scale

    return max(1, min(100, int(round(quality))))


def _chroma_subsampling(im: Image.Image) -> Optional[str]:
    if im.format != "JPEG":
        return None
    return SAMPLING_TO_CHROMA.get(JpegImagePlugin.get_sampling(im))
