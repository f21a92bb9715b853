from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger
from PIL import Image, ImageEnhance, ImageFilter

from .analyzer import analyze_image, has_alpha
from .errors import AnalysisError, OptimizationError
from .presets import ProcessingProfile
from .results import OriginalMetadata, VariantResult
from .settings import TransformSettings

if TYPE_CHECKING:
    from loguru import Logger


FORMAT_TO_EXT = {
    "webp": ".webp",
}

# Modes the filters below can work on directly; anything else is decoded
# to RGB(A) first.
FILTERABLE_MODES = {"L", "RGB", "RGBA"}


def optimize_image(
    src_path: Path,
    profile: ProcessingProfile,
    analysis: OriginalMetadata,
    t: TransformSettings = TransformSettings(),
    log: Logger = logger,
) -> VariantResult:
    """
    Build one profile's variant next to the source and measure it.

    Steps, always in this order: downscale (never upscale), sharpen,
    colour modulation + gamma, sRGB normalisation, WebP encode.
    Raises OptimizationError on any failure. A partially written output is
    left in place; the next attempt overwrites it.
    """
    src_path = Path(src_path)
    out_path = _build_output_path(src_path, profile, t.output_format)

    try:
        with Image.open(src_path) as im:
            im.load()
            im = _to_filterable(im)

            im = _apply_resize(im, profile, analysis)
            im = _apply_sharpen(im, t)
            im = _apply_color(im, t)
            im = _apply_colorspace(im, analysis, t)
            im = _apply_alpha_policy(im, analysis)

            save_kwargs = _build_save_kwargs(profile, analysis, t)
            im.save(out_path, format=t.output_format.upper(), **save_kwargs)
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        log.error(
            "image_optimization_failed",
            input=str(src_path),
            profile=profile.name,
            error=str(exc),
        )
        raise OptimizationError(f"cannot build {profile.name} variant of {src_path.name}: {exc}") from exc

    try:
        optimized = analyze_image(out_path, log=log)
    except AnalysisError as exc:
        raise OptimizationError(f"cannot measure {out_path.name}: {exc}") from exc

    log.debug(
        "variant_written",
        output=str(out_path),
        profile=profile.name,
        width=optimized.dimensions.width,
        size=optimized.size,
    )

    return VariantResult(
        path=out_path,
        dimensions=optimized.dimensions,
        size=optimized.size,
        space=optimized.space,
    )


def _build_output_path(src_path: Path, profile: ProcessingProfile, out_format: str) -> Path:
    # photo.jpg -> photo-sm.webp, in the same folder
    ext = FORMAT_TO_EXT[out_format]
    return src_path.parent / f"{src_path.stem}{profile.suffix}{ext}"


def _to_filterable(im: Image.Image) -> Image.Image:
    if im.mode in FILTERABLE_MODES:
        return im
    if has_alpha(im):
        return im.convert("RGBA")
    return im.convert("RGB")


def _apply_resize(im: Image.Image, profile: ProcessingProfile, analysis: OriginalMetadata) -> Image.Image:
    """
    Fit the width inside profile.max_width, keeping aspect ratio.

    Only runs when the analysed width exceeds max_width; never upscales.
    """
    if analysis.dimensions.width <= profile.max_width:
        return im

    w, h = im.size
    scale = profile.max_width / w
    if scale >= 1.0:
        return im

    new_w = max(1, min(profile.max_width, int(round(w * scale))))
    new_h = max(1, int(round(h * scale)))

    return im.resize((new_w, new_h), Image.Resampling.LANCZOS)


def _apply_sharpen(im: Image.Image, t: TransformSettings) -> Image.Image:
    # threshold leaves flat areas alone and only sharpens edges
    return im.filter(
        ImageFilter.UnsharpMask(
            radius=t.sharpen_radius,
            percent=t.sharpen_percent,
            threshold=t.sharpen_threshold,
        )
    )


def _apply_color(im: Image.Image, t: TransformSettings) -> Image.Image:
    alpha = None
    if im.mode == "RGBA":
        alpha = im.getchannel("A")
        im = im.convert("RGB")

    if t.saturation != 1.0:
        im = ImageEnhance.Color(im).enhance(t.saturation)
    if t.brightness != 1.0:
        im = ImageEnhance.Brightness(im).enhance(t.brightness)
    if t.gamma != 1.0:
        im = im.point(_gamma_table(t.gamma) * len(im.getbands()))

    if alpha is not None:
        im.putalpha(alpha)
    return im


def _gamma_table(gamma: float) -> list[int]:
    inv = 1.0 / gamma
    return [min(255, int(round(255 * (i / 255) ** inv))) for i in range(256)]


def _apply_colorspace(im: Image.Image, analysis: OriginalMetadata, t: TransformSettings) -> Image.Image:
    if analysis.space == t.target_space and im.mode in ("RGB", "RGBA"):
        return im

    return im.convert("RGBA" if im.mode == "RGBA" else "RGB")


def _apply_alpha_policy(im: Image.Image, analysis: OriginalMetadata) -> Image.Image:
    # Keep an alpha channel only when the source was transparent.
    if im.mode == "RGBA" and not analysis.color_stats.is_transparent:
        return im.convert("RGB")
    return im


def _build_save_kwargs(profile: ProcessingProfile, analysis: OriginalMetadata, t: TransformSettings) -> dict:
    kwargs: dict = {
        "quality": int(profile.quality),
        "method": int(t.webp_method),
    }

    # Pillow has no near-lossless switch; max-quality sources go lossless.
    kwargs["lossless"] = analysis.quality == t.lossless_source_quality

    if analysis.color_stats.is_transparent:
        kwargs["alpha_quality"] = int(t.alpha_quality)

    return kwargs
