"""Helpers that write small synthetic images for tests."""

from __future__ import annotations

from pathlib import Path

from PIL import Image, ImageDraw


def gradient_image(width: int, height: int, mode: str = "RGB") -> Image.Image:
    """A horizontal colour ramp with a few shapes, so encoders have real work to do."""
    im = Image.new("RGB", (width, height), (20, 40, 60))
    draw = ImageDraw.Draw(im)
    for x in range(0, width, max(1, width // 64)):
        shade = int(255 * x / max(1, width - 1))
        draw.rectangle([x, 0, x + max(1, width // 64), height], fill=(shade, 255 - shade, 128))
    draw.ellipse([width // 4, height // 4, width * 3 // 4, height * 3 // 4], fill=(240, 200, 30))

    if mode == "RGBA":
        im = im.convert("RGBA")
        alpha = Image.new("L", (width, height), 255)
        ImageDraw.Draw(alpha).rectangle([0, 0, width // 3, height], fill=0)
        im.putalpha(alpha)
    elif mode != "RGB":
        im = im.convert(mode)
    return im


def write_image(path: Path, width: int, height: int, mode: str = "RGB", **save_kwargs) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    gradient_image(width, height, mode).save(path, **save_kwargs)
    return path


def write_solid(path: Path, width: int, height: int, color: tuple[int, int, int]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (width, height), color).save(path)
    return path


def write_corrupt(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x89PNG\r\n\x1a\nthis is not really a png")
    return path
