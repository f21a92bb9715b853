from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProcessingProfile:
    name: str
    max_width: int
    quality: int
    suffix: str  # e.g. photo.jpg -> photo-sm.webp


SMALL = ProcessingProfile(name="small", max_width=800, quality=80, suffix="-sm")
MEDIUM = ProcessingProfile(name="medium", max_width=1200, quality=85, suffix="-md")
LARGE = ProcessingProfile(name="large", max_width=1600, quality=90, suffix="-lg")

# Processing order matters: variants are generated and uploaded in this order.
PROFILES: tuple[ProcessingProfile, ...] = (SMALL, MEDIUM, LARGE)

