from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

from .settings import PipelineSettings


def _is_ignored(path: Path, root: Path, ignored_dirs: frozenset[str]) -> bool:
    try:
        parts = path.relative_to(root).parts
    except ValueError:
        parts = path.parts
    # Hidden files and anything under a hidden directory never match.
    if any(part.startswith(".") for part in parts):
        return True
    return any(part in ignored_dirs for part in parts[:-1])


def iter_images(root: Path, settings: PipelineSettings) -> Iterable[Path]:
    """
    Yield candidate source images under root, sorted by path.

    Extensions match case-insensitively. Files inside any ignored directory
    (node_modules, .git, processed) are skipped at any depth, as are dot-files
    and everything below a dot-directory. Generated .webp variants never match.
    """
    root = Path(root)
    if not root.is_dir():
        return

    for f in sorted(root.rglob("*")):
        if not f.is_file():
            continue
        if f.suffix.lower() not in settings.extensions:
            continue
        if _is_ignored(f, root, settings.ignored_dirs):
            continue
        yield f


def list_images(settings: PipelineSettings) -> List[Path]:
    return list(iter_images(settings.root_dir, settings))


def existing_basenames(settings: PipelineSettings) -> set[str]:
    return {p.name for p in iter_images(settings.root_dir, settings)}
