"""
Pairing of sidecar descriptors with media files.

Two independent strategies, both pure functions of a directory listing and
file names:

  - Title: the descriptor names its media file in the `title` field.
  - Suffix: starting from a media file, look for `<name>.json`,
    `<name>.*.json`, then the truncated `_COV` -> `_CO` -> `_C` variants
    that export tooling produces for long burst/cover names.
"""
import logging
import os
from pathlib import Path
from typing import AbstractSet, Optional, Set

from .. import config


def list_directory(directory: Path) -> Set[str]:
    """Names of the regular files in `directory`; empty if unreadable."""
    try:
        with os.scandir(directory) as it:
            return {e.name for e in it if e.is_file(follow_symlinks=True)}
    except OSError as e:
        logging.warning(f"Cannot list {directory}: {e}")
        return set()


def resolve_by_title(descriptor_path: Path,
                     media_filename: Optional[str],
                     listing: AbstractSet[str]) -> Optional[Path]:
    """
    Media path named by the descriptor's `title`, joined with the
    descriptor's own directory. An exact name wins; otherwise the listing is
    searched ignoring case. None if the name is missing or not present.
    """
    if not media_filename:
        return None

    # Only plain names are accepted; a title must not escape the directory
    if Path(media_filename).name != media_filename or media_filename in ('.', '..'):
        return None

    if media_filename in listing:
        return descriptor_path.parent / media_filename

    # Titles keep the uploaded case; the exported file may not (IMG_1.JPG vs IMG_1.jpg)
    folded = media_filename.casefold()
    matches = sorted(n for n in listing if n.casefold() == folded)
    if not matches:
        return None
    return descriptor_path.parent / matches[0]


def resolve_by_suffix(media_path: Path, listing: AbstractSet[str]) -> Optional[Path]:
    """
    Descriptor path for `media_path` by naming heuristics, or None.

    Example: media `IMG_0001_COV.jpg` falls back to `IMG_0001_CO.jpg.json`
    when neither `IMG_0001_COV.jpg.json` nor `IMG_0001_COV.jpg.*.json` exist.
    """
    directory = media_path.parent
    name = media_path.name
    ext = config.DESCRIPTOR_EXT

    # 1. <name>.json, then <name>.*.json
    direct = name + ext
    if direct in listing:
        return directory / direct

    prefix = name + '.'
    extended = sorted(
        n for n in listing
        if n.startswith(prefix) and n.endswith(ext) and len(n) > len(direct)
    )
    if extended:
        return directory / extended[0]

    # 2./3. truncated cover variants, each applied to the previous result
    candidate = name
    for old, new in config.COVER_SUFFIX_STEPS:
        replaced = candidate.replace(old, new)
        if replaced == candidate:
            continue
        candidate = replaced
        if candidate + ext in listing:
            return directory / (candidate + ext)

    return None
