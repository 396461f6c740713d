from pathlib import Path
from typing import Iterable

from . import config
from .models import MediaKind


class MediaClassifier:
    """
    Maps a path to IMAGE / VIDEO / UNRECOGNIZED by its extension.
    Extension sets are fixed at construction (case-insensitive, leading dot).
    """
    def __init__(self,
                 image_exts: Iterable[str] = config.IMAGE_EXTS,
                 video_exts: Iterable[str] = config.VIDEO_EXTS):
        self.image_exts = frozenset(self._normalize(e) for e in image_exts)
        self.video_exts = frozenset(self._normalize(e) for e in video_exts)

    def classify(self, path: Path) -> MediaKind:
        ext = path.suffix.lower()
        if not ext:
            return MediaKind.UNRECOGNIZED
        if ext in self.image_exts:
            return MediaKind.IMAGE
        if ext in self.video_exts:
            return MediaKind.VIDEO
        return MediaKind.UNRECOGNIZED

    def is_media(self, path: Path) -> bool:
        return self.classify(path) is not MediaKind.UNRECOGNIZED

    @staticmethod
    def _normalize(ext: str) -> str:
        ext = ext.lower()
        return ext if ext.startswith('.') else f'.{ext}'
