from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


class MediaKind(Enum):
    IMAGE = "image"
    VIDEO = "video"
    UNRECOGNIZED = "unrecognized"


class ResolutionPolicy(Enum):
    """How descriptors get paired with media files."""
    TITLE = "title"                          # descriptor-driven, reads `title`
    SUFFIX = "suffix"                        # media-driven, name heuristics
    TITLE_THEN_SUFFIX = "title_then_suffix"  # both passes, title first


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float
    altitude: Optional[float] = None


@dataclass
class DescriptorRecord:
    """
    One parsed sidecar file. Lives only for the duration of one update.
    """
    path: Path
    media_filename: Optional[str]
    captured_at_unix: Optional[int]
    geo: Optional[GeoPoint] = None

    @property
    def captured_at(self) -> Optional[datetime]:
        """Capture time in the local zone, whole seconds."""
        if self.captured_at_unix is None:
            return None
        return datetime.fromtimestamp(self.captured_at_unix)


@dataclass
class RunSummary:
    descriptors_seen: int = 0
    updated: int = 0
    companions_updated: int = 0
    unreadable: int = 0
    unresolved: int = 0
    no_timestamp: int = 0
    unsupported: int = 0
    failed: int = 0

    def describe(self) -> str:
        return ", ".join(f"{name}={getattr(self, name)}" for name in self.__dataclass_fields__)
