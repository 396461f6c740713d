import logging
from pathlib import Path
from typing import Optional

from .. import config
from ..exceptions import TakeoutRestoreError
from ..models import GeoPoint, MediaKind
from ..descriptors.parse import to_local_datetime
from .container import rewrite_image
from .filetimes import set_file_times
from .tags import build_records


def find_companion(image_path: Path) -> Optional[Path]:
    """
    Motion clip stored next to a still: same stem with no extension, then
    with `.MP4`. Returns the first one that exists.
    """
    base = image_path.with_suffix('')
    for suffix in config.COMPANION_SUFFIXES:
        candidate = base.with_name(base.name + suffix)
        if candidate != image_path and candidate.is_file():
            return candidate
    return None


class MetadataUpdater:
    """
    Writes a capture time (and optional location) onto one media file.

    Images get their EXIF tag table rewritten, then file times; videos only
    file times. Failures are logged and reported as False, never raised,
    and this class never deletes anything.
    """
    def __init__(self):
        self.companions_updated = 0

    def update(self, path: Path, kind: MediaKind, ts: int, geo: Optional[GeoPoint] = None) -> bool:
        if kind is MediaKind.IMAGE:
            return self._update_image(path, ts, geo)
        if kind is MediaKind.VIDEO:
            return self._update_video(path, ts)
        logging.warning(f"Not a recognized media file, leaving untouched: {path}")
        return False

    def _update_image(self, path: Path, ts: int, geo: Optional[GeoPoint]) -> bool:
        try:
            records = build_records(to_local_datetime(ts), geo)
            if not rewrite_image(path, records):
                logging.info(f"Only file times will be set for {path}")
            set_file_times(path, ts)
        except TakeoutRestoreError as e:
            logging.error(f"Error updating metadata for {path}: {e}")
            return False
        except Exception as e:
            logging.error(f"Unexpected error updating metadata for {path}: {e}")
            return False

        logging.debug(f"Metadata updated for {path}")

        companion = find_companion(path)
        if companion is not None:
            self._update_companion(companion, ts)
        return True

    def _update_video(self, path: Path, ts: int) -> bool:
        try:
            set_file_times(path, ts)
        except TakeoutRestoreError as e:
            logging.error(f"Error updating metadata for {path}: {e}")
            return False
        except Exception as e:
            logging.error(f"Unexpected error updating metadata for {path}: {e}")
            return False
        logging.debug(f"File times updated for {path}")
        return True

    def _update_companion(self, path: Path, ts: int) -> None:
        try:
            set_file_times(path, ts)
        except TakeoutRestoreError as e:
            logging.error(f"Error updating metadata for companion file {path}: {e}")
            return
        except Exception as e:
            logging.error(f"Unexpected error updating metadata for companion file {path}: {e}")
            return
        self.companions_updated += 1
        logging.debug(f"File times updated for companion {path}")
