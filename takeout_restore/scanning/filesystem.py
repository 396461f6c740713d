import logging
import os
from pathlib import Path
from typing import Dict, Iterator, List, Set

from tqdm import tqdm

from .. import config
from ..classify import MediaClassifier
from ..descriptors.parse import parse_descriptor
from ..descriptors.resolve import list_directory, resolve_by_suffix, resolve_by_title
from ..exceptions import DescriptorUnreadable, MediaUnresolved, NoTimestampFound
from ..metadata.updater import MetadataUpdater
from ..models import DescriptorRecord, MediaKind, ResolutionPolicy, RunSummary


class DescriptorScanner:
    """
    Walks a takeout tree, pairs descriptors with media and drives updates.

    Each pair is handled to completion before the next one. A descriptor is
    deleted only after its media file was updated successfully, so any
    failure leaves the tree ready for a re-run.
    """
    def __init__(self,
                 updater: MetadataUpdater,
                 classifier: MediaClassifier,
                 policy: ResolutionPolicy = ResolutionPolicy.TITLE_THEN_SUFFIX):
        self.updater = updater
        self.classifier = classifier
        self.policy = policy
        self._listings: Dict[Path, Set[str]] = {}

    def scan(self, root: Path) -> RunSummary:
        summary = RunSummary()
        seen: Set[Path] = set()
        # Paired (or unreadable) descriptors; a later pass never retries them
        attempted: Set[Path] = set()
        unresolved: Set[Path] = set()

        if self.policy in (ResolutionPolicy.TITLE, ResolutionPolicy.TITLE_THEN_SUFFIX):
            unresolved = self._scan_descriptors(root, summary, seen, attempted)
        if self.policy in (ResolutionPolicy.SUFFIX, ResolutionPolicy.TITLE_THEN_SUFFIX):
            self._scan_media(root, summary, seen, attempted)

        leftover = sorted(p for p in unresolved if p not in attempted)
        for descriptor in leftover:
            logging.warning(f"No valid media file found for descriptor {descriptor}")

        summary.descriptors_seen = len(seen)
        summary.unresolved = len(leftover)
        summary.companions_updated = self.updater.companions_updated
        return summary

    # --- Passes ---

    def _scan_descriptors(self,
                          root: Path,
                          summary: RunSummary,
                          seen: Set[Path],
                          attempted: Set[Path]) -> Set[Path]:
        """
        Descriptor-driven: every JSON names its media file in `title`.
        Returns the descriptors whose media could not be found.
        """
        self._listings.clear()
        descriptors = [p for p in self._iter_files(root) if self._is_descriptor(p)]
        logging.info(f"Found {len(descriptors)} descriptor files under {root}")

        unresolved: Set[Path] = set()
        for descriptor in tqdm(descriptors, desc="Descriptors", unit="file"):
            seen.add(descriptor)
            try:
                record = parse_descriptor(descriptor)
                media_path = resolve_by_title(descriptor, record.media_filename,
                                              self._listing(descriptor.parent))
                if media_path is None:
                    raise MediaUnresolved(f"No media file named by descriptor {descriptor}")
                attempted.add(descriptor)
                self._apply(record, media_path, summary)
            except DescriptorUnreadable as e:
                attempted.add(descriptor)
                summary.unreadable += 1
                logging.error(str(e))
            except MediaUnresolved as e:
                unresolved.add(descriptor)
                logging.debug(str(e))
            except NoTimestampFound as e:
                summary.no_timestamp += 1
                logging.warning(str(e))
        return unresolved

    def _scan_media(self,
                    root: Path,
                    summary: RunSummary,
                    seen: Set[Path],
                    attempted: Set[Path]):
        """Media-driven: find each media file's descriptor by name patterns."""
        self._listings.clear()
        media_files = [p for p in self._iter_files(root) if self.classifier.is_media(p)]
        logging.info(f"Matching descriptors by name for {len(media_files)} media files")

        for media_path in tqdm(media_files, desc="Media", unit="file"):
            descriptor = resolve_by_suffix(media_path, self._listing(media_path.parent))
            if descriptor is None or descriptor in attempted:
                continue

            seen.add(descriptor)
            attempted.add(descriptor)
            try:
                record = parse_descriptor(descriptor)
                self._apply(record, media_path, summary)
            except DescriptorUnreadable as e:
                summary.unreadable += 1
                logging.error(str(e))
            except NoTimestampFound as e:
                summary.no_timestamp += 1
                logging.warning(str(e))

    # --- Per pair ---

    def _apply(self, record: DescriptorRecord, media_path: Path, summary: RunSummary):
        logging.info(f"Processing file {media_path}")

        if record.captured_at_unix is None:
            raise NoTimestampFound(f"No date found in descriptor {record.path} for {media_path}")

        kind = self.classifier.classify(media_path)
        if kind is MediaKind.UNRECOGNIZED:
            summary.unsupported += 1
            logging.info(f"Skipping unsupported file type: {media_path}")
            return

        if not self.updater.update(media_path, kind, record.captured_at_unix, record.geo):
            summary.failed += 1
            return

        summary.updated += 1
        self._delete_descriptor(record.path)

    def _delete_descriptor(self, descriptor: Path):
        try:
            descriptor.unlink()
        except OSError as e:
            logging.error(f"Updated media but could not delete descriptor {descriptor}: {e}")
            return
        self._listing(descriptor.parent).discard(descriptor.name)

    # --- Filesystem helpers ---

    def _listing(self, directory: Path) -> Set[str]:
        if directory not in self._listings:
            self._listings[directory] = list_directory(directory)
        return self._listings[directory]

    def _is_descriptor(self, path: Path) -> bool:
        return path.suffix.lower() == config.DESCRIPTOR_EXT

    def _iter_files(self, root: Path) -> Iterator[Path]:
        """Depth-first walker using os.scandir, sorted for a stable order."""
        stack = [root]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError:
                logging.warning(f"Permission denied: {current}")
                continue

            entries.sort(key=lambda e: e.name.lower())

            dirs: List[Path] = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False) and not e.name.startswith("._"):
                    # ._ files are macOS AppleDouble metadata, never media
                    yield Path(e.path)

            # Reversed so A is processed before Z
            for d in reversed(dirs):
                stack.append(d)
