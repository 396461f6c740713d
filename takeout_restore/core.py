import logging
from pathlib import Path
from typing import Optional

from . import config
from .classify import MediaClassifier
from .metadata.updater import MetadataUpdater
from .models import ResolutionPolicy, RunSummary
from .scanning.filesystem import DescriptorScanner


class TakeoutRestoreApp:
    def __init__(self,
                 policy: ResolutionPolicy = ResolutionPolicy(config.DEFAULT_POLICY),
                 classifier: Optional[MediaClassifier] = None):
        self.policy = policy
        self.classifier = classifier or MediaClassifier()

    def run(self, root: Path) -> RunSummary:
        """
        Restores timestamps for every descriptor/media pair under `root`.
        1. Pair (title field and/or name patterns, per policy)
        2. Update media (EXIF + file times, companion clip)
        3. Delete descriptors whose update succeeded
        """
        if not root.is_dir():
            raise NotADirectoryError(f"{root} is not a directory")

        logging.info(f"Scanning {root} (policy={self.policy.value})...")
        scanner = DescriptorScanner(MetadataUpdater(), self.classifier, self.policy)
        summary = scanner.scan(root)

        logging.info(f"Run complete: {summary.describe()}")
        if summary.failed or summary.unreadable or summary.unresolved or summary.no_timestamp:
            logging.warning("Some descriptors were left in place; see the log above. Re-running retries them.")
        return summary
