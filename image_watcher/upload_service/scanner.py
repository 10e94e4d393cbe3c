import logging
import os
from typing import Iterator, List, Mapping, Optional, Sequence

from image_watcher.settings import WatchRule
from image_watcher.upload_service.matching import is_path_match, split_pattern
from image_watcher.upload_service.models import ScanSummary
from image_watcher.upload_service.service import UploadPipeline

log = logging.getLogger(__name__)


class DirectoryScanner:
    """Finds existing directories matching the watch rules and uploads their images."""

    def __init__(
        self,
        rules: Sequence[WatchRule],
        pipeline: UploadPipeline,
        common_tags: Optional[Mapping[str, str]] = None,
    ):
        self.rules = list(rules)
        self.pipeline = pipeline
        self.common_tags = dict(common_tags or {})

    @staticmethod
    def walk_root(rule: WatchRule) -> str:
        """
        The literal prefix before the first wildcard. When that prefix ends
        inside a directory name (`/data/cam*`), its parent directory.
        """
        base = rule.base_directory
        if os.path.isdir(base):
            return base
        return os.path.dirname(base)

    def matching_directories(self, rule: WatchRule) -> Iterator[str]:
        parts = split_pattern(rule.directory_pattern)
        root = self.walk_root(rule)
        log.debug("Scanning %s for pattern %s", root, rule.directory_pattern)
        if not root:
            return

        def on_walk_error(error: OSError):
            log.warning(f"Skipping unreadable directory {error.filename}: {error}")

        for dir_path, _dirs, _files in os.walk(root, onerror=on_walk_error, followlinks=False):
            if is_path_match(dir_path, parts):
                log.info("Match found! Pattern: %s, Path: %s", rule.directory_pattern, dir_path)
                yield dir_path

    def upload_existing(self) -> ScanSummary:
        summary = ScanSummary()
        for rule in self.rules:
            for directory in self.matching_directories(rule):
                summary.directories.append(
                    self.pipeline.upload_directory(directory, rule.tag, self.common_tags)
                )
        log.info(
            "Scan finished: %d directories, %d uploaded, %d failed",
            len(summary.directories), summary.uploaded, summary.failed,
        )
        return summary

    def watch_targets(self, use_wildcard: bool) -> List[str]:
        """Directories to watch recursively: every existing match, or each literal path."""
        targets: List[str] = []
        for rule in self.rules:
            if use_wildcard:
                candidates = list(self.matching_directories(rule))
            else:
                candidates = [rule.directory_pattern]
            for directory in candidates:
                if directory not in targets:
                    targets.append(directory)
        return targets
