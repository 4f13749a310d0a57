"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/scanner.py
Discovers new files under the root paths and adds them to the size index.
Features:
- Recursive traversal through the FileSystem collaborator (no symlink following)
- Skips non-regular entries, zero-byte files and paths already in the index
- Prunes excluded directories before descending
- Traversal errors are logged per root and never abort the other roots
"""

import os
import time
import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from dupekeep.core.cancel import CancellationToken
from dupekeep.core.errors import ProcessStopped
from dupekeep.core.index import FileIndex
from dupekeep.core.interfaces import FileSystem
from dupekeep.core.models import FileKind, FileRecord

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    new_files: int = 0
    skipped_known: int = 0
    skipped_empty: int = 0
    errors: int = 0
    duration: float = 0.0


class FileWalker:
    """
    Walks root paths and inserts every newly seen regular file as an unhashed record.

    Attributes:
        fs: Filesystem collaborator
        excluded_dirs: Absolute directories that are never entered
    """

    def __init__(self, fs: FileSystem, excluded_dirs: Optional[List[str]] = None):
        self.fs = fs
        self.excluded_dirs = [os.path.normpath(d) for d in excluded_dirs] if excluded_dirs else []

    def scan(self, roots: List[str], index: FileIndex, token: Optional[CancellationToken] = None) -> ScanResult:
        """
        Raises:
            ProcessStopped: The token was stopped; the walk ends immediately.
        """
        result = ScanResult()
        start_time = time.time()
        known: Set[str] = index.known_paths()
        logger.debug(f"Starting walk over {len(roots)} root(s), {len(known)} known paths")

        for root in roots:
            try:
                self._walk_root(root, index, known, result, token)
            except ProcessStopped:
                logger.debug("Walk interrupted by stop request")
                raise
            except OSError as e:
                result.errors += 1
                logger.warning(f"walk {root}: {e}")

        result.duration = time.time() - start_time
        logger.info(
            f"Walk complete: {result.new_files} new files, {result.skipped_known} known, "
            f"{result.skipped_empty} empty, {result.errors} errors"
        )
        return result

    def _walk_root(
            self,
            root: str,
            index: FileIndex,
            known: Set[str],
            result: ScanResult,
            token: Optional[CancellationToken]
    ) -> None:
        prune = self._is_excluded if self.excluded_dirs else None

        for entry in self.fs.walk(root, prune=prune):
            if token is not None:
                token.raise_if_stopped()

            if entry.error is not None:
                result.errors += 1
                logger.warning(f"walk: {entry.path}: {entry.error}")
                continue

            info = entry.stat
            # only regular files
            if info.kind is not FileKind.REGULAR:
                if entry.path == root and info.kind is not FileKind.DIRECTORY:
                    result.errors += 1
                    logger.warning(f"walk {root}: not a directory or regular file ({info.kind.value})")
                continue

            logger.debug(f"Processing file {entry.path}")

            # ignore empty files
            if info.size == 0:
                result.skipped_empty += 1
                continue

            # ignore duplicate paths
            if entry.path in known:
                result.skipped_known += 1
                continue

            index.add_unhashed(FileRecord.from_stat(entry.path, info))
            known.add(entry.path)
            result.new_files += 1

    def _is_excluded(self, path: str) -> bool:
        normalized = os.path.normpath(path)
        for excluded_dir in self.excluded_dirs:
            if normalized == excluded_dir or normalized.startswith(excluded_dir + os.sep):
                return True
        return False
