"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/validator.py
Reconciles a loaded index with the current state of the filesystem.

For every known record the path is stat'ed again:
  - stat fails                   -> record removed from both views
  - mtime changed                -> digest cleared, record moved to the size bucket of its
                                    current size; dropped instead if it is no longer a
                                    regular file or is now empty
  - mtime unchanged              -> record and digest kept, file is never read again
Nothing is written to disk here; only stat calls are made.
"""

import time
import logging
from dataclasses import dataclass

from dupekeep.core.index import FileIndex
from dupekeep.core.interfaces import FileSystem
from dupekeep.core.models import FileKind, FileRecord, FileStat

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    checked: int = 0
    unchanged: int = 0
    vanished: int = 0
    changed: int = 0
    dropped: int = 0
    duration: float = 0.0


class IndexValidator:
    def __init__(self, fs: FileSystem):
        self.fs = fs

    def process(self, index: FileIndex) -> ValidationResult:
        result = ValidationResult()
        start_time = time.time()

        # Hashed records first, then persisted records that never got a digest
        hashed = index.hashed_records()
        hashed_paths = {r.path for r in hashed}
        unhashed = [r for r in index.records() if r.path not in hashed_paths]

        for record in hashed + unhashed:
            result.checked += 1
            self._check(index, record, result)

        result.duration = time.time() - start_time
        logger.info(
            f"Validated {result.checked} records: {result.unchanged} unchanged, "
            f"{result.changed} changed, {result.vanished} vanished, {result.dropped} dropped"
        )
        return result

    def _check(self, index: FileIndex, record: FileRecord, result: ValidationResult) -> None:
        path = record.path
        try:
            info = self.fs.stat(path)
        except OSError as e:
            logger.debug(f"{path} vanished or not accessible, removing ({e})")
            index.discard(record)
            result.vanished += 1
            return

        if info.mtime_ns == record.mtime_ns:
            result.unchanged += 1
            return

        if not self._still_indexable(info):
            logger.debug(f"{path} not a regular file anymore or file size 0, removing")
            index.discard(record)
            result.dropped += 1
            return

        logger.debug(f"Mtime of {path} changed, need to recalculate hash")
        index.rehome(record, info)
        result.changed += 1

    @staticmethod
    def _still_indexable(info: FileStat) -> bool:
        return info.kind is FileKind.REGULAR and info.size > 0
