"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/deleter.py
Removes marked files and keeps the index in line with what is actually on disk.
"""

import logging
from enum import Enum

from dupekeep.core.index import FileIndex
from dupekeep.core.interfaces import FileSystem
from dupekeep.core.models import FileRecord

logger = logging.getLogger(__name__)


class DeleteOutcome(Enum):
    DRY_RUN = "dry-run"
    DELETED = "deleted"
    FAILED = "failed"


class Deleter:
    """
    Deletes one record at a time.

    After every attempt the path is checked again: if it is gone the record is purged
    from both views, whether or not the removal call reported success. If it is still
    there the record stays in the index and is re-evaluated on the next run.
    """

    def __init__(self, fs: FileSystem, dry_run: bool = False):
        self.fs = fs
        self.dry_run = dry_run

    def delete(self, record: FileRecord, index: FileIndex) -> DeleteOutcome:
        if self.dry_run:
            logger.debug(f"Would delete {record.path}")
            return DeleteOutcome.DRY_RUN

        logger.debug(f"Deleting {record.path}")
        try:
            self.fs.remove(record.path)
        except OSError as e:
            logger.warning(f"error deleting {record.path}: {e}")

        if self.fs.exists(record.path):
            return DeleteOutcome.FAILED

        index.discard(record)
        return DeleteOutcome.DELETED
