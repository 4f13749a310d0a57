"""
Core deduplication engine: index, validator, walker, hasher pool and retention rules.

This package contains the performance-critical foundation of dupekeep:
- FileIndex: lock-protected size and hash views over the known files
- IndexValidator: revalidates a persisted index against the filesystem
- FileWalker: recursive discovery of new files
- HashStage: fixed worker pool computing xxHash64 digests
- RuleEngine + EnforceStage + Deleter: deterministic retention and removal
- Models: FileRecord, DedupeParams, RunReport and friends

All components are pure Python with no UI dependencies.
"""

from .cancel import CancellationToken
from .errors import DedupeError, ProcessStopped, IndexStoreError, IndexNotFoundError
from .index import FileIndex
from .hasher import HasherImpl, XXHashAlgorithmImpl
from .validator import IndexValidator
from .scanner import FileWalker
from .rules import RuleEngine
from .deleter import Deleter, DeleteOutcome
from .stages import HashStage, EnforceStage
from .models import (
    FileKind, FileStat, FileRecord, BucketDecision, RetentionRule, RetentionPolicy,
    RunMode, RunState, RunStats, RunReport, DedupeParams)

__all__ = [
    "CancellationToken",
    "DedupeError",
    "ProcessStopped",
    "IndexStoreError",
    "IndexNotFoundError",
    "FileIndex",
    "HasherImpl",
    "XXHashAlgorithmImpl",
    "IndexValidator",
    "FileWalker",
    "RuleEngine",
    "Deleter",
    "DeleteOutcome",
    "HashStage",
    "EnforceStage",
    "FileKind",
    "FileStat",
    "FileRecord",
    "BucketDecision",
    "RetentionRule",
    "RetentionPolicy",
    "RunMode",
    "RunState",
    "RunStats",
    "RunReport",
    "DedupeParams",
]
