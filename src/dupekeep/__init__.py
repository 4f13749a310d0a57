"""
dupekeep: content-based duplicate file finder with a persistent index.

Core features:
- Size → full xxHash64 content hash, computed by a pool of worker threads
- Persistent index: unchanged files are never read twice across runs
- Deterministic retention rules (keep most recent / oldest / first / last, regex filters)
- Deletion or move to system trash (via send2trash); at least one copy always survives
"""

# Get version
try:
    from importlib.metadata import version as _version, PackageNotFoundError
    __version__ = _version("dupekeep")
except PackageNotFoundError:
    __version__ = "0.0.0"

# Public API: only what users should import directly
from dupekeep.commands import DedupeCommand
from dupekeep.core import (
    CancellationToken, DedupeParams, RetentionRule, RunMode, RunReport, FileIndex, FileRecord)
from dupekeep.utils.convert_utils import ConvertUtils
from dupekeep.services import FileService, PickleIndexStore

__all__ = [
    "DedupeCommand",
    "CancellationToken",
    "DedupeParams",
    "RetentionRule",
    "RunMode",
    "RunReport",
    "FileIndex",
    "FileRecord",
    "ConvertUtils",
    "FileService",
    "PickleIndexStore",
    "__version__",
]
