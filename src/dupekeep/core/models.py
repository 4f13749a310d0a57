"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models and configuration objects for indexing and deduplication runs.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Union
import os
from pathlib import Path
import re
import stat
from enum import Enum


# =============================
# Enums
# =============================

class FileKind(Enum):
    """
    Portable classification of a filesystem entry.
    Derived from st_mode so raw platform stat structures never enter the index.
    """
    REGULAR = "regular"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"

    @classmethod
    def from_mode(cls, mode: int) -> "FileKind":
        # Anything that cannot be classified is OTHER, never REGULAR
        if stat.S_ISLNK(mode):
            return cls.SYMLINK
        if stat.S_ISREG(mode):
            return cls.REGULAR
        if stat.S_ISDIR(mode):
            return cls.DIRECTORY
        return cls.OTHER


class RetentionRule(Enum):
    """
    Positional retention rule deciding which copy of a duplicate set survives.
    """
    KEEP_RECENT = "keep-recent"
    KEEP_OLDEST = "keep-oldest"
    KEEP_FIRST = "keep-first"
    KEEP_LAST = "keep-last"

    @property
    def display_name(self) -> str:
        """Human-readable name for console output."""
        mapping = {
            RetentionRule.KEEP_RECENT: "most recent",
            RetentionRule.KEEP_OLDEST: "oldest",
            RetentionRule.KEEP_FIRST: "lexically first",
            RetentionRule.KEEP_LAST: "lexically last",
        }
        return mapping.get(self, self.value)

    def __repr__(self) -> str:
        return self.value


class RunMode(Enum):
    INDEX_ONLY = "index-only"
    ENFORCE = "enforce"


class RunState(str, Enum):
    IDLE = "idle"
    LOADED = "loaded"
    INDEXED = "indexed"
    HASHED = "hashed"
    ENFORCED = "enforced"
    PERSISTED = "persisted"
    DONE = "done"


# ======================
#  Core Data Models
# ======================

@dataclass(frozen=True)
class FileStat:
    """Result of the filesystem collaborator's stat call."""
    size: int
    mtime_ns: int
    mode: int
    kind: FileKind

    @classmethod
    def from_stat_result(cls, result: os.stat_result) -> "FileStat":
        return cls(
            size=result.st_size,
            mtime_ns=result.st_mtime_ns,
            mode=result.st_mode,
            kind=FileKind.from_mode(result.st_mode),
        )


@dataclass
class FileRecord:
    """
    Represents a single known file.
    The path is the unique key; an empty digest means "not hashed yet".
    """
    path: str
    size: int  # in bytes
    mtime_ns: int
    mode: int = 0
    kind: FileKind = FileKind.REGULAR
    digest: bytes = b""

    @classmethod
    def from_stat(cls, path: str, info: FileStat) -> "FileRecord":
        return cls(path=path, size=info.size, mtime_ns=info.mtime_ns, mode=info.mode, kind=info.kind)

    @property
    def is_hashed(self) -> bool:
        return bool(self.digest)

    def refresh(self, info: FileStat) -> None:
        """Takes over fresh metadata and forgets the digest."""
        self.size = info.size
        self.mtime_ns = info.mtime_ns
        self.mode = info.mode
        self.kind = info.kind
        self.digest = b""

    def __repr__(self):
        return f"<FileRecord path={self.path}, size={self.size}, hashed={self.is_hashed}>"


@dataclass
class BucketDecision:
    """
    Outcome of applying the retention policy to one hash bucket.
    `ordered` is the lexical snapshot; `marked` pairs each removal candidate with its reason.
    """
    digest: bytes
    ordered: List[FileRecord]
    marked: List[tuple] = field(default_factory=list)

    @property
    def size(self) -> int:
        return self.ordered[0].size if self.ordered else 0

    @property
    def kept(self) -> List[FileRecord]:
        marked_paths = {record.path for record, _ in self.marked}
        return [r for r in self.ordered if r.path not in marked_paths]

    def __repr__(self):
        return f"<BucketDecision digest={self.digest.hex()}, count={len(self.ordered)}, marked={len(self.marked)}>"


class RunStats:
    """
    Statistics collected during a run, one entry per pipeline stage.
    """
    def __init__(self):
        self.total_time: float = 0.0
        self.stage_stats: Dict[str, Dict[str, Union[int, float]]] = {}

    def update_stage(
            self,
            stage_name: str,
            groups_found: int,
            files_processed: int,
            duration: float
    ) -> None:
        if stage_name not in self.stage_stats:
            self.stage_stats[stage_name] = {
                "groups": 0,
                "files": 0,
                "time": 0.0
            }
        self.stage_stats[stage_name]["groups"] += groups_found
        self.stage_stats[stage_name]["files"] += files_processed
        self.stage_stats[stage_name]["time"] += duration

    def print_summary(self) -> str:
        labels = {
            "validate": "🔁 Revalidated Records",
            "walk": "📁 Size Buckets",
            "hash": "🔍 Hash Buckets",
            "enforce": "🗑  Enforced Buckets",
        }

        lines = [
            "📊 Run Statistics:",
            f"Total Execution Time: {self.total_time:.3f}s\n",
            "Stage: GROUPS / FILES / TIME"
        ]

        for stage, data in self.stage_stats.items():
            label = labels.get(stage.lower(), stage.title())
            lines.append(f"{label}: {data['groups']} / {data['files']} / {data['time']:.3f}s")

        return "\n".join(lines)


@dataclass
class RunReport:
    """Everything a caller needs to know about one finished run."""
    state: RunState = RunState.IDLE
    stopped: bool = False
    new_files: int = 0
    hashed_files: int = 0
    failed_hashes: int = 0
    decisions: List[BucketDecision] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    would_delete: List[str] = field(default_factory=list)
    failed_deletions: List[str] = field(default_factory=list)
    reclaimed_bytes: int = 0
    persist_error: Optional[str] = None
    stats: RunStats = field(default_factory=RunStats)

    @property
    def marked_count(self) -> int:
        return sum(len(d.marked) for d in self.decisions)


"""
DTO for run parameters with built-in validation.
Interface-agnostic: built by the CLI, consumed by DedupeCommand.
"""

@dataclass
class RetentionPolicy:
    """Active retention rules, evaluated in fixed precedence."""
    rule: Optional[RetentionRule] = None
    delete_pattern: Optional[re.Pattern] = None
    keep_pattern: Optional[re.Pattern] = None

    @property
    def is_active(self) -> bool:
        return self.rule is not None or self.delete_pattern is not None or self.keep_pattern is not None


@dataclass
class DedupeParams:
    """Parameters for an indexing/deduplication run with validation."""
    roots: List[str]
    index_path: Optional[str] = None
    mode: RunMode = RunMode.ENFORCE
    workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    rule: Optional[RetentionRule] = None
    delete_pattern: Optional[re.Pattern] = None
    keep_pattern: Optional[re.Pattern] = None
    dry_run: bool = False
    use_trash: bool = False
    excluded_dirs: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        if self.workers < 1:
            raise ValueError("Worker count must be at least 1")

        if self.mode == RunMode.INDEX_ONLY:
            if not self.index_path:
                raise ValueError("Index-only mode requires an index path")
            if not self.roots:
                raise ValueError("Index-only mode requires at least one directory")

        if self.rule is not None and not isinstance(self.rule, RetentionRule):
            raise ValueError(f"Unknown retention rule: {self.rule!r}")

        # Resolved so that one physical file is never indexed under two paths
        self.roots = [str(Path(root).resolve()) for root in self.roots]
        self.excluded_dirs = [str(Path(d).resolve()) for d in self.excluded_dirs]
        if self.index_path:
            self.index_path = str(Path(self.index_path).resolve())

    @property
    def policy(self) -> RetentionPolicy:
        return RetentionPolicy(
            rule=self.rule,
            delete_pattern=self.delete_pattern,
            keep_pattern=self.keep_pattern,
        )

    @staticmethod
    def from_strings(
            roots: List[str],
            index_path: Optional[str] = None,
            index_only: bool = False,
            workers: Optional[int] = None,
            rule: Optional[str] = None,
            delete_match: str = "",
            keep_match: str = "",
            dry_run: bool = False,
            use_trash: bool = False,
            excluded_dirs: Optional[List[str]] = None,
    ) -> 'DedupeParams':
        """
        Factory method to create params from raw string inputs.
        Compiles the regex filters and resolves the rule alias.
        """
        try:
            delete_pattern = re.compile(delete_match) if delete_match else None
            keep_pattern = re.compile(keep_match) if keep_match else None
        except re.error as e:
            raise ValueError(f"Invalid regular expression: {e}") from e

        try:
            retention_rule = RetentionRule(rule) if rule else None
        except ValueError:
            raise ValueError(f"Unknown retention rule: '{rule}'")

        return DedupeParams(
            roots=list(roots),
            index_path=index_path or None,
            mode=RunMode.INDEX_ONLY if index_only else RunMode.ENFORCE,
            workers=workers if workers is not None else (os.cpu_count() or 1),
            rule=retention_rule,
            delete_pattern=delete_pattern,
            keep_pattern=keep_pattern,
            dry_run=dry_run,
            use_trash=use_trash,
            excluded_dirs=excluded_dirs or [],
        )
