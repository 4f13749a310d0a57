"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/index.py
Size and hash views over the set of known files.

Both maps belong to one FileIndex and are guarded by one lock. They are never
mutated independently: every change goes through `mutate()` or a helper built on it.

    by_size : size   -> {path: FileRecord}
    by_hash : digest -> {path: FileRecord}

A hashed record lives in exactly one size bucket and one hash bucket.
An unhashed record lives only in its size bucket.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Set, Tuple

from dupekeep.core.models import FileRecord, FileStat

SizeMap = Dict[int, Dict[str, FileRecord]]
HashMap = Dict[bytes, Dict[str, FileRecord]]


class IndexMaps:
    """Both views, handed out only while the index lock is held."""

    def __init__(self, by_size: SizeMap, by_hash: HashMap):
        self.by_size = by_size
        self.by_hash = by_hash

    def insert_size(self, record: FileRecord) -> None:
        self.by_size.setdefault(record.size, {})[record.path] = record

    def insert_hash(self, record: FileRecord) -> None:
        self.by_hash.setdefault(record.digest, {})[record.path] = record

    def drop(self, record: FileRecord) -> None:
        """Removes the record from both views and prunes emptied buckets."""
        self._drop_from(self.by_size, record.size, record.path)
        if record.digest:
            self._drop_from(self.by_hash, record.digest, record.path)

    @staticmethod
    def _drop_from(mapping: dict, key, path: str) -> None:
        bucket = mapping.get(key)
        if bucket is None:
            return
        bucket.pop(path, None)
        if not bucket:
            del mapping[key]


class FileIndex:
    """
    Shared, lock-protected size/hash index.
    Safe to use from the hashing workers and the control flow at the same time.
    """

    def __init__(self, by_size: SizeMap = None, by_hash: HashMap = None):
        self._maps = IndexMaps(by_size or {}, by_hash or {})
        self._lock = threading.RLock()

    @contextmanager
    def mutate(self) -> Iterator[IndexMaps]:
        """The single synchronized entry point for changing both maps together."""
        with self._lock:
            yield self._maps

    # ---- mutation helpers ----

    def add_unhashed(self, record: FileRecord) -> None:
        with self.mutate() as maps:
            maps.insert_size(record)

    def set_digest(self, record: FileRecord, digest: bytes) -> None:
        """Stores a freshly computed digest and files the record under it."""
        with self.mutate() as maps:
            # Dropped by a concurrent removal while it was being read
            if maps.by_size.get(record.size, {}).get(record.path) is not record:
                return
            record.digest = digest
            maps.insert_hash(record)

    def rehome(self, record: FileRecord, info: FileStat) -> None:
        """Clears the digest and moves the record to the size bucket of its current size."""
        with self.mutate() as maps:
            maps.drop(record)
            record.refresh(info)
            maps.insert_size(record)

    def discard(self, record: FileRecord) -> None:
        with self.mutate() as maps:
            maps.drop(record)

    # ---- read helpers (snapshots) ----

    def known_paths(self) -> Set[str]:
        with self._lock:
            return {path for bucket in self._maps.by_size.values() for path in bucket}

    def records(self) -> List[FileRecord]:
        """Every known record, each path once."""
        with self._lock:
            seen = {}
            for bucket in self._maps.by_size.values():
                seen.update(bucket)
            for bucket in self._maps.by_hash.values():
                for path, record in bucket.items():
                    seen.setdefault(path, record)
            return list(seen.values())

    def hashed_records(self) -> List[FileRecord]:
        with self._lock:
            return [r for bucket in self._maps.by_hash.values() for r in bucket.values()]

    def hash_candidates(self) -> List[FileRecord]:
        """Unhashed members of every size bucket that has at least two members."""
        with self._lock:
            return [
                record
                for size in sorted(self._maps.by_size)
                if len(self._maps.by_size[size]) >= 2
                for record in self._maps.by_size[size].values()
                if not record.is_hashed
            ]

    def duplicate_buckets(self) -> List[Tuple[bytes, List[FileRecord]]]:
        """Hash buckets with at least two members, ordered by digest."""
        with self._lock:
            return [
                (digest, list(bucket.values()))
                for digest, bucket in sorted(self._maps.by_hash.items())
                if len(bucket) >= 2
            ]

    def size_bucket(self, size: int) -> Dict[str, FileRecord]:
        with self._lock:
            return dict(self._maps.by_size.get(size, {}))

    def hash_bucket(self, digest: bytes) -> Dict[str, FileRecord]:
        with self._lock:
            return dict(self._maps.by_hash.get(digest, {}))

    def snapshot(self) -> Tuple[SizeMap, HashMap]:
        """Shallow copies of both maps, taken atomically."""
        with self._lock:
            by_size = {size: dict(bucket) for size, bucket in self._maps.by_size.items()}
            by_hash = {digest: dict(bucket) for digest, bucket in self._maps.by_hash.items()}
            return by_size, by_hash

    def check_consistency(self) -> List[str]:
        """Returns a description of every invariant violation; empty when sound."""
        problems = []
        with self._lock:
            for digest, bucket in self._maps.by_hash.items():
                for path, record in bucket.items():
                    if record.digest != digest:
                        problems.append(f"{path}: filed under {digest.hex()} but digest is {record.digest.hex()}")
                    if self._maps.by_size.get(record.size, {}).get(path) is not record:
                        problems.append(f"{path}: hashed but missing from size bucket {record.size}")
            for size, bucket in self._maps.by_size.items():
                for path, record in bucket.items():
                    if record.size != size:
                        problems.append(f"{path}: filed under size {size} but size is {record.size}")
                    if record.is_hashed and self._maps.by_hash.get(record.digest, {}).get(path) is not record:
                        problems.append(f"{path}: has digest but missing from hash bucket")
            seen: Set[str] = set()
            for bucket in self._maps.by_size.values():
                for path in bucket:
                    if path in seen:
                        problems.append(f"{path}: present in more than one size bucket")
                    seen.add(path)
        return problems

    @property
    def size_bucket_count(self) -> int:
        with self._lock:
            return len(self._maps.by_size)

    @property
    def hash_bucket_count(self) -> int:
        with self._lock:
            return len(self._maps.by_hash)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(bucket) for bucket in self._maps.by_size.values())

    def __eq__(self, other) -> bool:
        if not isinstance(other, FileIndex):
            return NotImplemented
        return self.snapshot() == other.snapshot()

    def __repr__(self):
        return f"<FileIndex files={len(self)}, sizes={self.size_bucket_count}, hashes={self.hash_bucket_count}>"
