"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines the collaborator interfaces (Protocols) the pipeline depends on.
Concrete implementations live in core.hasher and the services package;
tests substitute their own.

Key Components:
---------------
- HashAlgorithm: Streaming content fingerprint (xxHash64 by default).
- Hasher: Computes the full-content digest of a file record.
- FileSystem: stat / remove / exists / recursive walk.
- IndexStore: Durable read/write of a FileIndex.
"""

from typing import Protocol, Iterator, Optional, Callable, NamedTuple

from dupekeep.core.models import FileRecord, FileStat
from dupekeep.core.index import FileIndex


class WalkEntry(NamedTuple):
    """One item produced by FileSystem.walk: either a stat or an error."""
    path: str
    stat: Optional[FileStat]
    error: Optional[OSError]


class HashState(Protocol):
    def update(self, data: bytes) -> None: ...
    def digest(self) -> bytes: ...


class HashAlgorithm(Protocol):
    """
    Interface for content fingerprint functions.

    Must be deterministic; collision resistance is needed for detection only, not security.
    """

    def new(self) -> HashState:
        """Returns a fresh incremental hash state."""
        ...

    def hash(self, data: bytes) -> bytes:
        """Computes the digest of the provided byte data."""
        ...


class Hasher(Protocol):
    """Interface for fingerprinting whole files."""
    def compute_full_hash(self, record: FileRecord) -> bytes: ...


class FileSystem(Protocol):
    """Interface for the few filesystem operations the pipeline performs."""

    def stat(self, path: str) -> FileStat:
        """Raises OSError when the path cannot be inspected."""
        ...

    def exists(self, path: str) -> bool: ...

    def remove(self, path: str) -> None:
        """Raises OSError when the path could not be removed."""
        ...

    def walk(self, root: str, prune: Optional[Callable[[str], bool]] = None) -> Iterator[WalkEntry]:
        """
        Recursively enumerate `root`.

        Args:
            root: Directory (or single file) to enumerate.
            prune: Returns True for directories that must not be entered.

        Yields:
            WalkEntry for every entry, including directories and failures.
        """
        ...


class IndexStore(Protocol):
    """Durable storage for a FileIndex."""

    def read(self) -> FileIndex:
        """
        Raises:
            IndexNotFoundError: Nothing stored yet (start fresh).
            IndexStoreError: Stored data is unreadable or corrupt.
        """
        ...

    def write(self, index: FileIndex) -> None:
        """Raises IndexStoreError on failure."""
        ...
