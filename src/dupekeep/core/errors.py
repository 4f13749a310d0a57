"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/errors.py
Exception hierarchy shared by the pipeline, the index store and the CLI.
"""


class DedupeError(Exception):
    """Base class for all dupekeep errors."""


class ProcessStopped(DedupeError):
    """Raised when a run was cancelled. Not a failure."""

    def __init__(self, message: str = "process was stopped"):
        super().__init__(message)


class IndexStoreError(DedupeError):
    """Persisted index could not be read or written."""


class IndexNotFoundError(IndexStoreError):
    """No persisted index exists yet; callers start with an empty one."""
