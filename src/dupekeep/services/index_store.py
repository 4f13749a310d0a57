"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/index_store.py
Durable storage of the size/hash index between runs.

The index is pickled into a versioned envelope. Writes land in a temporary
sibling file and are moved into place with os.replace, under a dedicated lock,
so a save triggered during shutdown can never interleave with or truncate
another save.
"""
import os
import pickle
import logging
import tempfile
import threading

from dupekeep.core.errors import IndexNotFoundError, IndexStoreError
from dupekeep.core.index import FileIndex
from dupekeep.core.interfaces import IndexStore

logger = logging.getLogger(__name__)

INDEX_FORMAT_VERSION = 1


class PickleIndexStore(IndexStore):
    """Stores a FileIndex at a fixed path."""

    def __init__(self, path: str):
        self.path = path
        self._write_lock = threading.Lock()

    def read(self) -> FileIndex:
        try:
            with open(self.path, 'rb') as f:
                payload = pickle.load(f)
        except FileNotFoundError as e:
            raise IndexNotFoundError(f"No index at {self.path}") from e
        except (OSError, pickle.UnpicklingError, EOFError, AttributeError, ImportError, ValueError) as e:
            raise IndexStoreError(f"read index {self.path}: {e}") from e

        if not isinstance(payload, dict) or payload.get("version") != INDEX_FORMAT_VERSION:
            raise IndexStoreError(f"read index {self.path}: unsupported format")

        by_size = payload.get("by_size")
        by_hash = payload.get("by_hash")
        if not isinstance(by_size, dict) or not isinstance(by_hash, dict):
            raise IndexStoreError(f"read index {self.path}: malformed payload")

        index = FileIndex(by_size=by_size, by_hash=by_hash)
        logger.debug(f"Loaded index from {self.path}: {index!r}")
        return index

    def write(self, index: FileIndex) -> None:
        by_size, by_hash = index.snapshot()
        payload = {"version": INDEX_FORMAT_VERSION, "by_size": by_size, "by_hash": by_hash}

        with self._write_lock:
            directory = os.path.dirname(os.path.abspath(self.path))
            tmp_path = None
            try:
                fd, tmp_path = tempfile.mkstemp(prefix=".dupekeep-", suffix=".tmp", dir=directory)
                with os.fdopen(fd, 'wb') as f:
                    pickle.dump(payload, f, protocol=pickle.HIGHEST_PROTOCOL)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
                tmp_path = None
            except (OSError, pickle.PicklingError) as e:
                raise IndexStoreError(f"write index {self.path}: {e}") from e
            finally:
                if tmp_path is not None:
                    try:
                        os.remove(tmp_path)
                    except OSError:
                        logger.debug(f"Could not remove temporary file {tmp_path}")

        logger.debug(f"Saved index to {self.path}: {index!r}")
