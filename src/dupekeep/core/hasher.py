"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

hasher.py
Implements full-content file hashing using pluggable hash algorithms.

Files are streamed in fixed-size chunks so memory use does not grow with file size.
Read failures propagate as OSError: a file that could not be read has no digest,
it never receives a placeholder that could match another file.
"""

import xxhash
from dupekeep.core.models import FileRecord
from dupekeep.core.interfaces import Hasher, HashAlgorithm

READ_CHUNK_SIZE = 1024 * 1024


# Use the same way to implement and use any other hashing algorithm
class XXHashAlgorithmImpl(HashAlgorithm):
    def new(self):
        return xxhash.xxh64()

    def hash(self, data: bytes) -> bytes:
        return xxhash.xxh64(data).digest()


class HasherImpl(Hasher):
    """
    A hasher implementation that supports any algorithm via the HashAlgorithm interface.
    """

    def __init__(self, algorithm: HashAlgorithm = None, chunk_size: int = READ_CHUNK_SIZE):
        self.algorithm = algorithm or XXHashAlgorithmImpl()
        self.chunk_size = chunk_size

    def compute_full_hash(self, record: FileRecord) -> bytes:
        """Reads the whole file and returns its digest. Raises OSError on read failure."""
        state = self.algorithm.new()
        with open(record.path, 'rb') as f:
            while True:
                data = f.read(self.chunk_size)
                if not data:
                    break
                state.update(data)
        return state.digest()
