"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

utils/convert_utils.py
"""
import time


class ConvertUtils:
    @staticmethod
    def bytes_to_human(size_bytes: int) -> str:
        """
        Convert bytes to human-readable string (e.g., 1.5KB, 3.2MB).
        """
        if size_bytes < 0:
            return "0B"

        units = ["B", "KB", "MB", "GB", "TB", "PB"]
        for unit in units:
            if size_bytes < 1024:
                return f"{size_bytes:.2f}{unit}"
            size_bytes /= 1024
        return f"{size_bytes:.2f}EB"

    @staticmethod
    def ns_to_human(timestamp_ns: int, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
        """
        Convert a nanosecond Unix timestamp (as stored on file records) to local time.
        """
        try:
            return time.strftime(fmt, time.localtime(timestamp_ns / 1_000_000_000))
        except (OverflowError, OSError, ValueError):
            return "Invalid timestamp"

    @staticmethod
    def digest_to_hex(digest: bytes, length: int = 16) -> str:
        """Short hexadecimal form of a content digest for console output."""
        return digest.hex()[:length]
