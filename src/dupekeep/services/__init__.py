"""
Service layer: filesystem access and persistence of the index.
"""
from .file_service import FileService
from .index_store import PickleIndexStore

__all__ = ["FileService", "PickleIndexStore"]
