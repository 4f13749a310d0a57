"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/file_service.py
Cross-platform filesystem operations used by the pipeline.
Stats never follow symbolic links; removal either unlinks or moves to the system trash.
"""
import os
import logging
from typing import Callable, Iterator, List, Optional
from send2trash import send2trash

from dupekeep.core.interfaces import FileSystem, WalkEntry
from dupekeep.core.models import FileKind, FileStat

logger = logging.getLogger(__name__)


class FileService(FileSystem):
    """
    Filesystem collaborator backed by os.lstat / os.scandir.
    With use_trash=True, remove() moves files to the system trash (via send2trash).
    """

    def __init__(self, use_trash: bool = False):
        self.use_trash = use_trash

    def stat(self, path: str) -> FileStat:
        return FileStat.from_stat_result(os.lstat(path))

    def exists(self, path: str) -> bool:
        try:
            os.lstat(path)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            # Present but not inspectable: treat as still there
            logger.debug(f"Could not stat {path}: {e}")
            return True

    def remove(self, path: str) -> None:
        if self.use_trash:
            self.move_to_trash(path)
        else:
            os.remove(path)

    @staticmethod
    def move_to_trash(file_path: str) -> None:
        """Moves a file to the system trash."""
        if not os.path.lexists(file_path):
            raise FileNotFoundError(f"File not found: {file_path}")

        try:
            send2trash(file_path)
        except OSError:
            raise
        except Exception as e:
            raise OSError(f"Failed to move to trash: {e}") from e

    def walk(self, root: str, prune: Optional[Callable[[str], bool]] = None) -> Iterator[WalkEntry]:
        try:
            root_stat = self.stat(root)
        except OSError as e:
            yield WalkEntry(root, None, e)
            return

        if root_stat.kind is not FileKind.DIRECTORY:
            yield WalkEntry(root, root_stat, None)
            return

        pending: List[str] = [root]
        while pending:
            directory = pending.pop()
            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as e:
                yield WalkEntry(directory, None, e)
                continue

            subdirs = []
            for entry in entries:
                try:
                    info = FileStat.from_stat_result(entry.stat(follow_symlinks=False))
                except OSError as e:
                    yield WalkEntry(entry.path, None, e)
                    continue

                if info.kind is FileKind.DIRECTORY:
                    if prune and prune(entry.path):
                        logger.debug(f"Skipping excluded directory: {entry.path}")
                        continue
                    subdirs.append(entry.path)
                yield WalkEntry(entry.path, info, None)

            # Depth-first, in name order
            pending.extend(reversed(subdirs))
