"""
Filesystem resolution.

Maps a RequestPath onto the served root directory and classifies what is
there: a directory (with its entries read), a file (with its metadata) or
nothing usable.
"""

import datetime
import logging
import os
import stat
from typing import Iterable, List, NamedTuple, Optional, Union

from .request import RequestPath


logger = logging.getLogger("FileBrowser.resolver")


class DirectoryEntry(NamedTuple):
    name: str
    is_dir: bool
    size: int
    modified: float


class Directory(NamedTuple):
    request_path: RequestPath
    path: str
    entries: List[DirectoryEntry]


class File(NamedTuple):
    request_path: RequestPath
    path: str
    name: str
    size: int
    # None when the modification time cannot be shown as a local date
    modified: Optional[float]


class Missing(NamedTuple):
    request_path: RequestPath


ResolvedTarget = Union[Directory, File, Missing]


def sort_entries(entries: Iterable[DirectoryEntry]) -> List[DirectoryEntry]:
    """Directories first, then files, each group ascending by name."""
    return sorted(entries, key=lambda entry: (not entry.is_dir, entry.name))


def displayable_mtime(timestamp: float) -> Optional[float]:
    """
    Return the timestamp if it converts to a local date, else None.

    Filesystems happily store times far outside what datetime can represent
    (year 36812 on tmpfs, for example).
    """
    try:
        datetime.datetime.fromtimestamp(timestamp)
    except (ValueError, OverflowError, OSError):
        return None
    return timestamp


class FileSystemResolver:
    """
    Read-only view of a root directory.

    The root is fixed at construction and never changes afterwards, so one
    resolver can be shared by every connection thread.
    """

    def __init__(self, root: str):
        """
        Args:
            root: Directory to expose; made absolute and normalized
        """
        self.root = os.path.abspath(root)

    def absolute_path(self, request_path: RequestPath) -> str:
        """Join a request path beneath the root and normalize it."""
        return os.path.normpath(os.path.join(self.root, *request_path.segments))

    def is_within_root(self, path: str) -> bool:
        try:
            return os.path.commonpath([self.root, path]) == self.root
        except ValueError:
            # different drives, or a mix of absolute and relative paths
            return False

    def resolve(self, request_path: RequestPath) -> ResolvedTarget:
        """
        Classify the target of a request.

        Args:
            request_path: Decoded request path

        Returns:
            Directory, File or Missing
        """
        full_path = self.absolute_path(request_path)

        if not self.is_within_root(full_path):
            logger.warning(f"Refusing path outside root: {full_path}")
            return Missing(request_path)

        try:
            metadata = os.stat(full_path)
        except (OSError, ValueError) as e:
            logger.info(f"Not found: {full_path} ({e})")
            return Missing(request_path)

        if stat.S_ISDIR(metadata.st_mode):
            try:
                entries = self.list_directory(full_path)
            except OSError as e:
                logger.warning(f"Cannot read directory {full_path}: {e}")
                return Missing(request_path)
            return Directory(request_path, full_path, entries)

        modified = displayable_mtime(metadata.st_mtime)
        if modified is None:
            logger.warning(f"Unrepresentable modification time for {full_path}: {metadata.st_mtime}")

        name = request_path.name or os.path.basename(full_path)
        return File(request_path, full_path, name, metadata.st_size, modified)

    def list_directory(self, path: str) -> List[DirectoryEntry]:
        """
        Read the immediate children of a directory.

        Entries whose metadata cannot be read (broken symlinks, permission
        problems, entries removed mid-listing, modification times outside
        the representable range) are skipped.

        Args:
            path: Absolute directory path

        Returns:
            Sorted list of entries

        Raises:
            OSError: If the directory itself cannot be opened
        """
        entries = []
        with os.scandir(path) as it:
            for dir_entry in it:
                try:
                    metadata = dir_entry.stat()
                except OSError as e:
                    logger.warning(f"Skipping entry {dir_entry.path}: {e}")
                    continue

                modified = displayable_mtime(metadata.st_mtime)
                if modified is None:
                    logger.warning(
                        f"Skipping entry {dir_entry.path}: "
                        f"unrepresentable modification time {metadata.st_mtime}"
                    )
                    continue

                entries.append(DirectoryEntry(
                    name=dir_entry.name,
                    is_dir=stat.S_ISDIR(metadata.st_mode),
                    size=metadata.st_size,
                    modified=modified,
                ))

        return sort_entries(entries)
