"""Path objects over a remote artifact repository.

VirtualPath answers existence, type, size and listing queries. Each query
is resolved, in order, from:

1. the FileInfo the path was created with (from an earlier listing),
2. the cache frames active in its ArtifactContext, innermost first,
3. a single call to the remote store.

Remote failures during a query are logged and turned into a safe default
(False, 0, []). Only open() raises, since callers must never receive empty
content in place of a file.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, BinaryIO, TypeVar

from . import paths
from .base import CachedMetadata, FileInfo

if TYPE_CHECKING:
    from .cache import CacheFrame
    from .context import ArtifactContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


class VirtualPath:
    """An immutable path in a remote repository.

    Attributes:
        key: Canonical repository path ("" for the repository root).
        context: Invocation context supplying config, clients and cache scopes.
        file_info: Metadata already known from a listing, if any.
    """

    __slots__ = ("key", "context", "file_info")

    def __init__(
        self,
        key: str,
        context: "ArtifactContext",
        file_info: FileInfo | None = None,
    ):
        self.key = paths.normalize(key)
        self.context = context
        self.file_info = file_info

    @classmethod
    def from_info(cls, file_info: FileInfo, context: "ArtifactContext") -> "VirtualPath":
        return cls(file_info.path, context, file_info)

    def __repr__(self) -> str:
        return f"VirtualPath({self.key!r}, repository={self.context.repository!r})"

    def __str__(self) -> str:
        return self.key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VirtualPath):
            return NotImplemented
        return self.key == other.key and self.context.repository == other.context.repository

    def __hash__(self) -> int:
        return hash((self.key, self.context.repository))

    def __truediv__(self, name: str) -> "VirtualPath":
        return self.child(name)

    # -------------------------------------------------------------------------
    # Names
    # -------------------------------------------------------------------------

    @property
    def name(self) -> str:
        return paths.basename(self.key)

    @property
    def parent(self) -> "VirtualPath":
        return VirtualPath(paths.parent(self.key), self.context)

    def child(self, name: str) -> "VirtualPath":
        return VirtualPath(paths.child(self.key, name), self.context)

    def to_uri(self) -> str:
        """Return the download URL of this path."""
        config = self.context.config
        return paths.to_url(config.server_url, config.repository, self.key)

    def to_external_url(self) -> str:
        """Return a URL a browser or another tool can fetch directly."""
        return self.to_uri()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _cached(self) -> CachedMetadata | None:
        return self.context.scopes.lookup(self.context.repository, self.key)

    def is_dir(self) -> bool:
        """Check if this path is a directory.

        A path with no entry of its own is a directory when a cached entry
        lives below it. Absence from the cache proves nothing, so an
        unresolved path is checked against the remote store.
        """
        if self.file_info is not None:
            return self.file_info.is_dir
        if paths.is_view_marker(self.key):
            return False

        for frame, relative in self.context.scopes.covering(self.context.repository, self.key):
            metadata = frame.get(relative)
            if metadata is not None:
                return metadata.is_dir
            if frame.has_descendants(relative):
                return True

        try:
            with self.context.client() as client:
                return client.is_folder(self.key)
        except Exception:
            logger.warning(f"Failed to check if {self.key} is a directory", exc_info=True)
            return False

    def is_file(self) -> bool:
        """Check if this path is a file.

        A cached entry answers directly; so do cached descendants, since a
        path with children is a directory.
        """
        if self.file_info is not None:
            return self.file_info.is_file
        if paths.is_view_marker(self.key):
            return False

        for frame, relative in self.context.scopes.covering(self.context.repository, self.key):
            metadata = frame.get(relative)
            if metadata is not None:
                return not metadata.is_dir
            if frame.has_descendants(relative):
                return False

        try:
            with self.context.client() as client:
                return client.is_file(self.key)
        except Exception:
            logger.warning(f"Failed to check if {self.key} is a file", exc_info=True)
            return False

    def exists(self) -> bool:
        return self.is_dir() or self.is_file()

    def can_read(self) -> bool:
        return True

    def length(self) -> int:
        """Return the file size in bytes (0 if unknown)."""
        if self.file_info is not None:
            return self.file_info.size

        metadata = self._cached()
        if metadata is not None:
            return metadata.size

        try:
            with self.context.client() as client:
                return client.size(self.key)
        except Exception:
            logger.warning(f"Failed to get size of {self.key}", exc_info=True)
            return 0

    def last_modified(self) -> int:
        """Return the last modification time in epoch milliseconds (0 if unknown)."""
        if self.file_info is not None:
            return self.file_info.last_modified

        metadata = self._cached()
        if metadata is not None:
            return metadata.last_modified

        try:
            with self.context.client() as client:
                return client.last_modified(self.key)
        except Exception:
            logger.warning(f"Failed to get last modified time of {self.key}", exc_info=True)
            return 0

    def list(self) -> list["VirtualPath"]:
        """List immediate children, sorted by name.

        Served by the innermost frame covering this path when that frame
        holds children for it, or when the frame is complete (then an empty
        result is authoritative). Otherwise one remote listing is made.
        """
        for frame, relative in self.context.scopes.covering(self.context.repository, self.key):
            names = frame.children(relative)
            if not names and not frame.complete:
                continue
            return [self._cached_child(frame, relative, name) for name in sorted(names)]

        try:
            with self.context.client() as client:
                children = client.list(self.key)
        except Exception:
            logger.warning(f"Failed to list files from prefix {self.key or '/'}", exc_info=True)
            return []
        children = sorted(children, key=lambda info: info.path)
        return [VirtualPath.from_info(info, self.context) for info in children]

    def _cached_child(self, frame: "CacheFrame", relative: str, name: str) -> "VirtualPath":
        key = paths.child(self.key, name)
        metadata = frame.get(paths.join(relative, name))
        if metadata is None:
            return VirtualPath(key, self.context)
        info = FileInfo(key, metadata.size, metadata.last_modified, metadata.is_dir)
        return VirtualPath(key, self.context, info)

    def open(self) -> BinaryIO:
        """Open the file content for reading.

        Content is never cached; every call downloads from the remote store.

        Raises:
            FileNotFoundError: If this path is a directory or not a file.
            OSError: If the download fails.
        """
        logger.debug(f"Opening {self.key}...")
        if self.is_dir():
            raise FileNotFoundError(f"Cannot open {self.key}: it is a directory")
        if not self.is_file():
            raise FileNotFoundError(f"Cannot open {self.key}: it is not a file")

        try:
            with self.context.client() as client:
                return client.download(self.key)
        except Exception as e:
            logger.warning(f"Failed to open {self.key}", exc_info=True)
            raise OSError(f"Failed to open {self.key}: {e}") from e

    def read_bytes(self) -> bytes:
        with self.open() as stream:
            return stream.read()

    # -------------------------------------------------------------------------
    # Scoped execution
    # -------------------------------------------------------------------------

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call ``fn`` with a cache scope for this path's subtree active."""
        return self.context.run_scoped(self.key, fn, *args, **kwargs)
