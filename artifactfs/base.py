"""Remote store interface and metadata dataclasses.

Defines the contract a remote artifact store must satisfy (RemoteListing)
and the value types that flow between the store, the cache and VirtualPath.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, BinaryIO, Protocol, runtime_checkable


class RemoteStoreError(OSError):
    """A remote store call failed (transport error, bad status, bad body)."""


@dataclass(frozen=True)
class CachedMetadata:
    """Metadata for a single cached file or directory.

    Attributes:
        size: File size in bytes (0 for directories).
        last_modified: Last modification time in epoch milliseconds.
        is_dir: True if this entry is a directory.
    """

    size: int
    last_modified: int
    is_dir: bool = False


@dataclass(frozen=True)
class FileInfo:
    """Complete information about one remote entry.

    Attributes:
        path: Full repository path of the entry (normalized, no leading or
            trailing slash).
        size: File size in bytes (0 for directories).
        last_modified: Last modification time in epoch milliseconds.
        is_dir: True if this is a directory, False if file.
    """

    path: str
    size: int
    last_modified: int
    is_dir: bool

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def is_file(self) -> bool:
        return not self.is_dir

    def metadata(self) -> CachedMetadata:
        return CachedMetadata(self.size, self.last_modified, self.is_dir)


@runtime_checkable
class RemoteListing(Protocol):
    """Minimal interface for a remote artifact store.

    Every method is a single network round trip. Implementations raise
    RemoteStoreError (or any OSError) on failure; retries and timeouts are
    their own concern.

    ``list()`` must return immediate children only. The cache relies on
    this to walk a subtree with exactly one call per directory.
    """

    def list(self, directory: str) -> list[FileInfo]:
        """List immediate children of a directory."""
        ...

    def is_folder(self, path: str) -> bool:
        """Check if path is a folder."""
        ...

    def is_file(self, path: str) -> bool:
        """Check if path is a file."""
        ...

    def size(self, path: str) -> int:
        """Get file size in bytes."""
        ...

    def last_modified(self, path: str) -> int:
        """Get last modification time in epoch milliseconds."""
        ...

    def download(self, path: str) -> BinaryIO:
        """Open a stream over the file content."""
        ...

    def close(self) -> None:
        """Release connections held by the client."""
        ...

    def __enter__(self) -> Any:
        ...

    def __exit__(self, *args: object) -> None:
        ...
