"""Scoped metadata cache for remote subtrees.

A scope walks a subtree once (populate_frame) and pushes the resulting
CacheFrame onto a ScopeStack. VirtualPath queries consult the stack,
innermost frame first, before going to the remote store. Frames are built
once and never mutated, and are dropped when their scope exits.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, TypeVar

from . import paths
from .base import CachedMetadata, RemoteListing

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PopulationFailure:
    """A directory the populator could not list (or place under its root)."""

    path: str
    error: Exception


@dataclass(frozen=True)
class CacheFrame:
    """Metadata snapshot of the subtree under ``root``.

    Attributes:
        root: Canonical subtree root ("" for the repository root).
        files: Paths relative to ``root`` mapped to their metadata.
            Entries at every depth are relative to the same root.
        failures: Listings that failed while the frame was built.
    """

    root: str
    files: Mapping[str, CachedMetadata] = field(default_factory=dict)
    failures: tuple[PopulationFailure, ...] = ()

    # files is a mapping proxy, which cannot be hashed
    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", paths.normalize(self.root))
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    @property
    def prefix(self) -> str:
        """Separator-terminated root, the string stripped to get relative paths."""
        return paths.prefix(self.root)

    @property
    def complete(self) -> bool:
        """True if every listing in the walk succeeded."""
        return not self.failures

    def relative(self, path: str) -> str | None:
        """Return ``path`` relative to this frame, or None if not covered."""
        if path == self.root:
            return ""
        if path.startswith(self.prefix):
            return path[len(self.prefix) :]
        return None

    def get(self, relative: str) -> CachedMetadata | None:
        return self.files.get(relative)

    def has_descendants(self, relative: str) -> bool:
        """Check if any cached entry lies strictly below ``relative``."""
        if not relative:
            return bool(self.files)
        dir_prefix = relative + paths.SEP
        return any(cached.startswith(dir_prefix) for cached in self.files)

    def children(self, relative: str) -> set[str]:
        """Immediate child names of ``relative`` derived from cached paths."""
        names: set[str] = set()
        for cached in self.files:
            name = paths.first_segment(cached, relative)
            if name:
                names.add(name)
        return names


def populate_frame(client: RemoteListing, root: str) -> CacheFrame:
    """Walk ``root`` depth-first and build a CacheFrame from the listings.

    Issues exactly one ``client.list()`` call per directory under root
    (root included). A failing listing is logged and recorded in the
    frame's ``failures``; the walk continues with the remaining directories
    and the partial frame is returned. Listing entries that are malformed or do
    not lie below the listed directory are skipped and recorded the same way.

    Args:
        client: Remote store to list from.
        root: Subtree root path.

    Returns:
        A frame whose keys are relative to ``root`` at every depth.
    """
    root = paths.normalize(root)
    files: dict[str, CachedMetadata] = {}
    failures: list[PopulationFailure] = []
    seen: set[str] = {root}
    listed = 0

    pending = [root]
    while pending:
        directory = pending.pop()
        try:
            children = client.list(directory)
        except Exception as e:
            logger.warning(f"Failed to populate cache for {directory or '/'}", exc_info=True)
            failures.append(PopulationFailure(directory, e))
            continue
        listed += 1

        subdirs = []
        for info in children:
            child_path = directory
            try:
                child_path = paths.normalize(info.path)
                if not paths.relative_to(child_path, directory):
                    raise ValueError(
                        f"Listing of {directory!r} returned {child_path!r}, not one of its children"
                    )
                relative = paths.relative_to(child_path, root)
                files[relative] = info.metadata()
            except Exception as e:
                logger.warning(f"Skipping listing entry {info!r} under {directory or '/'}: {e}")
                failures.append(PopulationFailure(child_path, e))
                continue
            # A directory reached twice is listed only once
            if info.is_dir and child_path not in seen:
                seen.add(child_path)
                subdirs.append(child_path)

        # Reversed so the next pop() descends into the first child
        pending.extend(reversed(subdirs))

    logger.debug(
        f"Populated cache for {root or '/'}: {len(files)} entries, "
        f"{listed} listings, {len(failures)} failures"
    )
    return CacheFrame(root, files, tuple(failures))


class ScopeStack:
    """Cache frames of one invocation context, stacked per repository.

    The most recently pushed frame is consulted first. A repository's
    entry exists only while it has frames, so an idle stack holds no state.

    A ScopeStack belongs to exactly one logical call chain; it is never
    shared between concurrent invocations, which is why it needs no lock.
    """

    def __init__(self) -> None:
        self._frames: dict[str, list[CacheFrame]] = {}

    def __bool__(self) -> bool:
        return bool(self._frames)

    def __repr__(self) -> str:
        depths = {repo: len(stack) for repo, stack in self._frames.items()}
        return f"ScopeStack({depths})"

    def repositories(self) -> list[str]:
        return list(self._frames)

    def depth(self, repository: str) -> int:
        return len(self._frames.get(repository, ()))

    def frames(self, repository: str) -> Iterator[CacheFrame]:
        """Yield the repository's frames, innermost first."""
        yield from reversed(self._frames.get(repository, ()))

    def covering(self, repository: str, path: str) -> Iterator[tuple[CacheFrame, str]]:
        """Yield (frame, relative path) for each frame covering ``path``, innermost first."""
        path = paths.normalize(path)
        for frame in self.frames(repository):
            relative = frame.relative(path)
            if relative is not None:
                yield frame, relative

    def lookup(self, repository: str, path: str) -> CachedMetadata | None:
        """Return the innermost exact cache entry for ``path``."""
        for frame, relative in self.covering(repository, path):
            metadata = frame.get(relative)
            if metadata is not None:
                return metadata
        return None

    def push(self, repository: str, frame: CacheFrame) -> None:
        self._frames.setdefault(repository, []).append(frame)

    def pop(self, repository: str) -> CacheFrame:
        """Remove the innermost frame; drop the repository entry once empty.

        Raises:
            LookupError: If the repository has no frames.
        """
        stack = self._frames.get(repository)
        if not stack:
            raise LookupError(f"No cache scope active for repository '{repository}'")
        frame = stack.pop()
        if not stack:
            del self._frames[repository]
        return frame

    @contextmanager
    def scope(
        self,
        root: str,
        repository: str,
        populate: Callable[[str], CacheFrame],
    ) -> Iterator[CacheFrame]:
        """Populate a frame for ``root`` and keep it pushed for the block.

        The frame is popped on exit whether the block returns or raises.
        """
        frame = populate(root)
        self.push(repository, frame)
        logger.debug(f"Entered cache scope {repository}:{frame.root or '/'} (depth {self.depth(repository)})")
        try:
            yield frame
        finally:
            self.pop(repository)
            logger.debug(f"Left cache scope {repository}:{frame.root or '/'}")

    def run_scoped(
        self,
        root: str,
        repository: str,
        fn: Callable[..., T],
        populate: Callable[[str], CacheFrame],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Call ``fn(*args, **kwargs)`` inside a cache scope for ``root``.

        Exceptions raised by ``fn`` propagate unchanged.
        """
        with self.scope(root, repository, populate):
            return fn(*args, **kwargs)
