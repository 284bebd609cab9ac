"""Invocation context for remote repository access.

An ArtifactContext bundles what one logical call chain (one build, one
request) needs to talk to the remote store: configuration, credentials, a
factory for remote clients, and the ScopeStack holding that call chain's
cache frames. The context is passed explicitly to every VirtualPath, so two
invocations with separate contexts can never observe each other's frames.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from . import paths
from .base import RemoteListing
from .cache import CacheFrame, PopulationFailure, ScopeStack, populate_frame
from .config import ArtifactConfig, Credentials

if TYPE_CHECKING:
    from .virtual import VirtualPath

logger = logging.getLogger(__name__)

T = TypeVar("T")

ClientFactory = Callable[[ArtifactConfig, Credentials], RemoteListing]


def _default_client_factory(config: ArtifactConfig, credentials: Credentials) -> RemoteListing:
    from .client import ArtifactoryClient

    return ArtifactoryClient.from_config(config, credentials)


class ArtifactContext:
    """Configuration, client factory and cache scopes of one invocation.

    Example:
        >>> ctx = ArtifactContext(ArtifactConfig("https://repo.example", "builds"))
        >>> build = ctx.path("job/42/artifacts")
        >>> build.run(lambda: [p.name for p in build.list()])  # doctest: +SKIP
    """

    def __init__(
        self,
        config: ArtifactConfig,
        credentials: Credentials | None = None,
        client_factory: ClientFactory | None = None,
    ):
        """Initialize an invocation context.

        Args:
            config: Server and repository to address.
            credentials: Authentication material. Defaults to anonymous.
            client_factory: Builds a remote client from config and
                credentials. Defaults to the Artifactory REST client.
        """
        self.config = config
        self.credentials = credentials if credentials is not None else Credentials()
        self._client_factory = client_factory or _default_client_factory
        self.scopes = ScopeStack()

    @property
    def repository(self) -> str:
        return self.config.repository

    def path(self, key: str) -> "VirtualPath":
        """Return a VirtualPath for a repository path."""
        from .virtual import VirtualPath

        return VirtualPath(key, self)

    def root(self) -> "VirtualPath":
        """Return the VirtualPath of the configured prefix."""
        return self.path(self.config.prefix)

    @contextmanager
    def client(self) -> Iterator[RemoteListing]:
        """Build a remote client for one operation and close it afterwards."""
        client = self._client_factory(self.config, self.credentials)
        try:
            yield client
        finally:
            client.close()

    def populate(self, root: str) -> CacheFrame:
        """Build a cache frame for ``root``; never raises.

        If the client itself cannot be built the scope still proceeds, with
        an empty frame recording the failure.
        """
        try:
            with self.client() as client:
                return populate_frame(client, root)
        except Exception as e:
            logger.warning(f"Failed to populate cache for {root or '/'}", exc_info=True)
            return CacheFrame(root, failures=(PopulationFailure(paths.normalize(root), e),))

    @contextmanager
    def scope(self, root: str) -> Iterator[CacheFrame]:
        """Keep a populated cache frame for ``root`` active for the block.

        Example::

            with ctx.scope("job/42/artifacts"):
                for artifact in ctx.path("job/42/artifacts").list():
                    print(artifact.name, artifact.length())
        """
        with self.scopes.scope(root, self.repository, self.populate) as frame:
            yield frame

    def run_scoped(self, root: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call ``fn(*args, **kwargs)`` with a cache scope for ``root`` active.

        The subtree under root is listed once up front; queries made by fn
        on paths under root are served from that listing. Exceptions raised
        by fn propagate unchanged, after the scope has been torn down.
        """
        return self.scopes.run_scoped(root, self.repository, fn, self.populate, *args, **kwargs)
