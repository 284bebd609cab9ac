"""artifactfs: Remote artifact repositories as cached virtual paths."""

from .base import CachedMetadata, FileInfo, RemoteListing, RemoteStoreError
from .cache import CacheFrame, PopulationFailure, ScopeStack, populate_frame
from .client import ArtifactoryClient
from .config import ArtifactConfig, Credentials, connect
from .context import ArtifactContext
from .virtual import VirtualPath

__all__ = [
    "ArtifactConfig",
    "ArtifactContext",
    "ArtifactoryClient",
    "CachedMetadata",
    "CacheFrame",
    "connect",
    "Credentials",
    "FileInfo",
    "populate_frame",
    "PopulationFailure",
    "RemoteListing",
    "RemoteStoreError",
    "ScopeStack",
    "VirtualPath",
]
