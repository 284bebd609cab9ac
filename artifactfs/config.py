"""Configuration for remote repository access.

Provides the configuration and credential dataclasses that an
ArtifactContext uses to build remote clients, plus the connect() factory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class Credentials:
    """Authentication material for the remote store.

    Attributes:
        username: User for HTTP basic auth.
        password: Password (or API key) for HTTP basic auth.
        token: Access token. Takes precedence over username/password.
    """

    username: str | None = None
    password: str | None = field(default=None, repr=False)
    token: str | None = field(default=None, repr=False)

    @classmethod
    def from_env(cls) -> "Credentials":
        """Build credentials from ARTIFACTORY_USER/PASSWORD/TOKEN."""
        return cls(
            username=os.environ.get("ARTIFACTORY_USER"),
            password=os.environ.get("ARTIFACTORY_PASSWORD"),
            token=os.environ.get("ARTIFACTORY_TOKEN"),
        )


@dataclass(frozen=True)
class ArtifactConfig:
    """Where artifacts live.

    Environment variables (used by from_env):
        ARTIFACTORY_URL:        Server base URL. Required.
        ARTIFACTORY_REPOSITORY: Repository name. Required.
        ARTIFACTORY_PREFIX:     Path prefix inside the repository. Default "".
        ARTIFACTORY_TIMEOUT:    Per-request timeout in seconds. Default 30.

    Attributes:
        server_url: Server base URL (e.g., "https://example.jfrog.io/artifactory").
        repository: Repository name; also the key cache frames are stacked under.
        prefix: Path prefix under which this context's artifacts are stored.
        timeout: Per-request timeout in seconds for the remote client.
    """

    server_url: str
    repository: str
    prefix: str = ""
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not self.server_url:
            raise ValueError("Artifact config requires 'server_url'")
        if not self.repository:
            raise ValueError("Artifact config requires 'repository'")
        if self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")

    @classmethod
    def from_env(cls, **overrides: object) -> "ArtifactConfig":
        """Build config from environment variables + explicit overrides."""
        values: dict[str, object] = {
            "server_url": os.environ.get("ARTIFACTORY_URL", ""),
            "repository": os.environ.get("ARTIFACTORY_REPOSITORY", ""),
            "prefix": os.environ.get("ARTIFACTORY_PREFIX", ""),
            "timeout": float(os.environ.get("ARTIFACTORY_TIMEOUT", DEFAULT_TIMEOUT)),
        }
        unknown = set(overrides) - set(values)
        if unknown:
            raise ValueError(f"Unexpected config arguments: {sorted(unknown)}")
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]


def connect(
    server_url: str,
    repository: str,
    **kwargs,
) -> tuple[ArtifactConfig, Credentials]:
    """Configure repository access.

    Args:
        server_url: Server base URL.
        repository: Repository name.
        **kwargs: Optional settings.
            - prefix (str): Path prefix inside the repository.
            - timeout (float): Per-request timeout in seconds.
            - username, password, token (str): Credentials.

    Returns:
        The (config, credentials) pair for an ArtifactContext.

    Examples:
        >>> config, creds = connect("https://repo.example", "builds", token="t")
        >>> config.repository
        'builds'
    """
    prefix = kwargs.pop("prefix", "")
    timeout = kwargs.pop("timeout", DEFAULT_TIMEOUT)
    username = kwargs.pop("username", None)
    password = kwargs.pop("password", None)
    token = kwargs.pop("token", None)

    if kwargs:
        raise ValueError(f"Unexpected arguments for connect: {list(kwargs.keys())}")

    config = ArtifactConfig(
        server_url=server_url, repository=repository, prefix=prefix, timeout=timeout
    )
    return config, Credentials(username=username, password=password, token=token)
