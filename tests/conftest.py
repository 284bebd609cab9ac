"""Shared fixtures over an in-memory remote store."""

import pytest

from artifactfs import ArtifactConfig, ArtifactContext
from fakes import FakeRemote


@pytest.fixture
def remote():
    """The build tree {a.txt: 10 bytes, b/c.txt: 20 bytes} under repo/build-1."""
    return FakeRemote(
        {
            "repo/build-1/a.txt": b"a" * 10,
            "repo/build-1/b/c.txt": b"c" * 20,
        }
    )


@pytest.fixture
def config():
    return ArtifactConfig("https://repo.example/artifactory", "builds")


@pytest.fixture
def context(config, remote):
    return ArtifactContext(config, client_factory=lambda cfg, creds: remote)
