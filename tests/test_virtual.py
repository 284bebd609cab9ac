"""Tests for VirtualPath outside any cache scope (live remote calls)."""

import logging

import pytest

from artifactfs import ArtifactContext, FileInfo, VirtualPath

from fakes import MTIME


class TestNames:
    def test_key_is_normalized(self, context):
        assert context.path("/repo//build-1/").key == "repo/build-1"

    def test_name(self, context):
        assert context.path("repo/build-1/a.txt").name == "a.txt"
        assert context.path("repo/build-1/").name == "build-1"

    def test_parent_and_child(self, context):
        path = context.path("repo/build-1/b/c.txt")
        assert path.parent.key == "repo/build-1/b"
        assert path.parent.child("c.txt") == path
        assert (context.path("repo") / "build-1" / "a.txt").key == "repo/build-1/a.txt"

    def test_parent_drops_file_info(self, context):
        info = FileInfo("repo/build-1/a.txt", 10, MTIME, False)
        path = VirtualPath.from_info(info, context)
        assert path.parent.file_info is None

    def test_to_uri(self, context):
        path = context.path("repo/build-1/a.txt")
        assert path.to_uri() == "https://repo.example/artifactory/builds/repo/build-1/a.txt"
        assert path.to_external_url() == path.to_uri()

    def test_names_make_no_remote_calls(self, context, remote):
        path = context.path("repo/build-1/b/c.txt")
        path.name, path.parent, path.child("x"), path.to_uri()
        assert remote.remote_calls == 0

    def test_equality_includes_repository(self, context, remote, config):
        other = ArtifactContext(
            config.__class__(config.server_url, "releases"),
            client_factory=lambda cfg, creds: remote,
        )
        assert context.path("a") == context.path("a/")
        assert context.path("a") != other.path("a")
        assert len({context.path("a"), context.path("a"), other.path("a")}) == 2

    def test_root_uses_configured_prefix(self, remote):
        from artifactfs import ArtifactConfig

        ctx = ArtifactContext(
            ArtifactConfig("https://repo.example", "builds", prefix="repo/build-1/"),
            client_factory=lambda cfg, creds: remote,
        )
        assert ctx.root().key == "repo/build-1"


class TestRemoteFallback:
    """Without a scope every query is exactly one remote call."""

    def test_is_dir(self, context, remote):
        assert context.path("repo/build-1/b").is_dir()
        assert not context.path("repo/build-1/a.txt").is_dir()
        assert remote.calls["is_folder"] == 2

    def test_is_file(self, context, remote):
        assert context.path("repo/build-1/a.txt").is_file()
        assert not context.path("repo/build-1/b").is_file()
        assert remote.calls["is_file"] == 2

    def test_exists(self, context):
        assert context.path("repo/build-1/a.txt").exists()
        assert context.path("repo/build-1/b").exists()
        assert not context.path("repo/build-1/missing").exists()

    def test_length_and_last_modified(self, context, remote):
        remote.mtimes["repo/build-1/b/c.txt"] = 42
        path = context.path("repo/build-1/b/c.txt")
        assert path.length() == 20
        assert path.last_modified() == 42
        assert remote.calls["size"] == 1
        assert remote.calls["last_modified"] == 1

    def test_list_wraps_children_with_file_info(self, context, remote):
        children = context.path("repo/build-1").list()

        assert [c.name for c in children] == ["a.txt", "b"]
        assert remote.calls["list"] == 1
        assert all(c.file_info is not None for c in children)

        # Metadata from the listing answers follow-up queries for free
        a, b = children
        assert a.is_file() and a.length() == 10
        assert b.is_dir() and not b.is_file()
        assert remote.remote_calls == 1

    def test_client_is_closed_after_each_query(self, context, remote):
        path = context.path("repo/build-1/a.txt")
        path.is_file()
        path.length()
        assert remote.closed == 2


class TestFailureDefaults:
    @pytest.fixture
    def broken(self, remote):
        remote.fail_on.update({"repo/build-1", "repo/build-1/a.txt"})
        return remote

    def test_is_dir_defaults_to_false(self, context, broken, caplog):
        with caplog.at_level(logging.WARNING, logger="artifactfs.virtual"):
            assert context.path("repo/build-1").is_dir() is False
        assert "Failed to check if repo/build-1 is a directory" in caplog.text

    def test_is_file_defaults_to_false(self, context, broken):
        assert context.path("repo/build-1/a.txt").is_file() is False

    def test_length_defaults_to_zero(self, context, broken, caplog):
        with caplog.at_level(logging.WARNING, logger="artifactfs.virtual"):
            assert context.path("repo/build-1/a.txt").length() == 0
        assert "Failed to get size of repo/build-1/a.txt" in caplog.text

    def test_last_modified_defaults_to_zero(self, context, broken):
        assert context.path("repo/build-1/a.txt").last_modified() == 0

    def test_list_defaults_to_empty(self, context, broken, caplog):
        with caplog.at_level(logging.WARNING, logger="artifactfs.virtual"):
            assert context.path("repo/build-1").list() == []
        assert "Failed to list files from prefix repo/build-1" in caplog.text

    def test_client_factory_failure_degrades(self, config, caplog):
        def factory(cfg, creds):
            raise ConnectionError("no route to host")

        ctx = ArtifactContext(config, client_factory=factory)
        with caplog.at_level(logging.WARNING):
            assert ctx.path("x").is_file() is False
            assert ctx.path("x").length() == 0


class TestKnownFileInfo:
    def test_short_circuits_every_query(self, context, remote):
        info = FileInfo("repo/build-1/ghost.bin", 99, 1234, False)
        path = VirtualPath.from_info(info, context)

        assert path.is_file()
        assert not path.is_dir()
        assert path.exists()
        assert path.length() == 99
        assert path.last_modified() == 1234
        assert remote.remote_calls == 0

    def test_directory_info(self, context, remote):
        path = VirtualPath.from_info(FileInfo("repo/build-1/b", 0, 0, True), context)
        assert path.is_dir()
        assert not path.is_file()
        assert remote.remote_calls == 0


class TestViewMarker:
    def test_neither_file_nor_directory(self, context, remote):
        path = context.path("repo/build-1/*view*/")
        assert not path.is_dir()
        assert not path.is_file()
        assert not path.exists()
        assert remote.remote_calls == 0


class TestOpen:
    def test_reads_content(self, context):
        with context.path("repo/build-1/a.txt").open() as stream:
            assert stream.read() == b"a" * 10

    def test_read_bytes(self, context):
        assert context.path("repo/build-1/b/c.txt").read_bytes() == b"c" * 20

    def test_directory_raises_not_found(self, context, remote):
        with pytest.raises(FileNotFoundError, match="directory"):
            context.path("repo/build-1/b").open()
        assert remote.calls["download"] == 0

    def test_missing_raises_not_found(self, context, remote):
        with pytest.raises(FileNotFoundError, match="not a file"):
            context.path("repo/build-1/missing.txt").open()
        assert remote.calls["download"] == 0

    def test_download_failure_propagates_as_os_error(self, context, remote):
        class FailingDownload(type(remote)):
            def download(self, path):
                raise ConnectionResetError("connection reset")

        failing = FailingDownload(remote.files)
        ctx = ArtifactContext(context.config, client_factory=lambda cfg, creds: failing)

        with pytest.raises(OSError, match="Failed to open repo/build-1/a.txt") as excinfo:
            ctx.path("repo/build-1/a.txt").open()
        assert not isinstance(excinfo.value, FileNotFoundError)
        assert isinstance(excinfo.value.__cause__, ConnectionResetError)

    def test_content_is_never_cached(self, context, remote):
        path = context.path("repo/build-1/a.txt")
        context.run_scoped("repo/build-1", lambda: [path.read_bytes(), path.read_bytes()])
        assert remote.calls["download"] == 2

    def test_can_read(self, context):
        assert context.path("anything").can_read()
