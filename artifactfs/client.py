"""Artifactory storage API client.

Implements RemoteListing over HTTP with a requests.Session. Each method is
one request; there is no caching and no retry here.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, BinaryIO

import requests

from . import paths
from .base import FileInfo, RemoteStoreError
from .config import DEFAULT_TIMEOUT, ArtifactConfig, Credentials

logger = logging.getLogger(__name__)

USER_AGENT = "artifactfs/0.1.0"


def parse_timestamp(value: str | None) -> int:
    """Convert an Artifactory ISO-8601 timestamp to epoch milliseconds.

    Example:
        >>> parse_timestamp("1970-01-01T00:00:01.500Z")
        1500
    """
    if not value:
        return 0
    # Artifactory emits "+0000" offsets and a "Z" suffix; fromisoformat wants "+00:00"
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    elif len(value) > 5 and value[-5] in "+-" and value[-3] != ":":
        value = f"{value[:-2]}:{value[-2:]}"
    try:
        return int(datetime.fromisoformat(value).timestamp() * 1000)
    except ValueError:
        raise RemoteStoreError(f"Malformed timestamp: {value!r}") from None


class ArtifactoryClient:
    """Remote store backed by the Artifactory storage REST API.

    Example:
        >>> with ArtifactoryClient("https://repo.example/artifactory", "builds") as client:
        ...     names = [info.name for info in client.list("job/42/artifacts")]  # doctest: +SKIP
    """

    def __init__(
        self,
        server_url: str,
        repository: str,
        credentials: Credentials | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.server_url = server_url.rstrip("/")
        self.repository = repository
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers["User-Agent"] = USER_AGENT

        credentials = credentials or Credentials()
        if credentials.token:
            self._session.headers["Authorization"] = f"Bearer {credentials.token}"
        elif credentials.username:
            self._session.auth = (credentials.username, credentials.password or "")

    @classmethod
    def from_config(
        cls, config: ArtifactConfig, credentials: Credentials | None = None
    ) -> "ArtifactoryClient":
        return cls(config.server_url, config.repository, credentials, timeout=config.timeout)

    def __enter__(self) -> "ArtifactoryClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    def _storage_url(self, path: str) -> str:
        return paths.to_url(self.server_url, f"api/storage/{self.repository}", path)

    def _get(self, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self._session.get(url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise RemoteStoreError(f"GET {url} failed: {e}") from e
        return response

    def _json(self, url: str, **kwargs: Any) -> dict[str, Any]:
        response = self._get(url, **kwargs)
        try:
            body = response.json()
        except ValueError as e:
            raise RemoteStoreError(f"GET {url} returned invalid JSON") from e
        if not isinstance(body, dict):
            raise RemoteStoreError(f"GET {url} returned {type(body).__name__}, expected an object")
        return body

    def _info(self, path: str) -> dict[str, Any] | None:
        """Fetch the storage info of a path, or None if it does not exist."""
        url = self._storage_url(path)
        try:
            return self._json(url)
        except RemoteStoreError as e:
            cause = e.__cause__
            if isinstance(cause, requests.exceptions.HTTPError) and cause.response is not None:
                if cause.response.status_code == 404:
                    return None
            raise

    def _require_info(self, path: str) -> dict[str, Any]:
        info = self._info(path)
        if info is None:
            raise FileNotFoundError(f"No such artifact: '{path}'")
        return info

    # -------------------------------------------------------------------------
    # RemoteListing
    # -------------------------------------------------------------------------

    def list(self, directory: str) -> list[FileInfo]:
        """List immediate children of a directory (files and folders)."""
        directory = paths.normalize(directory)
        url = self._storage_url(directory)
        body = self._json(url, params="list&deep=0&listFolders=1")
        children = []
        for entry in body.get("files", []):
            try:
                is_dir = bool(entry.get("folder", False))
                children.append(
                    FileInfo(
                        path=paths.join(directory, entry["uri"]),
                        size=0 if is_dir else int(entry.get("size", 0) or 0),
                        last_modified=parse_timestamp(entry.get("lastModified")),
                        is_dir=is_dir,
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                raise RemoteStoreError(f"Malformed listing entry under {directory!r}: {entry!r}") from e
        logger.debug(f"Listed {len(children)} children of {directory or '/'}")
        return children

    def is_folder(self, path: str) -> bool:
        info = self._info(path)
        return info is not None and "children" in info

    def is_file(self, path: str) -> bool:
        info = self._info(path)
        return info is not None and "children" not in info

    def size(self, path: str) -> int:
        info = self._require_info(path)
        try:
            return int(info.get("size", 0) or 0)
        except (TypeError, ValueError) as e:
            raise RemoteStoreError(f"Malformed size for {path!r}: {info.get('size')!r}") from e

    def last_modified(self, path: str) -> int:
        info = self._require_info(path)
        return parse_timestamp(info.get("lastModified"))

    def download(self, path: str) -> BinaryIO:
        """Open a streamed download of a file.

        The returned stream stays readable after the client is closed.
        """
        url = paths.to_url(self.server_url, self.repository, path)
        response = self._get(url, stream=True)
        response.raw.decode_content = True
        return response.raw
