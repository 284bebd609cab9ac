"""Path-name and URI helpers for repository paths.

All repository paths are held in a canonical form: segments separated by a
single "/", no leading or trailing separator, and "" for the repository
root. Hierarchy checks compare whole segments, never raw substrings, so
"a/bc" is not considered to live under "a/b".
"""

from __future__ import annotations

from urllib.parse import quote

SEP = "/"

# Last segment of the browse-only "special view" paths a host may expose.
VIEW_MARKER = "*view*"


def normalize(path: str) -> str:
    """Normalize a repository path to canonical form.

    Args:
        path: Path such as "/repo//build-1/./a.txt/".

    Returns:
        Canonical path (e.g., "repo/build-1/a.txt").
    """
    return SEP.join(part for part in path.split(SEP) if part and part != ".")


def split(path: str) -> list[str]:
    path = normalize(path)
    return path.split(SEP) if path else []


def join(*parts: str) -> str:
    """Join path fragments and normalize the result."""
    return normalize(SEP.join(parts))


def prefix(root: str) -> str:
    """Return the separator-terminated form of a canonical root."""
    return root + SEP if root else ""


def relative_to(path: str, root: str) -> str | None:
    """Return ``path`` relative to ``root``.

    Both arguments must already be canonical.

    Returns:
        "" when path equals root, the remainder when path lies under root,
        None when it does not.
    """
    if path == root:
        return ""
    root_prefix = prefix(root)
    if path.startswith(root_prefix):
        return path[len(root_prefix) :]
    return None


def first_segment(relative: str, directory: str) -> str | None:
    """Return the immediate child of ``directory`` on the way to ``relative``.

    Example:
        >>> first_segment("b/c/d.txt", "b")
        'c'
        >>> first_segment("b", "b") is None
        True
    """
    remainder = relative_to(relative, directory)
    if not remainder:
        return None
    return remainder.split(SEP, 1)[0]


def basename(path: str) -> str:
    """Return the last segment of a path ("" for the root)."""
    return normalize(path).rpartition(SEP)[2]


def parent(path: str) -> str:
    """Drop the last segment (the root is its own parent)."""
    return normalize(path).rpartition(SEP)[0]


def child(path: str, name: str) -> str:
    return join(path, name)


def is_view_marker(path: str) -> bool:
    """Check if a path addresses the special browse view (neither file nor dir)."""
    parts = split(path)
    return bool(parts) and parts[-1] == VIEW_MARKER


def to_url(server_url: str, repository: str, path: str) -> str:
    """Build the external download URL of a repository path."""
    base = server_url.rstrip(SEP)
    location = quote(join(repository, path), safe="/")
    return f"{base}/{location}"
