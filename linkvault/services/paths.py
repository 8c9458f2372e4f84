"""Path canonicalization and ancestor walking for shared link paths.

Canonical paths start with ``/``, never end with one, use single
separators and are compared lower-cased. The root itself is ``""``.
"""

import re

# Control characters and backslashes never appear in a valid path
INVALID_CHARS = re.compile(r"[\x00-\x1f\\]")
MULTIPLE_SLASHES = re.compile(r"/{2,}")


class MalformedPathError(ValueError):
    """Raised when a path cannot be canonicalized."""


def normalize_path(path: str) -> str:
    """Normalize a caller-supplied path, preserving its case.

    Rejects relative paths, ``.``/``..`` segments and control characters.
    """
    if path is None:
        raise MalformedPathError("Path is required")

    cleaned = path.strip()
    if cleaned in ("", "/"):
        return ""
    if not cleaned.startswith("/"):
        raise MalformedPathError(f"Path must be absolute: {path!r}")
    if INVALID_CHARS.search(cleaned):
        raise MalformedPathError(f"Path contains invalid characters: {path!r}")

    cleaned = MULTIPLE_SLASHES.sub("/", cleaned).rstrip("/")
    segments = cleaned.split("/")[1:]
    for segment in segments:
        if segment in (".", "..") or segment != segment.strip():
            raise MalformedPathError(f"Invalid path segment {segment!r} in {path!r}")

    return "/" + "/".join(segments)


def canonical_path(path: str) -> str:
    """Return the lower-cased canonical form used as the lookup key."""
    return normalize_path(path).lower()


def parent_path(path: str) -> str:
    """Return the parent of a canonical path (``""`` for top-level entries)."""
    if not path:
        return ""
    return path.rsplit("/", 1)[0]


def ancestor_paths(path: str) -> list[str]:
    """List strict ancestors of a canonical path, nearest first.

    The root is excluded because it can never carry a link.

    >>> ancestor_paths("/a/b/c")
    ['/a/b', '/a']
    """
    ancestors = []
    current = parent_path(path)
    while current:
        ancestors.append(current)
        current = parent_path(current)
    return ancestors


def lineage(path: str) -> list[str]:
    """The path followed by its ancestors, leaf-first."""
    if not path:
        return []
    return [path, *ancestor_paths(path)]


def join_path(base: str, sub_path: str) -> str:
    """Join a relative or absolute sub-path onto a base path."""
    sub = sub_path.strip()
    if not sub.startswith("/"):
        sub = "/" + sub
    return normalize_path(base + sub)


def basename(path: str) -> str:
    """Last segment of a path (empty for the root)."""
    return path.rsplit("/", 1)[-1] if path else ""
