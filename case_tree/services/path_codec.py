"""
Materialized path helpers.

Every folder stores ``path`` = parent path + "/" + name (root folders:
"/" + name) and ``level`` = parent level + 1 (root folders: 0). These
pure functions are the only place that builds or rewrites paths.
"""

from typing import Optional

from ..exceptions import InvalidNameError, PrefixMismatchError

PATH_SEPARATOR = "/"

# Matches the width of the name columns
MAX_NAME_LENGTH = 255


def normalize_name(name: str) -> str:
    """
    Validate a folder name and return it stripped of surrounding whitespace.

    Raises:
        InvalidNameError: If the name is empty or blank, too long, or contains
            the path separator.
    """
    if not isinstance(name, str):
        raise InvalidNameError(name, "name must be a string")
    stripped = name.strip()
    if not stripped:
        raise InvalidNameError(name, "name must not be empty")
    if PATH_SEPARATOR in stripped:
        raise InvalidNameError(name, f"name must not contain {PATH_SEPARATOR!r}")
    if len(stripped) > MAX_NAME_LENGTH:
        raise InvalidNameError(name, f"name must be at most {MAX_NAME_LENGTH} characters")
    return stripped


def compute_child_path(parent_path: Optional[str], name: str) -> str:
    """Path of a child called ``name`` under ``parent_path`` (None for the project root)."""
    name = normalize_name(name)
    if parent_path is None:
        return PATH_SEPARATOR + name
    return parent_path + PATH_SEPARATOR + name


def compute_child_level(parent_level: Optional[int]) -> int:
    """Level of a child under a parent at ``parent_level`` (None for the project root)."""
    if parent_level is None:
        return 0
    return parent_level + 1


def descendant_prefix(path: str) -> str:
    """Prefix shared by every descendant path of ``path``."""
    return path + PATH_SEPARATOR


def is_descendant_path(path: str, ancestor_path: str) -> bool:
    return path.startswith(descendant_prefix(ancestor_path))


def rewrite_prefix(path: str, old_prefix: str, new_prefix: str) -> str:
    """
    Move ``path`` from under ``old_prefix`` to under ``new_prefix``.

    The relative sub-path below the prefix is kept as is.

    Raises:
        PrefixMismatchError: If ``path`` is not a descendant of ``old_prefix``.
            This means the stored tree is inconsistent.
    """
    if not is_descendant_path(path, old_prefix):
        raise PrefixMismatchError(path, old_prefix)
    return new_prefix + path[len(old_prefix):]


def ancestor_paths(path: str) -> list[str]:
    """
    Paths of every proper ancestor of ``path``, root first.

    "/A/B/C" -> ["/A", "/A/B"]
    """
    segments = path.split(PATH_SEPARATOR)[1:]
    return [
        PATH_SEPARATOR + PATH_SEPARATOR.join(segments[:i])
        for i in range(1, len(segments))
    ]
