from __future__ import annotations

import logging
import os
from typing import Any

from .errors import InvalidInputError, PathTraversalError

logger = logging.getLogger(__name__)


def _normalize(path: str) -> str:
    # Windows-style separators in project data must not survive as literal
    # filename characters on POSIX hosts.
    if os.sep == "/":
        path = path.replace("\\", "/")
    return os.path.normpath(path)


def is_within_root(path: str, workspace_root: str) -> bool:
    """True when `path` equals the root or sits below it on a separator boundary."""
    path_c = os.path.normcase(path)
    root_c = os.path.normcase(workspace_root)
    if path_c == root_c:
        return True
    prefix = root_c if root_c.endswith(os.sep) else root_c + os.sep
    return path_c.startswith(prefix)


def sanitize_path(candidate: Any, workspace_root: Any) -> str:
    """
    Resolve `candidate` against `workspace_root` and confine it to that root.

    Works on strings only; the filesystem is never consulted. Relative
    candidates are joined onto the root, absolute ones are checked as given.

    Returns:
        The normalized absolute path, equal to the root or below it.

    Raises:
        InvalidInputError: empty or non-string input, NUL bytes, or a root
            that is not absolute.
        PathTraversalError: the resolution lies outside the root.
    """
    if not isinstance(candidate, str) or not candidate.strip():
        raise InvalidInputError("Invalid file path provided")
    if not isinstance(workspace_root, str) or not workspace_root.strip():
        raise InvalidInputError("Invalid workspace root provided")
    if "\x00" in candidate or "\x00" in workspace_root:
        raise InvalidInputError("Paths must not contain NUL bytes")

    root = _normalize(workspace_root)
    if not os.path.isabs(root):
        raise InvalidInputError(f"Workspace root must be an absolute path: {workspace_root!r}")

    normalized = _normalize(candidate)
    resolved = os.path.normpath(os.path.join(root, normalized))

    if not is_within_root(resolved, root):
        logger.warning("Path traversal detected: %r resolves to %r outside %r", candidate, resolved, root)
        raise PathTraversalError(candidate, resolved, root)

    logger.debug("Path %r sanitized to %r", candidate, resolved)
    return resolved
