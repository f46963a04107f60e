from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable, List, Optional

_CHAIN_CHARS = {";", "&", "|", "\n", "\r"}
_ENV_VAR_RE = re.compile(r"[A-Z_][A-Z0-9_]*", re.IGNORECASE)
_POSIX_ESCAPE_RE = re.compile(r"([\"\s'$`\\])")

DEFAULT_EXTENSIONS = frozenset({".ps1", ".js", ".ts", ".json", ".md", ".txt", ".yml", ".yaml"})


# --- Utilities ---
def preview(text: str, limit: int = 50) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def split_segments(command: str) -> List[str]:
    """
    Split a command line on unquoted chain and pipe operators.

    `&&`, `||`, `;`, `|`, `&` and line breaks all separate segments. Quoted
    text is kept intact. Segments are stripped; empty segments are kept so
    callers can reject dangling operators.
    """
    segments: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None
    i = 0
    n = len(command)
    while i < n:
        ch = command[i]
        if quote is not None:
            current.append(ch)
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
            current.append(ch)
        elif ch in _CHAIN_CHARS:
            segments.append("".join(current).strip())
            current = []
            # Treat doubled operators (&&, ||) as a single separator.
            if i + 1 < n and command[i + 1] == ch and ch in ("&", "|"):
                i += 1
        else:
            current.append(ch)
        i += 1
    segments.append("".join(current).strip())
    return segments


def find_unquoted(command: str, chars: Iterable[str]) -> Optional[str]:
    """Return the first of `chars` that appears outside quotes, or None."""
    wanted = set(chars)
    quote: Optional[str] = None
    for ch in command:
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch in wanted:
            return ch
    return None


def base_command(segment: str) -> str:
    parts = segment.split(None, 1)
    if not parts:
        return ""
    first = parts[0].lower()
    if first.endswith(".exe"):
        first = first[: -len(".exe")]
    return first


def escape_file_path(file_path: str, *, windows: Optional[bool] = None) -> str:
    if not file_path or not isinstance(file_path, str):
        return ""
    if windows is None:
        windows = os.name == "nt"
    if windows:
        return f'"{file_path}"' if " " in file_path else file_path
    return _POSIX_ESCAPE_RE.sub(r"\\\1", file_path)


def validate_environment_variable(name: str) -> bool:
    if not name or not isinstance(name, str):
        return False
    return _ENV_VAR_RE.fullmatch(name) is not None


def validate_file_extension(file_path: str, allowed: Iterable[str] = DEFAULT_EXTENSIONS) -> bool:
    if not file_path or not isinstance(file_path, str):
        return False
    ext = os.path.splitext(file_path)[1].lower()
    return ext in {a.lower() for a in allowed}


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
