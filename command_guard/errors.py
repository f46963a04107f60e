from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import Decision


class GuardError(Exception):
    """Base class for errors raised by command_guard."""


class InvalidInputError(GuardError, ValueError):
    pass


class PathTraversalError(GuardError, ValueError):
    """
    A candidate path resolved outside the workspace root.

    Carries the candidate as given and the computed resolution so callers can
    log the attempt. Nothing partially sanitized is ever returned.
    """

    def __init__(self, candidate: str, resolved: str, workspace_root: str) -> None:
        self.candidate = candidate
        self.resolved = resolved
        self.workspace_root = workspace_root
        super().__init__(
            f"Path traversal detected: {candidate!r} resolves to {resolved!r}, "
            f"outside workspace {workspace_root!r}"
        )


class WorkspaceUntrustedError(GuardError):
    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} requires workspace trust to execute safely.")


class CommandBlockedError(GuardError):
    def __init__(self, decision: "Decision", command: Optional[str] = None) -> None:
        self.decision = decision
        self.command = command
        super().__init__(decision.message)


class ConfigError(GuardError):
    pass
