from __future__ import annotations

import dataclasses
import logging
import re
from typing import Optional, Sequence

from .audit import AuditLog
from .config import GuardSettings
from .errors import CommandBlockedError, PathTraversalError, WorkspaceUntrustedError
from .models import Decision
from .paths import sanitize_path
from .policy import CommandPolicy
from .trust import TrustGate

logger = logging.getLogger(__name__)

_ARG_STRIP_RE = re.compile(r"[;&|`$(){}\[\]\\]")


@dataclasses.dataclass(frozen=True)
class PreparedCommand:
    command: str
    cwd: str
    decision: Decision


class CommandGate:
    """
    What a host calls before shelling out: trust, then path, then command.

    Nothing is executed here. The host runs `PreparedCommand.command` in
    `PreparedCommand.cwd` only after prepare() returns.
    """

    def __init__(
        self,
        workspace_root: str,
        trust: TrustGate,
        policy: Optional[CommandPolicy] = None,
        audit: Optional[AuditLog] = None,
    ) -> None:
        self.workspace_root = workspace_root
        self.trust = trust
        self.policy = policy or CommandPolicy()
        self.audit = audit

    @classmethod
    def from_settings(cls, workspace_root: str, trust: TrustGate, settings: GuardSettings) -> "CommandGate":
        return cls(
            workspace_root,
            trust,
            policy=CommandPolicy(settings=settings),
            audit=AuditLog(max_events=settings.audit_max_events),
        )

    def check(self, command: str, operation: str = "Command execution") -> Decision:
        decision = self.trust.check(operation, command if isinstance(command, str) else "")
        if decision is None:
            decision = self.policy.validate(command)
        self._record(decision, command, operation)
        return decision

    def prepare(
        self,
        command: str,
        project_path: Optional[str] = None,
        operation: str = "Project command execution",
    ) -> PreparedCommand:
        decision = self.trust.check(operation, command if isinstance(command, str) else "")
        if decision is not None:
            self._record(decision, command, operation)
            raise WorkspaceUntrustedError(operation)

        try:
            cwd = sanitize_path(project_path or ".", self.workspace_root)
        except PathTraversalError:
            if self.audit is not None:
                self.audit.record_path_violation(str(project_path), operation)
            raise

        decision = self.policy.validate(command)
        self._record(decision, command, operation)
        if not decision.allowed:
            raise CommandBlockedError(decision, command if isinstance(command, str) else None)
        return PreparedCommand(command=command.strip(), cwd=cwd, decision=decision)

    def build_command(
        self,
        base: str,
        args: Sequence[str] = (),
        working_dir: Optional[str] = None,
    ) -> Optional[str]:
        """
        Compose a command from a validated base and scrubbed arguments.

        Returns None when any piece fails validation.
        """
        if not self.policy.validate(base).allowed:
            return None
        cleaned = [_ARG_STRIP_RE.sub("", a) for a in args if isinstance(a, str)]
        cleaned = [a for a in cleaned if a]
        command = " ".join([base.strip()] + cleaned)

        if working_dir:
            try:
                directory = sanitize_path(working_dir, self.workspace_root)
            except PathTraversalError as e:
                logger.error("Invalid working directory: %s", e)
                return None
            command = f'cd "{directory}" && {command}'

        if not self.policy.validate(command).allowed:
            return None
        return command

    def _record(self, decision: Decision, command: object, operation: str) -> None:
        if self.audit is not None:
            self.audit.record(decision, command if isinstance(command, str) else repr(command), operation)
