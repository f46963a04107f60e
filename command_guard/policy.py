from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from .config import GuardSettings
from .errors import CommandBlockedError
from .models import Decision
from .patterns import PatternRegistry, default_registry
from .powershell import PowerShellValidator
from .utils import base_command, find_unquoted, preview, split_segments

logger = logging.getLogger(__name__)

# Redirection can overwrite workspace files behind an allowed program.
_REDIRECT_CHARS = ("<", ">")


# --- Command validation pipeline ---
class CommandPolicy:
    """
    Decides whether a command string may be handed to a terminal.

    Evaluation order is fixed: syntactic gate, safe shapes, PowerShell branch,
    deny-list, base allow-list. The deny-list runs for every command that
    passes the gate, so a safe-looking prefix never shields a destructive
    suffix. validate() never raises and keeps no state between calls.
    """

    def __init__(
        self,
        registry: Optional[PatternRegistry] = None,
        settings: Optional[GuardSettings] = None,
    ) -> None:
        self.settings = settings or GuardSettings()
        registry = registry or default_registry()
        if self.settings.extra_allowed_commands or self.settings.extra_scripts:
            registry = registry.extended(
                commands=self.settings.extra_allowed_commands,
                scripts=self.settings.extra_scripts,
            )
        self.registry = registry
        self.powershell = PowerShellValidator(
            tuple(registry.by_category("powershell-unsafe")) + tuple(registry.by_category("powershell-safe"))
        )

    def validate(self, raw: Any) -> Decision:
        if not isinstance(raw, str):
            logger.warning("Command validation failed: command is not a string (%s)", type(raw).__name__)
            return Decision.deny("invalid-input")
        cmd = raw.strip()
        if not cmd:
            logger.warning("Command validation failed: command is empty")
            return Decision.deny("empty-command")
        if len(cmd) > self.settings.max_command_length:
            logger.warning(
                "Command validation failed: %d characters exceeds limit of %d",
                len(cmd),
                self.settings.max_command_length,
            )
            return Decision.deny("invalid-input", cmd)

        safe = self.registry.first_match("safe", cmd)

        shell: Optional[Decision] = None
        if safe is None and self.powershell.handles(cmd):
            shell = self.powershell.validate(cmd)

        danger = self.registry.first_match("dangerous", cmd)
        if danger is not None:
            logger.warning("Command blocked by dangerous pattern %s: %s", danger.name, preview(cmd))
            return Decision.deny("dangerous-pattern", cmd, rule=danger.name)

        if safe is not None:
            logger.debug("Command matched safe shape %s: %s", safe.name, preview(cmd))
            return Decision.allow(rule=safe.name)

        if shell is not None:
            return shell

        return self._check_allow_list(cmd)

    def _check_allow_list(self, cmd: str) -> Decision:
        redirect = find_unquoted(cmd, _REDIRECT_CHARS)
        if redirect is not None:
            logger.warning("Command blocked - unquoted redirection %r: %s", redirect, preview(cmd))
            return Decision.deny("not-whitelisted", cmd, rule="allow-list-redirect")

        for segment in split_segments(cmd):
            base = base_command(segment)
            if not base or base not in self.registry.allowed_commands:
                logger.warning("Command blocked - not in allowed list: %r", base)
                return Decision.deny("not-whitelisted", cmd, rule="allow-list")

            subcommands = self.registry.allowed_subcommands.get(base)
            if subcommands is None:
                continue
            tokens = segment.split()
            sub = tokens[1].lower() if len(tokens) > 1 else ""
            if sub not in subcommands:
                logger.warning("Command blocked - %s subcommand not allowed: %r", base, sub)
                return Decision.deny("not-whitelisted", cmd, rule="allow-list-subcommand")
            if sub in self.registry.run_verbs:
                script = tokens[2].lower() if len(tokens) > 2 else ""
                if script not in self.registry.allowed_scripts.get(base, frozenset()):
                    logger.warning("Command blocked - %s script not allowed: %r", base, script)
                    return Decision.deny("not-whitelisted", cmd, rule="allow-list-script")

        logger.debug("Command allowed by base allow-list: %s", preview(cmd))
        return Decision.allow(rule="allow-list")

    def is_safe(self, cmd: Any) -> Tuple[bool, str]:
        decision = self.validate(cmd)
        return decision.allowed, decision.reason

    def require(self, cmd: Any) -> Decision:
        decision = self.validate(cmd)
        if not decision.allowed:
            raise CommandBlockedError(decision, cmd if isinstance(cmd, str) else None)
        return decision


_default_policy: Optional[CommandPolicy] = None


def validate_command(raw: Any) -> Decision:
    global _default_policy
    if _default_policy is None:
        _default_policy = CommandPolicy()
    return _default_policy.validate(raw)
