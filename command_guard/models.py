from __future__ import annotations

import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from .messages import security_message

Reason = Literal[
    "ok",
    "invalid-input",
    "empty-command",
    "dangerous-pattern",
    "powershell-unsafe",
    "not-whitelisted",
    "path-traversal",
    "workspace-untrusted",
]

PatternCategory = Literal["safe", "dangerous", "powershell-safe", "powershell-unsafe"]

Severity = Literal["low", "medium", "high", "critical"]

# Categories whose rules must describe the whole command.
FULL_MATCH_CATEGORIES = frozenset({"safe", "powershell-safe"})


class Pattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    category: PatternCategory
    regex: re.Pattern
    rationale: str
    severity: Severity = "high"

    def matches(self, command: str) -> bool:
        if self.category in FULL_MATCH_CATEGORIES:
            return self.regex.fullmatch(command) is not None
        return self.regex.search(command) is not None


class Decision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Reason
    message: str
    # Name of the rule that decided; diagnostics only, never shown to users.
    rule: Optional[str] = None

    @classmethod
    def allow(cls, rule: Optional[str] = None) -> "Decision":
        return cls(allowed=True, reason="ok", message="Command allowed", rule=rule)

    @classmethod
    def deny(cls, reason: Reason, command: str = "", rule: Optional[str] = None) -> "Decision":
        return cls(
            allowed=False,
            reason=reason,
            message=security_message(reason, command),
            rule=rule,
        )
