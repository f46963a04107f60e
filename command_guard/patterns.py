from __future__ import annotations

import dataclasses
import functools
import re
from types import MappingProxyType
from typing import FrozenSet, Iterable, Iterator, Mapping, Optional, Tuple

from .models import Pattern, PatternCategory, Severity
from .powershell import POWERSHELL_RULES

# --- Argument grammar shared by the safe shapes ---
# A bare argument character excludes every shell metacharacter; quoted text may
# contain anything except expansion triggers ($ and backtick in double quotes).
_DQ = r'"[^"`$\r\n]*"'
_SQ = r"'[^'\r\n]*'"
_BARE = r"""[^|;&`$()"'<>\r\n]"""
_ARGS = r"(?:\s(?:" + _BARE + "|" + _DQ + "|" + _SQ + r")*)?"
_DQ_NO_DOT = r'"[^".`$\r\n][^"`$\r\n]*"'
_RUNNER_FLAGS = r"(?:\s+--[^|;&`$()<>\r\n]*)?"
_SERVE_WEB = (
    r"code\s+serve-web\s+--port\s+\d{1,5}\s+--host\s+[\d.]+"
    r"\s+--without-connection-token\s+--accept-server-license-terms"
)

_DESTRUCTIVE_VERBS = r"(?:sudo\s+)?(?:rm|del|erase|rd|rmdir|format|shutdown|reboot|halt|poweroff|mkfs|dd)\b"


def _rule(
    name: str,
    category: PatternCategory,
    pattern: str,
    rationale: str,
    severity: Severity = "high",
    flags: int = re.IGNORECASE,
) -> Pattern:
    return Pattern(
        name=name,
        category=category,
        regex=re.compile(pattern, flags),
        rationale=rationale,
        severity=severity,
    )


SAFE_RULES: Tuple[Pattern, ...] = (
    _rule("cd-quoted", "safe", r"cd\s+" + _DQ_NO_DOT, "Change into a quoted directory", "low", 0),
    _rule("npm-script", "safe",
          r"npm\s+(?:run\s+)?(?:dev|start|build|test|lint|format)" + _ARGS,
          "Standard npm lifecycle script", "low", 0),
    _rule("git-common", "safe",
          r"git\s+(?:status|add|commit|push|pull|branch|checkout|log|diff)" + _ARGS,
          "Everyday git verb", "low", 0),
    _rule("taskkill-pid", "safe", r"taskkill\s+(?:/F\s+/PID\s+\d+|/PID\s+\d+\s+/F)",
          "Kill one process by id", "medium"),
    _rule("open-in-editor", "safe", r"(?:explorer|code|cursor|windsurf)\s+" + _DQ,
          "Open a quoted path in an editor or file browser", "low"),
    _rule("claude", "safe", r"claude", "Start the assistant CLI", "low"),
    _rule("assistant-project", "safe", r"(?:claude|aider)\s+--project\s+" + _DQ,
          "Start an assistant CLI on a project", "low"),
    _rule("node-script", "safe", r"node\s+[\w./\\-]+\.js", "Run a local Node.js script", "low"),
    _rule("python-script", "safe", r"python3?\s+[\w./\\-]+\.py", "Run a local Python script", "low"),
    _rule("vscode-serve-web", "safe", _SERVE_WEB, "Start the VS Code web server", "low"),
    _rule("cd-then-runner", "safe",
          r"cd\s+" + _DQ_NO_DOT + r"\s+&&\s+"
          r"(?:npm\s+(?:run\s+)?(?:dev|start|build|test)|yarn\s+(?:dev|start|build)|pnpm\s+(?:dev|start))"
          + _RUNNER_FLAGS,
          "Start a project's dev server from its directory", "low", 0),
    _rule("cd-then-serve-web", "safe", r"cd\s+" + _DQ_NO_DOT + r"\s+&&\s+" + _SERVE_WEB,
          "Start the VS Code web server from a project directory", "low"),
    _rule("netstat-ports", "safe",
          r"netstat\s+-ano(?:\s+\|\s+(?:findstr|Select-String)\s+" + _DQ + r")?",
          "List listening ports", "low"),
)

DANGEROUS_RULES: Tuple[Pattern, ...] = (
    _rule("traversal-forward", "dangerous", r"\.\./", "Path traversal (forward slash)"),
    _rule("traversal-backslash", "dangerous", r"\.\.\\", "Path traversal (backslash)"),
    _rule("traversal-quoted", "dangerous", r"""['"]\.\.['"]""", "Path traversal in quotes"),
    _rule("traversal-bare", "dangerous", r"(?:^|\s)\.\.(?:\s|$)", "Parent directory argument"),
    _rule("recursive-delete", "dangerous",
          r"\brm\s+-[a-z]*[rf]|\brm\s+--(?:recursive|force|no-preserve-root)\b",
          "Recursive or forced deletion", "critical"),
    _rule("windows-delete", "dangerous", r"\b(?:del|erase)\s+/[sqf]|\b(?:rd|rmdir)\s+/s\b",
          "Recursive Windows deletion", "critical"),
    _rule("format-drive", "dangerous", r"\bformat\s+[a-z]:", "Disk format command", "critical"),
    _rule("system-control", "dangerous", r"\b(?:shutdown|reboot|halt|poweroff)\b",
          "System shutdown command"),
    _rule("disk-tools", "dangerous", r"\b(?:mkfs(?:\.\w+)?|fdisk|parted|diskpart)\b",
          "Disk partitioning command", "critical"),
    _rule("raw-disk-write", "dangerous", r"\bdd\b[^|;&\r\n]*\bof=/dev/", "Direct disk write", "critical"),
    _rule("chained-destructive", "dangerous", r"[;&|\r\n]\s*" + _DESTRUCTIVE_VERBS,
          "Chain or pipe into a destructive command", "critical"),
    _rule("substitution-destructive", "dangerous", r"(?:`|\$\()\s*" + _DESTRUCTIVE_VERBS,
          "Command substitution running a destructive command", "critical"),
    _rule("backtick-substitution", "dangerous", r"`", "Backtick command substitution", "critical"),
    _rule("command-substitution", "dangerous", r"\$\(", "Command substitution", "critical"),
    _rule("process-substitution", "dangerous", r"[<>]\(", "Process substitution", "critical"),
    _rule("redirect-executable", "dangerous", r">\s*[^|;&<>\r\n]*\.(?:bat|cmd|exe|ps1)\b",
          "Redirect output into an executable file"),
    _rule("privilege-escalation", "dangerous", r"\b(?:sudo|runas)\b", "Privilege escalation"),
    _rule("inline-interpreter", "dangerous",
          r"\bpy(?:thon3?)?\s+-c\b|\bnode\s+(?:-e|--eval|-p|--print)\b",
          "Inline interpreter code execution"),
    _rule("download-execute", "dangerous",
          r"\b(?:curl|wget)\b[^|\r\n]*\|\s*(?:sh|bash|zsh|powershell|pwsh)\b",
          "Download and execute", "critical"),
    _rule("world-writable", "dangerous", r"\bchmod\s+(?:-R\s+)?777\b", "Dangerous permission change"),
    _rule("fork-bomb", "dangerous", r":\(\)\s*\{", "Fork bomb", "critical"),
    _rule("system-config", "dangerous",
          r"\breg\s+(?:add|delete|import)\b|\bsc\s+(?:create|delete|config)\b",
          "Registry or service modification"),
)

ALLOWED_COMMANDS: FrozenSet[str] = frozenset({
    "npm", "yarn", "pnpm", "node", "git", "echo", "cd", "ls", "dir",
    "claude", "explorer", "code", "taskkill", "python", "py", "tsc",
    "cursor", "windsurf", "aider", "netstat", "findstr",
})

ALLOWED_SCRIPTS: FrozenSet[str] = frozenset({
    "dev", "start", "build", "test", "test:coverage", "compile", "watch",
    "lint", "type-check", "format", "clean", "preview", "serve",
})

RUN_VERBS: FrozenSet[str] = frozenset({"run", "run-script"})

ALLOWED_SUBCOMMANDS: Mapping[str, FrozenSet[str]] = MappingProxyType({
    "npm": frozenset({"install", "ci", "test", "start", "run", "run-script"}),
    "yarn": frozenset({"install", "run"}) | ALLOWED_SCRIPTS,
    "pnpm": frozenset({"install", "run"}) | ALLOWED_SCRIPTS,
    "git": frozenset({
        "status", "add", "commit", "push", "pull", "fetch", "branch", "checkout",
        "switch", "log", "diff", "show", "stash", "init", "clone", "remote",
        "tag", "merge", "rev-parse",
    }),
})


def _freeze(mapping: Mapping[str, Iterable[str]]) -> Mapping[str, FrozenSet[str]]:
    return MappingProxyType({k.lower(): frozenset(s.lower() for s in v) for k, v in mapping.items()})


@dataclasses.dataclass(frozen=True)
class PatternRegistry:
    """
    Immutable rule tables consulted by CommandPolicy.

    Build one with default_registry() or construct an alternate rule set for
    tests; instances are never mutated after construction.
    """

    rules: Tuple[Pattern, ...]
    allowed_commands: FrozenSet[str]
    allowed_subcommands: Mapping[str, FrozenSet[str]]
    allowed_scripts: Mapping[str, FrozenSet[str]]
    run_verbs: FrozenSet[str] = RUN_VERBS

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "allowed_commands", frozenset(c.lower() for c in self.allowed_commands))
        object.__setattr__(self, "allowed_subcommands", _freeze(self.allowed_subcommands))
        object.__setattr__(self, "allowed_scripts", _freeze(self.allowed_scripts))
        object.__setattr__(self, "run_verbs", frozenset(v.lower() for v in self.run_verbs))

    def by_category(self, category: PatternCategory) -> Iterator[Pattern]:
        return (r for r in self.rules if r.category == category)

    def first_match(self, category: PatternCategory, command: str) -> Optional[Pattern]:
        for rule in self.by_category(category):
            if rule.matches(command):
                return rule
        return None

    def extended(
        self,
        *,
        commands: Iterable[str] = (),
        scripts: Iterable[str] = (),
    ) -> "PatternRegistry":
        """Return a copy with wider allow-lists. Dangerous rules are untouched."""
        extra_scripts = frozenset(s.lower() for s in scripts)
        subcommands = dict(self.allowed_subcommands)
        for tool in ("yarn", "pnpm"):
            if tool in subcommands:
                subcommands[tool] = subcommands[tool] | extra_scripts
        return dataclasses.replace(
            self,
            allowed_commands=self.allowed_commands | frozenset(commands),
            allowed_subcommands=subcommands,
            allowed_scripts={k: v | extra_scripts for k, v in self.allowed_scripts.items()},
        )


@functools.lru_cache(maxsize=1)
def default_registry() -> PatternRegistry:
    return PatternRegistry(
        rules=SAFE_RULES + DANGEROUS_RULES + POWERSHELL_RULES,
        allowed_commands=ALLOWED_COMMANDS,
        allowed_subcommands=ALLOWED_SUBCOMMANDS,
        allowed_scripts={tool: ALLOWED_SCRIPTS for tool in ("npm", "yarn", "pnpm")},
    )
