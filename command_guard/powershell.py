from __future__ import annotations

import logging
import re
from typing import Optional, Sequence, Tuple

from .models import Decision, Pattern, PatternCategory, Severity
from .utils import preview

logger = logging.getLogger(__name__)

# PowerShell quoting: double quotes expand $ and backtick escapes, single quotes
# are literal. Only inert double-quoted strings are accepted.
_PS_QUOTED = r"""(?:"[^"`$\r\n]*"|'[^'\r\n]*')"""
_PS_PROPERTY_LIST = r"[\w-]+(?:\s*,\s*[\w-]+)*"
# Value tokens never start with '-' so a flag can't be read as another flag's value.
_PS_SCRIPT_ARGS = r"(?:\s+-\w+(?:\s+[\w.:][\w.:-]*)?)*"
_PS_SCRIPT_PATH = r"(?:\.[\\/])?scripts[\\/][\w.-]+\.ps1"

_SHELL_SIGNAL_RE = re.compile(
    r"\$"
    r"|(?i:\bpowershell\b|\bpwsh\b)"
    r"|\b(?:Get|Set|Stop|Start|Remove|New|Invoke|Select|Where|Test|Write|Out|Clear|Restart|Format)-[A-Z][A-Za-z]*"
    r"|^\.[\\/]scripts[\\/]"
)

_INVOCATION_RE = re.compile(
    r"(?:powershell|pwsh)(?:\.exe)?(?:\s+-(?:NoProfile|NonInteractive|NoLogo))*"
    r"\s+-Command\s+(?:\"([^\"\r\n]*)\"|'([^'\r\n]*)')",
    re.IGNORECASE,
)


def _ps(
    name: str,
    category: PatternCategory,
    pattern: str,
    rationale: str,
    severity: Severity = "high",
) -> Pattern:
    return Pattern(
        name=name,
        category=category,
        regex=re.compile(pattern, re.IGNORECASE),
        rationale=rationale,
        severity=severity,
    )


POWERSHELL_RULES: Tuple[Pattern, ...] = (
    # --- unsafe: checked before any safe shape ---
    _ps("ps-invoke-expression", "powershell-unsafe", r"\bInvoke-Expression\b|\biex\b",
        "Evaluates arbitrary strings as code", "critical"),
    _ps("ps-download", "powershell-unsafe",
        r"Download(?:String|File)\b|\bInvoke-WebRequest\b|\biwr\b|\bInvoke-RestMethod\b|\birm\b"
        r"|\bStart-BitsTransfer\b|Net\.WebClient",
        "Downloads remote content", "high"),
    _ps("ps-remove-item", "powershell-unsafe", r"\bRemove-Item\b|\bClear-Content\b",
        "Deletes or truncates files", "high"),
    _ps("ps-execution-policy", "powershell-unsafe", r"\bSet-ExecutionPolicy\b",
        "Weakens script execution policy", "critical"),
    _ps("ps-encoded-command", "powershell-unsafe", r"\s-(?:EncodedCommand|enc|ec|e)\b",
        "Runs an opaque encoded payload", "critical"),
    _ps("ps-system-control", "powershell-unsafe", r"\b(?:Restart|Stop)-Computer\b",
        "Restarts or powers off the machine", "high"),
    _ps("ps-disk", "powershell-unsafe",
        r"\b(?:Format-Volume|Clear-Disk|Initialize-Disk|Remove-Partition)\b",
        "Destroys disk contents", "critical"),
    _ps("ps-start-process", "powershell-unsafe", r"\bStart-Process\b|-Verb\s+RunAs\b",
        "Spawns arbitrary or elevated processes", "high"),
    # --- safe shapes: must describe the whole command ---
    _ps("ps-process-filter", "powershell-safe",
        r"Get-Process(?:\s+-Name\s+[\w.-]+)?\s*\|\s*Where-Object\s*\{\s*\$_\.\w+\s+"
        r"-(?:eq|ne|like|notlike|match|gt|lt)\s+(?:" + _PS_QUOTED + r"|\d+)\s*\}",
        "Process query filtered by a single property"),
    _ps("ps-process-list", "powershell-safe",
        r"Get-Process(?:\s+-Name\s+[\w.-]+)?(?:\s*\|\s*Select-Object\s+" + _PS_PROPERTY_LIST + r")?",
        "Process listing"),
    _ps("ps-stop-process", "powershell-safe", r"Stop-Process\s+-Id\s+\d+(?:\s+-Force)?",
        "Stops one process by id"),
    _ps("ps-port-lookup", "powershell-safe",
        r"Get-NetTCPConnection\s+-LocalPort\s+\d{1,5}(?:\s+-ErrorAction\s+\w+)?"
        r"(?:\s*\|\s*Select-Object\s+" + _PS_PROPERTY_LIST + r")?",
        "Looks up the owner of a local port"),
    _ps("ps-port-kill", "powershell-safe",
        r"\$(\w+)\s*=\s*Get-NetTCPConnection\s+-LocalPort\s+\d{1,5}(?:\s+-ErrorAction\s+\w+)?\s*;"
        r"\s*if\s*\(\s*\$\1\s*\)\s*\{\s*Stop-Process\s+-Id\s+\$\1\.OwningProcess\s+-Force\s*\}",
        "Stops the process listening on a local port"),
    _ps("ps-taskkill-port", "powershell-safe",
        r"taskkill\s+/F\s+/PID\s+\(Get-NetTCPConnection\s+-LocalPort\s+\d{1,5}\)\.OwningProcess",
        "Kills the process listening on a local port"),
    _ps("ps-navigation", "powershell-safe",
        r"(?:Set-Location|Test-Path|Get-ChildItem)\s+" + _PS_QUOTED,
        "Directory navigation and inspection"),
    _ps("ps-list-directory", "powershell-safe", r"Get-ChildItem", "Directory listing"),
    _ps("ps-write-host", "powershell-safe", r"Write-Host\s+" + _PS_QUOTED, "Prints a literal string"),
    _ps("ps-project-script", "powershell-safe", r"\.[\\/]scripts[\\/][\w.-]+\.ps1" + _PS_SCRIPT_ARGS,
        "Runs a project script from scripts\\"),
    _ps("ps-script-file", "powershell-safe",
        r"(?:powershell|pwsh)(?:\.exe)?(?:\s+-(?:NoProfile|NonInteractive|NoLogo))*"
        r"(?:\s+-ExecutionPolicy\s+(?:Bypass|RemoteSigned))?\s+-File\s+"
        r"(?:\"" + _PS_SCRIPT_PATH + r"\"|" + _PS_SCRIPT_PATH + r")" + _PS_SCRIPT_ARGS,
        "Runs a project script through powershell -File"),
)


class PowerShellValidator:
    """
    Validates PowerShell pipelines against a PowerShell-only rule set.

    Unsafe rules are checked first, then the command (or the body of an
    explicit `powershell -Command "..."`) must fully match a safe rule.
    """

    def __init__(self, rules: Sequence[Pattern] = POWERSHELL_RULES) -> None:
        self.unsafe = tuple(r for r in rules if r.category == "powershell-unsafe")
        self.safe = tuple(r for r in rules if r.category == "powershell-safe")

    def handles(self, command: str) -> bool:
        return _SHELL_SIGNAL_RE.search(command) is not None

    def validate(self, command: str) -> Decision:
        hit = self._first(self.unsafe, command)
        if hit is not None:
            logger.warning("PowerShell command blocked by %s: %s", hit.name, preview(command))
            return Decision.deny("powershell-unsafe", command, rule=hit.name)

        body = command
        invocation = _INVOCATION_RE.fullmatch(command)
        if invocation is not None:
            body = (invocation.group(1) if invocation.group(1) is not None else invocation.group(2)).strip()
            hit = self._first(self.unsafe, body)
            if hit is not None:
                logger.warning("PowerShell -Command body blocked by %s: %s", hit.name, preview(command))
                return Decision.deny("powershell-unsafe", command, rule=hit.name)

        hit = self._first(self.safe, body)
        if hit is None:
            logger.warning("PowerShell command matches no approved shape: %s", preview(command))
            return Decision.deny("powershell-unsafe", command)
        logger.debug("PowerShell command validated by %s", hit.name)
        return Decision.allow(rule=hit.name)

    @staticmethod
    def _first(rules: Sequence[Pattern], command: str) -> Optional[Pattern]:
        for rule in rules:
            if rule.matches(command):
                return rule
        return None
