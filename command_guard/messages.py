from __future__ import annotations

from typing import Dict, Tuple

PREVIEW_CHARS = 100

# reason -> (category title, remediation hint)
SECURITY_MESSAGES: Dict[str, Tuple[str, str]] = {
    "invalid-input": (
        "Command blocked: Invalid input",
        "Pass the command as a single text string of reasonable length.",
    ),
    "empty-command": (
        "Command blocked: Empty command",
        "Provide a command to execute.",
    ),
    "dangerous-pattern": (
        "Command blocked: Contains potentially dangerous operation",
        "Remove destructive operations (rm, del, format, shutdown), traversal "
        "segments such as '..', command or process substitution, and any "
        "chained or piped follow-up command.",
    ),
    "powershell-unsafe": (
        "PowerShell command blocked: Unsafe syntax detected",
        "Use an approved PowerShell operation: Get-Process, Stop-Process, "
        "Get-NetTCPConnection, Set-Location or a .ps1 file under scripts\\.",
    ),
    "not-whitelisted": (
        "Command blocked: Not in approved command list",
        "Use an allow-listed program without '<' or '>' redirection and, for "
        "npm/yarn/pnpm, an allow-listed script name.",
    ),
    "path-traversal": (
        "Path blocked: Path traversal detected",
        "Remove traversal segments and use a path inside the workspace.",
    ),
    "workspace-untrusted": (
        "Command blocked: Workspace trust required",
        "Trust this workspace in the host application, then run the command again.",
    ),
}

_FALLBACK = (
    "Command blocked for security reasons",
    "Contact the maintainers if you believe this command should be allowed.",
)


def security_message(reason: str, command: str = "") -> str:
    title, guidance = SECURITY_MESSAGES.get(reason, _FALLBACK)
    shown = command[:PREVIEW_CHARS]
    if len(command) > PREVIEW_CHARS:
        shown += "..."
    return f"{title}\n\nGuidance: {guidance}\n\nBlocked command: {shown}"
