from __future__ import annotations

from .audit import AuditEvent, AuditLog
from .config import GuardSettings, load_settings
from .errors import (
    CommandBlockedError,
    ConfigError,
    GuardError,
    InvalidInputError,
    PathTraversalError,
    WorkspaceUntrustedError,
)
from .gate import CommandGate, PreparedCommand
from .models import Decision, Pattern, Reason
from .paths import is_within_root, sanitize_path
from .patterns import PatternRegistry, default_registry
from .policy import CommandPolicy, validate_command
from .powershell import PowerShellValidator
from .trust import TrustGate

__all__ = [
    "AuditEvent",
    "AuditLog",
    "CommandBlockedError",
    "CommandGate",
    "CommandPolicy",
    "ConfigError",
    "Decision",
    "GuardError",
    "GuardSettings",
    "InvalidInputError",
    "PathTraversalError",
    "Pattern",
    "PatternRegistry",
    "PowerShellValidator",
    "PreparedCommand",
    "Reason",
    "TrustGate",
    "WorkspaceUntrustedError",
    "default_registry",
    "is_within_root",
    "load_settings",
    "sanitize_path",
    "validate_command",
]
