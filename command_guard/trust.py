from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from .errors import WorkspaceUntrustedError
from .models import Decision

logger = logging.getLogger(__name__)

TrustSignal = Union[bool, Callable[[], bool]]


class TrustGate:
    """
    Precondition check in front of every code-executing operation.

    The trust signal belongs to the host: either a fixed bool or a callable
    queried on every check. The gate keeps no trust state of its own and
    cannot grant trust; it only reports it and lets the host tell the user.
    """

    def __init__(
        self,
        is_trusted: TrustSignal,
        on_untrusted: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._is_trusted = is_trusted
        self.on_untrusted = on_untrusted

    def trusted(self) -> bool:
        # Only a real True grants trust; strings like "false" must not.
        signal = self._is_trusted
        if not callable(signal):
            return signal is True
        try:
            return signal() is True
        except Exception:
            logger.exception("Workspace trust signal failed; treating workspace as untrusted")
            return False

    def require_trust(self, operation: str) -> bool:
        if self.trusted():
            return True
        logger.warning("%s requires workspace trust; workspace is untrusted", operation)
        if self.on_untrusted is not None:
            self.on_untrusted(operation)
        return False

    def check(self, operation: str, command: str = "") -> Optional[Decision]:
        if self.require_trust(operation):
            return None
        return Decision.deny("workspace-untrusted", command, rule="trust-gate")

    def ensure(self, operation: str) -> None:
        if not self.require_trust(operation):
            raise WorkspaceUntrustedError(operation)
