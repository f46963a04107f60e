from __future__ import annotations

import collections
import dataclasses
import json
import threading
import time
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional

from .models import Decision
from .utils import preview, read_text, write_text


# --- Security events kept by the caller, never by the validator ---
@dataclasses.dataclass
class AuditEvent:
    operation: str
    command: str
    allowed: bool
    reason: str
    rule: Optional[str] = None
    timestamp: float = dataclasses.field(default_factory=time.time)

    def to_json(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    @staticmethod
    def from_json(data: Dict[str, Any]) -> "AuditEvent":
        return AuditEvent(**data)


class AuditLog:
    """Bounded, thread-safe record of guard decisions."""

    def __init__(self, max_events: int = 1000) -> None:
        self._events: Deque[AuditEvent] = collections.deque(maxlen=max_events)
        self._lock = threading.Lock()

    def record(self, decision: Decision, command: str, operation: str = "command") -> AuditEvent:
        event = AuditEvent(
            operation=operation,
            command=command,
            allowed=decision.allowed,
            reason=decision.reason,
            rule=decision.rule,
        )
        with self._lock:
            self._events.append(event)
        return event

    def record_path_violation(self, candidate: str, operation: str = "path") -> AuditEvent:
        event = AuditEvent(
            operation=operation,
            command=candidate,
            allowed=False,
            reason="path-traversal",
            rule="path-sanitizer",
        )
        with self._lock:
            self._events.append(event)
        return event

    def events(self) -> List[AuditEvent]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def stats(self, top: int = 10) -> Dict[str, Any]:
        events = self.events()
        by_reason: Dict[str, int] = {}
        blocked: Dict[str, int] = {}
        for ev in events:
            by_reason[ev.reason] = by_reason.get(ev.reason, 0) + 1
            if not ev.allowed:
                key = preview(ev.command)
                blocked[key] = blocked.get(key, 0) + 1
        top_blocked = sorted(blocked.items(), key=lambda kv: kv[1], reverse=True)[:top]
        return {
            "total_events": len(events),
            "blocked_events": sum(1 for ev in events if not ev.allowed),
            "events_by_reason": by_reason,
            "top_blocked_commands": [{"command": c, "count": n} for c, n in top_blocked],
        }

    def save(self, path: Path) -> None:
        payload = [ev.to_json() for ev in self.events()]
        write_text(path, json.dumps(payload, indent=2))

    @classmethod
    def load(cls, path: Path, max_events: int = 1000) -> "AuditLog":
        log = cls(max_events=max_events)
        for item in json.loads(read_text(path)):
            log._events.append(AuditEvent.from_json(item))
        return log
