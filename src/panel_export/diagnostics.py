"""
Module: diagnostics

Captures export pipeline events (measured size, staged container,
slice plan, per-tile captures) through an injected sink instead of
ambient debug logging.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Protocol

logger = logging.getLogger(__name__)


class DiagnosticsSink(Protocol):
    """Receives named export events with keyword data."""
    
    def record(self, event: str, **fields: Any) -> None:
        ...


class LoggingDiagnostics:
    """Forward events to the module logger at DEBUG level."""
    
    def __init__(self, level: int = logging.DEBUG) -> None:
        self._level = level
    
    def record(self, event: str, **fields: Any) -> None:
        if logger.isEnabledFor(self._level):
            details = ", ".join(f"{k}={v}" for k, v in fields.items())
            logger.log(self._level, f"[export] {event}: {details}")


class NullDiagnostics:
    """Discard all events."""
    
    def record(self, event: str, **fields: Any) -> None:
        pass


@dataclass
class DiagnosticEvent:
    event: str
    fields: Dict[str, Any]
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    
    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.event, "timestamp": self.timestamp, **self.fields}


class DiagnosticsCollector:
    """
    Thread-safe collector of export events.
    
    Useful for tests and for attaching an export trace to bug reports.
    """
    
    def __init__(self) -> None:
        self._events: List[DiagnosticEvent] = []
        self._lock = threading.Lock()
    
    def record(self, event: str, **fields: Any) -> None:
        with self._lock:
            self._events.append(DiagnosticEvent(event=event, fields=dict(fields)))
    
    @property
    def events(self) -> List[DiagnosticEvent]:
        with self._lock:
            return list(self._events)
    
    def names(self) -> List[str]:
        """Event names in recording order."""
        return [e.event for e in self.events]
    
    def find(self, event: str) -> List[DiagnosticEvent]:
        return [e for e in self.events if e.event == event]
    
    def clear(self) -> None:
        with self._lock:
            self._events.clear()
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "event_count": len(self.events),
            "events": [e.to_dict() for e in self.events],
        }
    
    def save(self, path: Path) -> None:
        """Write collected events as JSON."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, default=str))
        logger.info(f"Saved {len(self.events)} export diagnostics to {path}")
