"""Append-only session events stream."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import ArtifactIOError
from .utils import now_utc_iso


@dataclass
class EventWriter:
    path: Path
    session_id: str

    def emit(self, event_type: str, **payload: Any) -> dict[str, Any]:
        event = {
            "type": event_type,
            "session_id": self.session_id,
            "ts": now_utc_iso(),
        }
        event.update(payload)
        line = f"{json.dumps(event, ensure_ascii=False)}\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line)
        except OSError as exc:
            raise ArtifactIOError(f"Could not append to events log {self.path}: {exc}", path=self.path) from exc
        return event
