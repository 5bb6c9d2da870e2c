from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Mapping


@dataclass
class TelemetryService:
    """Append-only JSON Lines log of match activity."""

    path: Path

    def log(self, event_type: str, payload: Mapping[str, object]) -> None:
        self.log_many([(event_type, payload)])

    def log_many(self, records: Iterable[tuple[str, Mapping[str, object]]]) -> int:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        ts = datetime.now(tz=timezone.utc).isoformat()
        n = 0
        with self.path.open("a", encoding="utf-8") as f:
            for event_type, payload in records:
                rec = {"ts": ts, "type": event_type, "payload": dict(payload)}
                f.write(json.dumps(rec, ensure_ascii=False) + "\n")
                n += 1
        return n

    def log_events(self, events: Iterable[Mapping[str, object]]) -> int:
        """Write engine events, keyed by their own ``type`` field."""
        return self.log_many(
            (str(e.get("type", "UNKNOWN")), {k: v for k, v in e.items() if k != "type"}) for e in events
        )
