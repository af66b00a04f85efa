from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, Literal

EventKind = Literal[
    "register_user",
    "mint_token",
    "update_grade",
    "endorse_token",
    "deactivate_token",
    "create_listing",
    "cancel_listing",
    "emergency_cancel",
    "update_listing_price",
    "purchase",
    "withdraw",
    "set_visibility",
]

EVENT_KINDS: frozenset[str] = frozenset(EventKind.__args__)  # type: ignore[attr-defined]


@dataclass(frozen=True)
class LedgerEvent:
    seq: int
    kind: str
    actor: str
    timestamp: int
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "seq": int(self.seq),
            "kind": self.kind,
            "actor": self.actor,
            "timestamp": int(self.timestamp),
            "payload": dict(self.payload),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LedgerEvent":
        kind = str(data.get("kind", ""))
        if kind not in EVENT_KINDS:
            raise ValueError(f"Unknown event kind: {kind!r}")
        payload = data.get("payload") or {}
        if not isinstance(payload, dict):
            raise ValueError("event payload must be an object")
        try:
            return cls(
                seq=int(data["seq"]),
                kind=kind,
                actor=str(data["actor"]),
                timestamp=int(data["timestamp"]),
                payload=dict(payload),
            )
        except KeyError as e:
            raise ValueError(f"event is missing field {e.args[0]!r}") from None
        except (TypeError, ValueError) as e:
            raise ValueError(f"malformed event: {e}") from None


class EventLog:
    """Append-only record of committed operations.

    Only successful operations are appended; `seq` starts at 1 and has no gaps.
    """

    def __init__(self, events: Iterable[LedgerEvent] = ()) -> None:
        self._lock = threading.RLock()
        self._events: list[LedgerEvent] = []
        for ev in events:
            self._push_locked(ev)

    def _push_locked(self, event: LedgerEvent) -> None:
        expected = len(self._events) + 1
        if int(event.seq) != expected:
            raise ValueError(f"event seq {event.seq} out of order, expected {expected}")
        self._events.append(event)

    def append(self, kind: str, actor: str, timestamp: int, payload: dict[str, Any] | None = None) -> LedgerEvent:
        if kind not in EVENT_KINDS:
            raise ValueError(f"Unknown event kind: {kind!r}")
        with self._lock:
            ev = LedgerEvent(
                seq=len(self._events) + 1,
                kind=kind,
                actor=str(actor),
                timestamp=int(timestamp),
                payload=dict(payload or {}),
            )
            self._events.append(ev)
            return ev

    def since(self, seq: int = 0) -> list[LedgerEvent]:
        with self._lock:
            start = max(0, int(seq))
            return list(self._events[start:])

    def latest_seq(self) -> int:
        with self._lock:
            return len(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def __iter__(self) -> Iterator[LedgerEvent]:
        return iter(self.since(0))

    def to_jsonl(self) -> str:
        lines = [json.dumps(ev.to_dict(), sort_keys=True) for ev in self]
        return "\n".join(lines) + ("\n" if lines else "")

    @classmethod
    def from_jsonl(cls, text: str) -> "EventLog":
        events: list[LedgerEvent] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"line {lineno}: invalid JSON ({e})") from None
            if not isinstance(data, dict):
                raise ValueError(f"line {lineno}: expected a JSON object")
            events.append(LedgerEvent.from_dict(data))
        return cls(events)

    def dump(self, path: str | Path) -> Path:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(self.to_jsonl(), encoding="utf-8")
        return p

    @classmethod
    def load(cls, path: str | Path) -> "EventLog":
        return cls.from_jsonl(Path(path).read_text(encoding="utf-8"))
