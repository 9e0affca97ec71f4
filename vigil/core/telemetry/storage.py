"""Durable stores holding events that could not be delivered."""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from vigil.core.exceptions import StorageError
from vigil.core.logging import logger
from vigil.core.models import LogEvent


@runtime_checkable
class DurableStore(Protocol):
    """Last-resort storage for undeliverable events."""

    def persist(self, batch: list[LogEvent]) -> None: ...

    def load_persisted(self) -> list[LogEvent]: ...

    def clear(self) -> None: ...


class MemoryStore:
    """In-process store, mostly useful in tests and short-lived tools."""

    def __init__(self) -> None:
        self._events: list[LogEvent] = []

    def persist(self, batch: list[LogEvent]) -> None:
        self._events.extend(batch)

    def load_persisted(self) -> list[LogEvent]:
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()


class JsonLinesStore:
    """Appends events to a JSON lines file, one event per line."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def persist(self, batch: list[LogEvent]) -> None:
        if not batch:
            return
        try:
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as file:
                    for event in batch:
                        file.write(json.dumps(event.to_payload()))
                        file.write("\n")
                    file.flush()
                    os.fsync(file.fileno())
        except OSError as e:
            raise StorageError(f"Failed to persist {len(batch)} events", path=str(self.path)) from e

    def load_persisted(self) -> list[LogEvent]:
        if not self.path.exists():
            return []
        try:
            with self._lock, open(self.path, encoding="utf-8") as file:
                lines = file.readlines()
        except OSError as e:
            raise StorageError("Failed to read persisted events", path=str(self.path)) from e

        events: list[LogEvent] = []
        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                events.append(LogEvent.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError):
                # a torn trailing write must not hide the rest of the file
                logger.bind(component="storage").warning(
                    "Skipping unreadable persisted event", path=str(self.path), line=line_number
                )
        return events

    def clear(self) -> None:
        with self._lock:
            try:
                self.path.unlink(missing_ok=True)
            except OSError as e:
                raise StorageError("Failed to clear persisted events", path=str(self.path)) from e
