"""Tests for redaction helpers and durable stores."""

import time

import pytest

from vigil.core.exceptions import StorageError
from vigil.core.models import EventContext, LogEvent, LogKind
from vigil.core.telemetry import REDACTED, JsonLinesStore, MemoryStore, sanitize_mapping, sanitize_stack


def _event(name: str, **context) -> LogEvent:
    return LogEvent(
        kind=LogKind.ACTION,
        name=name,
        context=EventContext.from_mapping(context),
        timestamp_ms=int(time.time() * 1000),
    )


class TestSanitize:
    def test_redacts_nested_sensitive_keys(self) -> None:
        data = {"user": "ops", "request": {"headers": {"Authorization": "Bearer abc", "accept": "json"}}}

        result = sanitize_mapping(data)

        assert result["user"] == "ops"
        assert result["request"]["headers"]["Authorization"] == REDACTED
        assert result["request"]["headers"]["accept"] == "json"
        assert data["request"]["headers"]["Authorization"] == "Bearer abc"

    def test_additional_fields_are_case_insensitive(self) -> None:
        assert sanitize_mapping({"Tenant_ID": "t-1"}, ["tenant_id"]) == {"Tenant_ID": REDACTED}

    def test_stack_paths_are_scrubbed(self) -> None:
        stack = 'File "/home/alice/project/app.py", line 3\nFile "/Users/bob/work/x.py"'

        scrubbed = sanitize_stack(stack)

        assert "alice" not in scrubbed
        assert "bob" not in scrubbed
        assert "/home/[REDACTED]/[REDACTED]/app.py" in scrubbed

    def test_empty_stack_passes_through(self) -> None:
        assert sanitize_stack(None) is None
        assert sanitize_stack("") == ""


class TestMemoryStore:
    def test_persist_load_clear(self) -> None:
        store = MemoryStore()
        events = [_event("a"), _event("b")]

        store.persist(events)

        assert store.load_persisted() == events
        store.clear()
        assert store.load_persisted() == []


class TestJsonLinesStore:
    def test_missing_file_loads_empty(self, tmp_path) -> None:
        assert JsonLinesStore(tmp_path / "absent.jsonl").load_persisted() == []

    def test_appends_across_instances(self, tmp_path) -> None:
        path = tmp_path / "nested" / "events.jsonl"
        first, second = _event("first", route="/a"), _event("second", retries=2)

        JsonLinesStore(path).persist([first])
        JsonLinesStore(path).persist([second])

        assert JsonLinesStore(path).load_persisted() == [first, second]
        assert len(path.read_text(encoding="utf-8").splitlines()) == 2

    def test_unreadable_lines_are_skipped(self, tmp_path) -> None:
        path = tmp_path / "events.jsonl"
        store = JsonLinesStore(path)
        store.persist([_event("kept")])
        with open(path, "a", encoding="utf-8") as file:
            file.write('{"kind": "action", "name": "torn"')

        assert [event.name for event in store.load_persisted()] == ["kept"]

    def test_clear_removes_file(self, tmp_path) -> None:
        path = tmp_path / "events.jsonl"
        store = JsonLinesStore(path)
        store.persist([_event("a")])

        store.clear()
        store.clear()

        assert not path.exists()

    def test_write_failure_raises_storage_error(self, tmp_path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        store = JsonLinesStore(blocker / "events.jsonl")

        with pytest.raises(StorageError) as excinfo:
            store.persist([_event("a")])

        assert excinfo.value.error_code == "STORAGE_ERROR"
