"""Tests for autosaved progress persistence."""

from __future__ import annotations

import json
import logging
from datetime import timedelta

import pytest

from state.kv import FileStore, InMemoryStore, SessionStateStore
from state.progress_store import PersistedProgress, ProgressStore
from tests.helpers import FakeClock

DAY = 24 * 60 * 60


def _snapshot(store: ProgressStore, **overrides) -> PersistedProgress:
    data = {
        "form_id": "form-1",
        "step_index": 1,
        "answers": {"name": "Ada"},
        "completed_steps": [0],
        "visited_steps": [1, 0, 1],
        "step_errors": {},
        "timestamp": store.now_ms(),
    }
    data.update(overrides)
    return PersistedProgress(**data)


def test_save_and_load_round_trip(clock: FakeClock) -> None:
    backend = InMemoryStore()
    store = ProgressStore(backend, clock=clock)

    assert store.save(_snapshot(store))
    loaded = store.load("form-1")

    assert loaded is not None
    assert loaded.step_index == 1
    assert loaded.answers == {"name": "Ada"}
    assert loaded.visited_steps == [0, 1]
    assert "progress:form-1" in backend


def test_records_use_camel_case_keys(clock: FakeClock) -> None:
    backend = InMemoryStore()
    store = ProgressStore(backend, clock=clock)
    store.save(_snapshot(store, step_errors={2: ["Name is required"]}))

    raw = json.loads(backend.get("progress:form-1") or "{}")

    assert raw["formId"] == "form-1"
    assert raw["stepIndex"] == 1
    assert raw["stepErrors"] == {"2": ["Name is required"]}
    assert store.load("form-1").step_errors == {2: ["Name is required"]}


def test_snapshot_is_kept_until_retention_passes(clock: FakeClock) -> None:
    store = ProgressStore(InMemoryStore(), clock=clock)
    store.save(_snapshot(store))

    clock.advance(7 * DAY)

    assert store.load("form-1") is not None


def test_expired_snapshot_is_deleted(clock: FakeClock) -> None:
    backend = InMemoryStore()
    store = ProgressStore(backend, clock=clock)
    store.save(_snapshot(store))

    clock.advance(8 * DAY)

    assert store.load("form-1") is None
    assert len(backend) == 0


def test_custom_retention(clock: FakeClock) -> None:
    store = ProgressStore(InMemoryStore(), clock=clock, retention=timedelta(hours=1))
    store.save(_snapshot(store))

    clock.advance(2 * 60 * 60)

    assert store.load("form-1") is None


def test_unreadable_record_is_discarded(clock: FakeClock, caplog: pytest.LogCaptureFixture) -> None:
    backend = InMemoryStore({"progress:form-1": "{not json"})
    store = ProgressStore(backend, clock=clock)

    with caplog.at_level(logging.WARNING):
        assert store.load("form-1") is None

    assert len(backend) == 0
    assert "unreadable" in caplog.text


def test_record_for_other_form_is_discarded(clock: FakeClock) -> None:
    backend = InMemoryStore()
    store = ProgressStore(backend, clock=clock)
    backend.set("progress:form-1", _snapshot(store, form_id="form-2").to_json())

    assert store.load("form-1") is None
    assert "progress:form-1" not in backend


class _BrokenStore:
    def get(self, key: str) -> str | None:
        raise OSError("quota exceeded")

    def set(self, key: str, value: str) -> None:
        raise OSError("quota exceeded")

    def remove(self, key: str) -> None:
        raise OSError("quota exceeded")


def test_store_failures_do_not_propagate(clock: FakeClock, caplog: pytest.LogCaptureFixture) -> None:
    store = ProgressStore(_BrokenStore(), clock=clock)

    with caplog.at_level(logging.WARNING):
        assert store.save(_snapshot(store)) is False
        assert store.load("form-1") is None
        store.clear("form-1")

    assert "Failed to save progress" in caplog.text


def test_clear_removes_record(clock: FakeClock) -> None:
    backend = InMemoryStore()
    store = ProgressStore(backend, clock=clock)
    store.save(_snapshot(store))

    store.clear("form-1")

    assert store.load("form-1") is None


def test_session_state_store_uses_namespace() -> None:
    session: dict[str, object] = {}
    store = SessionStateStore(namespace="kv", session_state=session)

    store.set("progress:a", "{}")

    assert session == {"kv": {"progress:a": "{}"}}
    assert store.get("progress:a") == "{}"
    store.remove("progress:a")
    assert store.get("progress:a") is None


def test_session_state_store_defaults_to_streamlit_state() -> None:
    import streamlit as st

    SessionStateStore().set("k", "v")

    assert st.session_state["formstep.kv"] == {"k": "v"}


def test_file_store_round_trip(tmp_path) -> None:
    store = FileStore(tmp_path / "progress")

    assert store.get("progress:form/1") is None
    store.set("progress:form/1", '{"a": 1}')

    assert store.get("progress:form/1") == '{"a": 1}'
    assert store.path_for("progress:form/1").parent == tmp_path / "progress"
    store.remove("progress:form/1")
    store.remove("progress:form/1")
    assert store.get("progress:form/1") is None
