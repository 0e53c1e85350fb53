"""Durable key-value stores used for progress snapshots."""

from __future__ import annotations

import hashlib
import os
import re
from pathlib import Path
from typing import MutableMapping, Protocol, cast, runtime_checkable

import streamlit as st


@runtime_checkable
class KeyValueStore(Protocol):
    """String key-value store contract consumed by :class:`ProgressStore`."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryStore:
    """Process-local store, mainly for tests and single-process hosts."""

    def __init__(self, initial: MutableMapping[str, str] | None = None) -> None:
        self._data: MutableMapping[str, str] = initial if initial is not None else {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class SessionStateStore:
    """Store entries inside ``st.session_state`` under a common namespace.

    Streamlit keeps session state for the lifetime of a browser session, which
    survives reruns and reconnects of the same tab.
    """

    def __init__(
        self,
        *,
        namespace: str = "formstep.kv",
        session_state: MutableMapping[str, object] | None = None,
    ) -> None:
        self._namespace = namespace
        self._session_state = session_state

    @property
    def _state(self) -> MutableMapping[str, object]:
        if self._session_state is not None:
            return self._session_state
        return cast(MutableMapping[str, object], st.session_state)

    def _bucket(self) -> dict[str, str]:
        state = self._state
        bucket = state.get(self._namespace)
        if not isinstance(bucket, dict):
            bucket = {}
            state[self._namespace] = bucket
        return bucket

    def get(self, key: str) -> str | None:
        value = self._bucket().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._bucket()[key] = value

    def remove(self, key: str) -> None:
        self._bucket().pop(key, None)


_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class FileStore:
    """Store each entry as a UTF-8 file inside ``directory``.

    Survives browser reloads and server restarts, unlike
    :class:`SessionStateStore`. Writes go to a temporary file first and are
    moved into place so readers never see a partial record.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        safe = _UNSAFE_FILENAME_CHARS.sub("_", key).strip("._") or "entry"
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:8]
        return self.directory / f"{safe}-{digest}.json"

    def get(self, key: str) -> str | None:
        try:
            return self.path_for(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def remove(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


__all__ = ["FileStore", "InMemoryStore", "KeyValueStore", "SessionStateStore"]
