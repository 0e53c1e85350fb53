"""Autosaved form progress with time-based expiry."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

import config
from state.kv import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(days=config.PROGRESS_RETENTION_DAYS)


class PersistedProgress(BaseModel):
    """Snapshot of answers and navigation flags for one form.

    Serialised with camelCase keys; ``stepErrors`` keys become strings in JSON
    and are read back as integers.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    form_id: str = Field(..., alias="formId", min_length=1)
    step_index: int = Field(default=0, alias="stepIndex", ge=0)
    answers: dict[str, Any] = Field(default_factory=dict)
    completed_steps: list[int] = Field(default_factory=list, alias="completedSteps")
    visited_steps: list[int] = Field(default_factory=list, alias="visitedSteps")
    step_errors: dict[int, list[str]] = Field(default_factory=dict, alias="stepErrors")
    timestamp: int = Field(..., ge=0, description="Milliseconds since the epoch.")

    @field_validator("completed_steps", "visited_steps", mode="after")
    @classmethod
    def _sorted_unique(cls, value: list[int]) -> list[int]:
        return sorted(set(value))

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class ProgressStore:
    """Save, load and clear :class:`PersistedProgress` records.

    Store failures never propagate: writes are dropped and reads behave as if
    nothing had been saved. Records older than the retention window are
    deleted when they are read.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        retention: timedelta = DEFAULT_RETENTION,
        key_prefix: str = config.PROGRESS_KEY_PREFIX,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._store = store
        self.retention = retention
        self._key_prefix = key_prefix
        self._clock = clock or time.time

    def key_for(self, form_id: str) -> str:
        return f"{self._key_prefix}{form_id}"

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def save(self, snapshot: PersistedProgress) -> bool:
        """Persist ``snapshot``; return ``False`` when the write failed."""

        try:
            self._store.set(self.key_for(snapshot.form_id), snapshot.to_json())
        except Exception:
            logger.warning("Failed to save progress for form '%s'", snapshot.form_id, exc_info=True)
            return False
        logger.debug("Saved progress for form '%s' at step %s", snapshot.form_id, snapshot.step_index)
        return True

    def load(self, form_id: str) -> PersistedProgress | None:
        """Return the saved snapshot for ``form_id`` unless missing or expired."""

        key = self.key_for(form_id)
        try:
            raw = self._store.get(key)
        except Exception:
            logger.warning("Failed to read progress for form '%s'", form_id, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            snapshot = PersistedProgress.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable progress record for form '%s'", form_id)
            self.clear(form_id)
            return None
        if snapshot.form_id != form_id:
            logger.warning("Discarding progress record saved for form '%s' under '%s'", snapshot.form_id, key)
            self.clear(form_id)
            return None
        age_ms = self.now_ms() - snapshot.timestamp
        if age_ms > self.retention.total_seconds() * 1000:
            logger.info("Discarding expired progress for form '%s' (age %.1f h)", form_id, age_ms / 3_600_000)
            self.clear(form_id)
            return None
        return snapshot

    def clear(self, form_id: str) -> None:
        try:
            self._store.remove(self.key_for(form_id))
        except Exception:
            logger.warning("Failed to clear progress for form '%s'", form_id, exc_info=True)


__all__ = ["DEFAULT_RETENTION", "PersistedProgress", "ProgressStore"]
