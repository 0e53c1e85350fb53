"""Shared builders for the test-suite."""

from __future__ import annotations

from typing import Any

from core.schema import FormDefinition


class FakeClock:
    """Deterministic clock returning seconds since the epoch."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_form(fields: list[dict[str, Any]], *, form_id: str = "form-1") -> FormDefinition:
    return FormDefinition.model_validate({"id": form_id, "title": "Test form", "fields": fields})


class RecordingSubmit:
    """Async submit collaborator that records payloads and can fail on demand."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self.error = error

    async def __call__(self, answers: dict[str, Any]) -> None:
        self.calls.append(dict(answers))
        if self.error is not None:
            raise self.error
