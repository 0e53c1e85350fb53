"""Tests for the guarded submission pipeline."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from core.errors import (
    DuplicateSubmissionError,
    FormNotFoundError,
    SubmissionConnectionError,
    SubmissionValidationError,
)
from core.validators import derive_validator
from wizard.submission import (
    SubmissionErrorKind,
    SubmissionPipeline,
    SubmissionStatus,
    classify_submission_error,
)
from tests.helpers import RecordingSubmit, make_form


@pytest.fixture
def validator():
    form = make_form([{"id": "name", "type": "shortText", "label": "Name", "required": True}])
    return derive_validator(form, lang="en")


def test_invalid_answers_block_submission(validator) -> None:
    submit = RecordingSubmit()
    pipeline = SubmissionPipeline(validator, submit, form_id="form-1", lang="en")

    succeeded = asyncio.run(pipeline.submit({"name": ""}))

    assert succeeded is False
    assert submit.calls == []
    assert pipeline.status is SubmissionStatus.IDLE
    assert pipeline.error_kind is SubmissionErrorKind.FIELDS
    assert pipeline.error_message == "Please check all required fields and correct any errors."
    assert [error.field_id for error in pipeline.field_errors] == ["name"]


def test_successful_submission_calls_collaborator_once(validator) -> None:
    submit = RecordingSubmit()
    completed: list[bool] = []
    pipeline = SubmissionPipeline(validator, submit, on_success=lambda: completed.append(True), lang="en")

    assert asyncio.run(pipeline.submit({"name": "Ada"})) is True

    assert submit.calls == [{"name": "Ada"}]
    assert pipeline.succeeded
    assert completed == [True]
    assert not pipeline.has_error


def test_concurrent_submits_reach_collaborator_once(validator) -> None:
    calls: list[dict[str, Any]] = []

    async def slow_submit(answers: dict[str, Any]) -> None:
        calls.append(answers)
        await asyncio.sleep(0.02)

    pipeline = SubmissionPipeline(validator, slow_submit, lang="en")

    async def scenario() -> list[bool]:
        first = asyncio.create_task(pipeline.submit({"name": "Ada"}))
        await asyncio.sleep(0)
        assert pipeline.is_submitting
        second = await pipeline.submit({"name": "Ada"})
        return [await first, second]

    results = asyncio.run(scenario())

    assert results == [True, False]
    assert len(calls) == 1


def test_failure_is_reported_and_retry_is_allowed(validator) -> None:
    submit = RecordingSubmit(error=SubmissionConnectionError("Failed to submit form"))
    pipeline = SubmissionPipeline(validator, submit, lang="en")

    assert asyncio.run(pipeline.submit({"name": "Ada"})) is False
    assert pipeline.error_kind is SubmissionErrorKind.CONNECTIVITY
    assert pipeline.status is SubmissionStatus.IDLE

    submit.error = None
    assert asyncio.run(pipeline.submit({"name": "Ada"})) is True
    assert pipeline.error_message is None
    assert len(submit.calls) == 2


def test_clear_error(validator) -> None:
    pipeline = SubmissionPipeline(validator, RecordingSubmit(error=RuntimeError("boom")), lang="en")
    asyncio.run(pipeline.submit({"name": "Ada"}))

    pipeline.clear_error()

    assert not pipeline.has_error
    assert pipeline.error_kind is None


@pytest.mark.parametrize(
    ("error", "kind", "message"),
    [
        (SubmissionValidationError("x"), SubmissionErrorKind.VALIDATION, "Please check your responses and try again."),
        (FormNotFoundError("x"), SubmissionErrorKind.NOT_FOUND, "This form is no longer available."),
        (
            DuplicateSubmissionError("x"),
            SubmissionErrorKind.DUPLICATE,
            "You have already submitted a response to this form.",
        ),
        (
            TimeoutError(),
            SubmissionErrorKind.CONNECTIVITY,
            "Unable to submit the form. Please check your internet connection and try again.",
        ),
        (RuntimeError("Validation failed: email"), SubmissionErrorKind.VALIDATION, None),
        (RuntimeError("Form has expired"), SubmissionErrorKind.NOT_FOUND, None),
        (RuntimeError("You have already submitted"), SubmissionErrorKind.DUPLICATE, None),
        (RuntimeError("network unreachable"), SubmissionErrorKind.CONNECTIVITY, None),
    ],
)
def test_classification(error: Exception, kind: SubmissionErrorKind, message: str | None) -> None:
    classified_kind, classified_message = classify_submission_error(error, lang="en")

    assert classified_kind is kind
    if message is not None:
        assert classified_message == message


def test_readable_messages_are_echoed() -> None:
    assert classify_submission_error(RuntimeError("Quota reached for today"), lang="en") == (
        SubmissionErrorKind.UNKNOWN,
        "Quota reached for today",
    )


def test_unreadable_messages_fall_back_to_generic() -> None:
    generic = "An unexpected error occurred while submitting the form."

    assert classify_submission_error(RuntimeError(""), lang="en")[1] == generic
    assert classify_submission_error(RuntimeError("x" * 500), lang="en")[1] == generic
    assert classify_submission_error(RuntimeError("{'trace': 1}"), lang="en")[1] == generic


def test_classification_is_localised() -> None:
    _, message = classify_submission_error(FormNotFoundError("gone"), lang="de")

    assert message == "Dieses Formular ist nicht mehr verfügbar."
