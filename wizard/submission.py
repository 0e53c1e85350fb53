"""Guarded submission of a completed form."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any, Awaitable, Callable, Final, Mapping

from opentelemetry import trace

from core.errors import (
    DuplicateSubmissionError,
    FormNotFoundError,
    SubmissionConnectionError,
    SubmissionValidationError,
)
from core.validators import CompositeValidator, FieldError
from utils.i18n import LocalizedText, tr_pair
from utils.logging_context import log_context

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SubmitCallable = Callable[[dict[str, Any]], Awaitable[None]]

FIX_FIELDS_MESSAGE: Final[LocalizedText] = (
    "Bitte überprüfe alle Pflichtfelder und korrigiere die markierten Fehler.",
    "Please check all required fields and correct any errors.",
)
VALIDATION_FAILED_MESSAGE: Final[LocalizedText] = (
    "Bitte überprüfe deine Antworten und versuche es erneut.",
    "Please check your responses and try again.",
)
NOT_FOUND_MESSAGE: Final[LocalizedText] = (
    "Dieses Formular ist nicht mehr verfügbar.",
    "This form is no longer available.",
)
DUPLICATE_MESSAGE: Final[LocalizedText] = (
    "Du hast dieses Formular bereits beantwortet.",
    "You have already submitted a response to this form.",
)
CONNECTIVITY_MESSAGE: Final[LocalizedText] = (
    "Das Formular konnte nicht gesendet werden. Bitte prüfe deine Internetverbindung und versuche es erneut.",
    "Unable to submit the form. Please check your internet connection and try again.",
)
UNEXPECTED_MESSAGE: Final[LocalizedText] = (
    "Beim Senden des Formulars ist ein unerwarteter Fehler aufgetreten.",
    "An unexpected error occurred while submitting the form.",
)

_MAX_ECHO_LENGTH: Final[int] = 200


class SubmissionStatus(StrEnum):
    """Lifecycle of a submission attempt."""

    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCESS = "success"


class SubmissionErrorKind(StrEnum):
    """User-facing categories of failed submissions."""

    FIELDS = "fields"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    CONNECTIVITY = "connectivity"
    UNKNOWN = "unknown"


_KIND_MESSAGES: Final[Mapping[SubmissionErrorKind, LocalizedText]] = {
    SubmissionErrorKind.FIELDS: FIX_FIELDS_MESSAGE,
    SubmissionErrorKind.VALIDATION: VALIDATION_FAILED_MESSAGE,
    SubmissionErrorKind.NOT_FOUND: NOT_FOUND_MESSAGE,
    SubmissionErrorKind.DUPLICATE: DUPLICATE_MESSAGE,
    SubmissionErrorKind.CONNECTIVITY: CONNECTIVITY_MESSAGE,
    SubmissionErrorKind.UNKNOWN: UNEXPECTED_MESSAGE,
}

# Message fragments used by collaborators that raise untyped exceptions.
_KEYWORD_KINDS: Final[tuple[tuple[tuple[str, ...], SubmissionErrorKind], ...]] = (
    (("validation failed", "invalid submission"), SubmissionErrorKind.VALIDATION),
    (("form not found", "not found", "expired", "no longer accepting"), SubmissionErrorKind.NOT_FOUND),
    (("already submitted", "duplicate submission"), SubmissionErrorKind.DUPLICATE),
    (("failed to submit form", "network", "connection", "timed out", "timeout"), SubmissionErrorKind.CONNECTIVITY),
)


def _is_human_readable(message: str) -> bool:
    text = message.strip()
    if not text or len(text) > _MAX_ECHO_LENGTH:
        return False
    if "\n" in text or "Traceback" in text or text.startswith(("<", "{", "[")):
        return False
    return any(char.isalpha() for char in text)


def classify_submission_error(error: BaseException, *, lang: str | None = None) -> tuple[SubmissionErrorKind, str]:
    """Map ``error`` to a category and the message shown to the respondent."""

    kind: SubmissionErrorKind | None = None
    if isinstance(error, SubmissionValidationError):
        kind = SubmissionErrorKind.VALIDATION
    elif isinstance(error, FormNotFoundError):
        kind = SubmissionErrorKind.NOT_FOUND
    elif isinstance(error, DuplicateSubmissionError):
        kind = SubmissionErrorKind.DUPLICATE
    elif isinstance(error, (SubmissionConnectionError, ConnectionError, TimeoutError)):
        kind = SubmissionErrorKind.CONNECTIVITY

    raw_message = str(error)
    if kind is None:
        lowered = raw_message.lower()
        for keywords, candidate in _KEYWORD_KINDS:
            if any(keyword in lowered for keyword in keywords):
                kind = candidate
                break

    if kind is not None:
        return kind, tr_pair(_KIND_MESSAGES[kind], lang)
    if _is_human_readable(raw_message):
        return SubmissionErrorKind.UNKNOWN, raw_message.strip()
    return SubmissionErrorKind.UNKNOWN, tr_pair(UNEXPECTED_MESSAGE, lang)


class SubmissionPipeline:
    """Validate the full AnswerMap and hand it to the submit collaborator.

    At most one attempt runs at a time: the in-flight flag is set before the
    first ``await`` so a second call made while the first one is pending
    returns immediately. Failures never propagate; they are kept as
    :attr:`error_message` until cleared or a new attempt starts.
    """

    def __init__(
        self,
        validator: CompositeValidator,
        submit: SubmitCallable,
        *,
        form_id: str = "-",
        on_success: Callable[[], None] | None = None,
        lang: str | None = None,
    ) -> None:
        self._validator = validator
        self._submit = submit
        self._form_id = form_id
        self._on_success = on_success
        self._lang = lang or validator.lang
        self._status = SubmissionStatus.IDLE
        self._error_message: str | None = None
        self._error_kind: SubmissionErrorKind | None = None
        self._field_errors: list[FieldError] = []

    @property
    def status(self) -> SubmissionStatus:
        return self._status

    @property
    def is_submitting(self) -> bool:
        return self._status in (SubmissionStatus.VALIDATING, SubmissionStatus.SUBMITTING)

    @property
    def succeeded(self) -> bool:
        return self._status is SubmissionStatus.SUCCESS

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def error_kind(self) -> SubmissionErrorKind | None:
        return self._error_kind

    @property
    def has_error(self) -> bool:
        return self._error_message is not None

    @property
    def field_errors(self) -> list[FieldError]:
        return list(self._field_errors)

    def clear_error(self) -> None:
        self._error_message = None
        self._error_kind = None

    async def submit(self, answers: Mapping[str, Any]) -> bool:
        """Run one submission attempt; return ``True`` when it succeeded."""

        if self.is_submitting:
            logger.info("Submission already in progress for form '%s'; ignoring duplicate call", self._form_id)
            return False
        self._status = SubmissionStatus.VALIDATING
        self.clear_error()
        self._field_errors = []

        with log_context(form_id=self._form_id, pipeline_task="submit"):
            with tracer.start_as_current_span("form.submit") as span:
                span.set_attribute("form.id", self._form_id)
                errors = self._validator.validate_all(answers)
                if errors:
                    self._field_errors = errors
                    self._fail(SubmissionErrorKind.FIELDS, tr_pair(FIX_FIELDS_MESSAGE, self._lang))
                    span.set_attribute("form.submit.outcome", "invalid")
                    span.set_attribute("form.submit.error_count", len(errors))
                    logger.info("Submission blocked by %d field error(s)", len(errors))
                    return False

                self._status = SubmissionStatus.SUBMITTING
                payload = dict(answers)
                try:
                    await self._submit(payload)
                except Exception as exc:
                    kind, message = classify_submission_error(exc, lang=self._lang)
                    self._fail(kind, message)
                    span.set_attribute("form.submit.outcome", "failed")
                    span.set_attribute("form.submit.error_kind", kind.value)
                    span.record_exception(exc)
                    logger.warning("Submission failed (%s): %s", kind.value, exc)
                    return False

                self._status = SubmissionStatus.SUCCESS
                span.set_attribute("form.submit.outcome", "success")
                logger.info("Form submitted")
        if self._on_success is not None:
            self._on_success()
        return True

    def _fail(self, kind: SubmissionErrorKind, message: str) -> None:
        self._error_kind = kind
        self._error_message = message
        self._status = SubmissionStatus.IDLE


__all__ = [
    "SubmissionErrorKind",
    "SubmissionPipeline",
    "SubmissionStatus",
    "SubmitCallable",
    "classify_submission_error",
]
