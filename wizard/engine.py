"""Per-session form runtime: answers, steps, autosave and submission."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Callable, Mapping

import config
from core.field_types import FieldType
from core.rules import file_metadata
from core.schema import FieldDefinition, FormDefinition
from core.validators import CompositeValidator, FieldError, ValidationResult, derive_validator
from state.autosave import AutosaveScheduler
from state.kv import InMemoryStore, KeyValueStore
from state.progress_store import PersistedProgress, ProgressStore
from utils.logging_context import log_context, set_form_id, set_form_step
from wizard.navigation import NavigationState, StepNavigator
from wizard.segmenter import Segmentation, Step, segment
from wizard.submission import SubmissionPipeline, SubmissionStatus, SubmitCallable

logger = logging.getLogger(__name__)


class FormEngine:
    """Drive one respondent's session through a form.

    The engine owns the AnswerMap and navigation state, derives the validator
    and steps from the immutable :class:`FormDefinition`, persists snapshots
    through a :class:`ProgressStore` and submits through the injected
    ``submit`` collaborator. Call :meth:`start` before use and :meth:`stop`
    when the session ends, or use the engine as a (async) context manager.
    """

    def __init__(
        self,
        form: FormDefinition,
        *,
        submit: SubmitCallable,
        store: KeyValueStore | None = None,
        progress_store: ProgressStore | None = None,
        lang: str | None = None,
        clock: Callable[[], float] | None = None,
        retention: timedelta | None = None,
        autosave_interval: float = config.AUTOSAVE_INTERVAL_SECONDS,
        save_debounce: float = config.SAVE_DEBOUNCE_SECONDS,
        clear_progress_on_success: bool = config.CLEAR_PROGRESS_ON_SUCCESS,
    ) -> None:
        self.form = form
        self.validator: CompositeValidator = derive_validator(form, lang=lang)
        self.segmentation: Segmentation = segment(form)
        if progress_store is None:
            store_kwargs: dict[str, Any] = {"clock": clock}
            if retention is not None:
                store_kwargs["retention"] = retention
            progress_store = ProgressStore(store if store is not None else InMemoryStore(), **store_kwargs)
        self.progress_store = progress_store
        self._answers: dict[str, Any] = form.initial_answers()
        self._field_errors: dict[str, str] = {}
        self._started = False
        self.navigator = StepNavigator(self.segmentation.total_steps, on_change=self._on_navigation_change)
        self.autosave = AutosaveScheduler(self.save_progress, interval=autosave_interval, debounce=save_debounce)
        self.pipeline = SubmissionPipeline(
            self.validator,
            submit,
            form_id=form.id,
            on_success=self._on_submitted if clear_progress_on_success else None,
            lang=self.validator.lang,
        )

    # -- lifecycle -----------------------------------------------------------------

    def start(self) -> bool:
        """Restore saved progress and arm autosave; return ``True`` if restored."""

        if self._started:
            return False
        self._started = True
        set_form_id(self.form.id)
        snapshot = self.progress_store.load(self.form.id)
        restored = False
        if snapshot is not None:
            self.restore(snapshot)
            restored = True
            logger.info("Restored progress at step %s", self.navigator.current_step_index)
        set_form_step(self.navigator.current_step_index)
        self.autosave.start()
        return restored

    def stop(self) -> None:
        """Disarm timers and write a final snapshot."""

        if not self._started:
            return
        self._started = False
        self.autosave.stop(flush=not self.pipeline.succeeded)

    def __enter__(self) -> "FormEngine":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    async def __aenter__(self) -> "FormEngine":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # -- answers -------------------------------------------------------------------

    @property
    def answers(self) -> dict[str, Any]:
        return dict(self._answers)

    def _answerable_field(self, field_id: str) -> FieldDefinition:
        field = self.form.get_field(field_id)
        if field is None or field.is_delimiter:
            raise KeyError(field_id)
        return field

    def get_value(self, field_id: str) -> Any:
        self._answerable_field(field_id)
        return self._answers[field_id]

    def set_value(self, field_id: str, value: Any) -> None:
        """Store an answer; a field currently showing an error is re-validated."""

        self._answerable_field(field_id)
        self._answers[field_id] = value
        if field_id in self._field_errors:
            self._apply_field_result(field_id, self.validator.validate(field_id, value))

    def field_error(self, field_id: str) -> str | None:
        return self._field_errors.get(field_id)

    @property
    def field_errors(self) -> dict[str, str]:
        return dict(self._field_errors)

    def _apply_field_result(self, field_id: str, result: ValidationResult) -> None:
        if result.error is None:
            self._field_errors.pop(field_id, None)
        else:
            self._field_errors[field_id] = result.error.message

    def _apply_errors(self, field_ids: tuple[str, ...], errors: list[FieldError] | tuple[FieldError, ...]) -> None:
        for field_id in field_ids:
            self._field_errors.pop(field_id, None)
        for error in errors:
            self._field_errors.setdefault(error.field_id, error.message)

    # -- steps ---------------------------------------------------------------------

    @property
    def steps(self) -> tuple[Step, ...]:
        return self.segmentation.steps

    @property
    def is_multi_step(self) -> bool:
        return self.segmentation.is_multi_step

    @property
    def navigation_state(self) -> NavigationState:
        return self.navigator.state

    @property
    def current_step(self) -> Step:
        return self.segmentation.steps[self.navigator.current_step_index]

    @property
    def is_last_step(self) -> bool:
        return self.navigator.is_last_step

    @property
    def completion_percentage(self) -> float:
        return self.navigator.completion_percentage

    def can_access_step(self, index: int) -> bool:
        return self.navigator.can_access(index)

    def step_errors(self, index: int) -> list[str]:
        return self.navigator.get_step_errors(index)

    def validate_current_step(self) -> ValidationResult:
        """Validate the fields of the current step and record inline errors."""

        step = self.current_step
        result = self.validator.validate_fields(step.field_ids, self._answers)
        self._apply_errors(step.field_ids, result.errors)
        return result

    def go_to_step(self, index: int) -> bool:
        return self.navigator.go_to_step(index)

    def next_step(self) -> bool:
        """Validate the current step and advance when it passes.

        On the last step a passing validation only marks it completed; the
        caller submits instead of advancing.
        """

        self.pipeline.clear_error()
        result = self.validate_current_step()
        return self.navigator.next_step(result)

    def previous_step(self) -> bool:
        return self.navigator.previous_step()

    def _on_navigation_change(self, state: NavigationState) -> None:
        set_form_step(state.current_step_index)
        self.autosave.request_save()

    # -- persistence ---------------------------------------------------------------

    def snapshot(self) -> PersistedProgress:
        state = self.navigator.state
        return PersistedProgress(
            form_id=self.form.id,
            step_index=state.current_step_index,
            answers=self._persistable_answers(),
            completed_steps=sorted(state.completed_steps),
            visited_steps=sorted(state.visited_steps),
            step_errors=state.step_errors,
            timestamp=self.progress_store.now_ms(),
        )

    def _persistable_answers(self) -> dict[str, Any]:
        answers: dict[str, Any] = {}
        for field in self.form.answerable_fields:
            value = self._answers.get(field.id)
            if field.type is FieldType.FILE_UPLOAD and isinstance(value, (list, tuple)):
                value = [file_metadata(item) for item in value]
            answers[field.id] = value
        return answers

    def save_progress(self) -> bool:
        """Write the current snapshot; failures are logged and reported as ``False``."""

        try:
            snapshot = self.snapshot()
        except Exception:
            logger.warning("Could not build progress snapshot", exc_info=True)
            return False
        return self.progress_store.save(snapshot)

    def restore(self, snapshot: PersistedProgress) -> None:
        """Overwrite answers and navigation with ``snapshot``."""

        answers = self.form.initial_answers()
        answers.update({key: value for key, value in snapshot.answers.items() if key in answers})
        self._answers = answers
        self._field_errors = {}
        self.navigator.restore(
            NavigationState(
                current_step_index=snapshot.step_index,
                visited_steps=set(snapshot.visited_steps),
                completed_steps=set(snapshot.completed_steps),
                step_errors={index: list(errors) for index, errors in snapshot.step_errors.items()},
            )
        )

    def handle_unload(self) -> None:
        """Best-effort synchronous save when the page goes away."""

        self.autosave.flush()

    def clear_progress(self) -> None:
        """Delete saved progress and start over with default answers."""

        self.progress_store.clear(self.form.id)
        self._answers = self.form.initial_answers()
        self._field_errors = {}
        self.pipeline.clear_error()
        self.navigator.restore(NavigationState())
        set_form_step(0)

    # -- submission ----------------------------------------------------------------

    async def submit(self) -> bool:
        with log_context(form_step=self.navigator.current_step_index):
            succeeded = await self.pipeline.submit(self._answers)
        if not succeeded and self.pipeline.field_errors:
            self._apply_errors(self.validator.field_ids, self.pipeline.field_errors)
        return succeeded

    @property
    def submission_status(self) -> SubmissionStatus:
        return self.pipeline.status

    @property
    def is_submitting(self) -> bool:
        return self.pipeline.is_submitting

    @property
    def submit_error(self) -> str | None:
        return self.pipeline.error_message

    @property
    def has_submit_error(self) -> bool:
        return self.pipeline.has_error

    def clear_submit_error(self) -> None:
        self.pipeline.clear_error()

    def _on_submitted(self) -> None:
        self.autosave.stop(flush=False)
        self.progress_store.clear(self.form.id)


def load_form_definition(payload: Mapping[str, Any]) -> FormDefinition:
    """Validate a form payload, e.g. JSON exported by the form builder."""

    return FormDefinition.model_validate(payload)


__all__ = ["FormEngine", "load_form_definition"]
