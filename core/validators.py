"""Composite validator derived from a form definition."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from core.field_types import empty_answer, is_empty_answer, spec_for
from core.rules import check_shape, required_violation, rule_for
from core.schema import FieldDefinition, FormDefinition
from utils.i18n import resolve_language


@dataclass(frozen=True)
class FieldError:
    """Validation failure for a single field."""

    field_id: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one field or a group of fields."""

    errors: tuple[FieldError, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def error(self) -> FieldError | None:
        """Return the first error, if any."""

        return self.errors[0] if self.errors else None

    @property
    def messages(self) -> list[str]:
        return [error.message for error in self.errors]

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls()


class CompositeValidator:
    """Validate answers for every field of a form.

    Rules run in a fixed order and the first violation wins: the answer shape,
    then emptiness against the ``required`` flag, then the type-specific rule.
    Errors are always returned as data, never raised.
    """

    def __init__(self, fields: Sequence[FieldDefinition], *, lang: str | None = None) -> None:
        self._fields: tuple[FieldDefinition, ...] = tuple(field for field in fields if not field.is_delimiter)
        self._field_map: dict[str, FieldDefinition] = {field.id: field for field in self._fields}
        self._lang = resolve_language(lang)

    @property
    def field_ids(self) -> tuple[str, ...]:
        return tuple(self._field_map)

    @property
    def lang(self) -> str:
        return self._lang

    def validate(self, field_id: str, value: Any) -> ValidationResult:
        """Validate ``value`` against the rules of ``field_id``.

        Unknown field ids validate successfully.
        """

        field = self._field_map.get(field_id)
        if field is None:
            return ValidationResult.ok()
        message = self._first_violation(field, value)
        if message is None:
            return ValidationResult.ok()
        return ValidationResult((FieldError(field_id, message),))

    def validate_fields(self, field_ids: Iterable[str], answers: Mapping[str, Any]) -> ValidationResult:
        """Validate a subset of fields, e.g. the fields of one step."""

        errors: list[FieldError] = []
        for field_id in field_ids:
            field = self._field_map.get(field_id)
            if field is None:
                continue
            result = self.validate(field_id, answers.get(field_id, empty_answer(field.type)))
            errors.extend(result.errors)
        return ValidationResult(tuple(errors))

    def validate_all(self, answers: Mapping[str, Any]) -> list[FieldError]:
        """Return every field error in form order."""

        return list(self.validate_fields(self._field_map, answers).errors)

    def _first_violation(self, field: FieldDefinition, value: Any) -> str | None:
        spec = spec_for(field.type)
        if spec.structural:
            return None
        # ``None`` is the unanswered default of every shape.
        violation = check_shape(spec.shape, value) if value is not None else None
        if violation is None and is_empty_answer(spec.shape, value):
            if not field.required:
                return None
            violation = required_violation(field)
        if violation is None:
            violation = rule_for(field.type)(field, value)
        if violation is None:
            return None
        return violation.render(field, self._lang)


def derive_validator(
    form: FormDefinition | Sequence[FieldDefinition],
    *,
    lang: str | None = None,
) -> CompositeValidator:
    """Build the :class:`CompositeValidator` for ``form``."""

    fields = form.fields if isinstance(form, FormDefinition) else form
    return CompositeValidator(fields, lang=lang)


__all__ = ["CompositeValidator", "FieldError", "ValidationResult", "derive_validator"]
