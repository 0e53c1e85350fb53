"""Form definition models consumed by the runtime engine."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.field_types import (
    FieldType,
    coerce_field_type,
    empty_answer,
    is_delimiter,
    spec_for,
)

# Keys of the builder payload that belong to ``constraints``.
_FLAT_CONSTRAINT_KEYS: tuple[str, ...] = (
    "minLength",
    "maxLength",
    "pattern",
    "minRating",
    "maxRating",
    "acceptedFileTypes",
    "maxFileSizeMB",
    "options",
    "customMessage",
    "allowedDomains",
    "blockedDomains",
    "allowedProtocols",
    "requireOtherText",
)

# ``validationRules`` entries and the constraint they map to.
_VALIDATION_RULE_KEYS: Mapping[str, str] = {
    "min": "minLength",
    "max": "maxLength",
    "pattern": "pattern",
    "customMessage": "customMessage",
    "allowedDomains": "allowedDomains",
    "blockedDomains": "blockedDomains",
    "allowedProtocols": "allowedProtocols",
}

def _deduplicate(values: object) -> tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        values = [values]
    seen: dict[str, None] = {}
    for value in values:  # type: ignore[union-attr]
        if value is None:
            continue
        text = str(value).strip()
        if text:
            seen.setdefault(text, None)
    return tuple(seen)

class FieldConstraints(BaseModel):
    """Type-specific constraints attached to a field."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    min_length: int | None = Field(default=None, alias="minLength", ge=0)
    max_length: int | None = Field(default=None, alias="maxLength", ge=0)
    pattern: str | None = None
    min_rating: int | None = Field(default=None, alias="minRating")
    max_rating: int | None = Field(default=None, alias="maxRating")
    accepted_file_types: tuple[str, ...] = Field(default=(), alias="acceptedFileTypes")
    max_file_size_mb: float | None = Field(default=None, alias="maxFileSizeMB", gt=0)
    options: tuple[str, ...] = ()
    custom_message: str | None = Field(default=None, alias="customMessage")
    allowed_domains: tuple[str, ...] = Field(default=(), alias="allowedDomains")
    blocked_domains: tuple[str, ...] = Field(default=(), alias="blockedDomains")
    allowed_protocols: tuple[str, ...] = Field(default=(), alias="allowedProtocols")
    require_other_text: bool = Field(default=False, alias="requireOtherText")

    @field_validator(
        "options",
        "accepted_file_types",
        "allowed_domains",
        "blocked_domains",
        "allowed_protocols",
        mode="before",
    )
    @classmethod
    def _normalise_ordered_set(cls, value: object) -> tuple[str, ...]:
        return _deduplicate(value)

    @field_validator("pattern", "custom_message", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object | None:
        if isinstance(value, str) and not value.strip():
            return None
        return value

class FieldDefinition(BaseModel):
    """A single question of a form.

    Besides the canonical ``constraints`` object the model accepts the payload
    written by the form builder, where constraints live on the field itself
    or inside ``validationRules`` and file sizes are given as ``maxFileSize``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str = Field(..., min_length=1)
    type: FieldType
    label: str = ""
    required: bool = False
    constraints: FieldConstraints = Field(default_factory=FieldConstraints)
    default_value: Any = Field(default=None, alias="defaultValue")

    @model_validator(mode="before")
    @classmethod
    def _lift_builder_payload(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        payload = dict(data)
        lifted: dict[str, Any] = {}
        rules = payload.get("validationRules")
        if isinstance(rules, Mapping):
            for source_key, target_key in _VALIDATION_RULE_KEYS.items():
                if rules.get(source_key) is not None:
                    lifted[target_key] = rules[source_key]
        for key in _FLAT_CONSTRAINT_KEYS:
            if payload.get(key) is not None:
                lifted[key] = payload[key]
        if payload.get("maxFileSize") is not None:
            lifted.setdefault("maxFileSizeMB", payload["maxFileSize"])
        display = payload.get("displayOptions")
        if isinstance(display, Mapping) and display.get("requireOtherText") is not None:
            lifted.setdefault("requireOtherText", display["requireOtherText"])
        if not lifted:
            return payload
        explicit = payload.get("constraints")
        if isinstance(explicit, FieldConstraints):
            explicit = explicit.model_dump(by_alias=True, exclude_unset=True)
        if isinstance(explicit, Mapping):
            lifted.update(explicit)
        payload["constraints"] = lifted
        return payload

    @field_validator("type", mode="before")
    @classmethod
    def _resolve_type(cls, value: object) -> FieldType:
        return coerce_field_type(value)

    @property
    def display_label(self) -> str:
        """Return the label shown to respondents, falling back to the id."""

        return self.label.strip() or self.id

    @property
    def is_delimiter(self) -> bool:
        return is_delimiter(self.type)

    @property
    def is_structural(self) -> bool:
        return spec_for(self.type).structural

    def initial_answer(self) -> Any:
        """Return the answer this field starts with in a fresh session."""

        if self.default_value is not None and not self.is_structural:
            return self.default_value
        return empty_answer(self.type)

    def rating_bounds(self) -> tuple[int, int]:
        """Return the inclusive ``(min, max)`` rating range for rating fields."""

        default_range = spec_for(self.type).default_rating_range
        if default_range is None:
            raise ValueError(f"Field '{self.id}' of type {self.type} has no rating range")
        minimum = self.constraints.min_rating
        maximum = self.constraints.max_rating
        return adjust_rating_range(
            minimum if minimum is not None else default_range[0],
            maximum if maximum is not None else default_range[1],
        )

    def with_min_rating(self, value: int) -> "FieldDefinition":
        """Return a copy with ``minRating`` set, shifting ``maxRating`` when needed."""

        _, current_max = self.rating_bounds()
        minimum, maximum = adjust_rating_range(value, current_max, edited="min")
        return self._with_constraints(min_rating=minimum, max_rating=maximum)

    def with_max_rating(self, value: int) -> "FieldDefinition":
        """Return a copy with ``maxRating`` set, shifting ``minRating`` when needed."""

        current_min, _ = self.rating_bounds()
        minimum, maximum = adjust_rating_range(current_min, value, edited="max")
        return self._with_constraints(min_rating=minimum, max_rating=maximum)

    def _with_constraints(self, **updates: Any) -> "FieldDefinition":
        constraints = self.constraints.model_copy(update=updates)
        return self.model_copy(update={"constraints": constraints})

def adjust_rating_range(minimum: int, maximum: int, *, edited: str = "min") -> tuple[int, int]:
    """Return a range where ``maximum`` stays strictly greater than ``minimum``.

    Editing the lower bound onto or past the upper bound pushes the upper
    bound to ``minimum + 1``. Editing the upper bound onto or below the lower
    bound pulls the lower bound to ``maximum - 1``.
    """

    if maximum > minimum:
        return minimum, maximum
    if edited == "max":
        return maximum - 1, maximum
    return minimum, minimum + 1

class FormDefinition(BaseModel):
    """Ordered, immutable list of fields making up one form."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., min_length=1)
    title: str = ""
    fields: tuple[FieldDefinition, ...] = ()

    @model_validator(mode="after")
    def _ensure_unique_ids(self) -> "FormDefinition":
        seen: set[str] = set()
        duplicates: list[str] = []
        for field in self.fields:
            if field.id in seen:
                duplicates.append(field.id)
            seen.add(field.id)
        if duplicates:
            raise ValueError(f"Duplicate field ids: {', '.join(sorted(set(duplicates)))}")
        return self

    @property
    def answerable_fields(self) -> tuple[FieldDefinition, ...]:
        """Return every field that owns an AnswerMap entry (all but page breaks)."""

        return tuple(field for field in self.fields if not field.is_delimiter)

    def get_field(self, field_id: str) -> FieldDefinition | None:
        for field in self.fields:
            if field.id == field_id:
                return field
        return None

    def initial_answers(self) -> dict[str, Any]:
        """Return a fully keyed AnswerMap with default values."""

        return {field.id: field.initial_answer() for field in self.answerable_fields}


__all__ = [
    "FieldConstraints",
    "FieldDefinition",
    "FormDefinition",
    "adjust_rating_range",
]
