"""Registry of supported field types and the shape of their answers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final, Mapping


class FieldType(StrEnum):
    """Declared type of a form field."""

    SHORT_TEXT = "shortText"
    LONG_TEXT = "longText"
    EMAIL = "email"
    WEBSITE = "website"
    PHONE_NUMBER = "phoneNumber"
    MULTIPLE_CHOICE = "multipleChoice"
    DROPDOWN = "dropdown"
    YES_NO = "yesNo"
    OPINION_SCALE = "opinionScale"
    NUMBER_RATING = "numberRating"
    STATEMENT = "statement"
    LEGAL = "legal"
    FILE_UPLOAD = "fileUpload"
    PAGE_BREAK = "pageBreak"
    STARTING_PAGE = "startingPage"
    POST_SUBMISSION = "postSubmission"


class AnswerShape(StrEnum):
    """Expected shape of an answer value."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    FILES = "files"
    NONE = "none"


@dataclass(frozen=True)
class FieldTypeSpec:
    """Static metadata for one :class:`FieldType`."""

    shape: AnswerShape
    structural: bool = False
    delimiter: bool = False
    default_rating_range: tuple[int, int] | None = None


FIELD_TYPE_SPECS: Final[Mapping[FieldType, FieldTypeSpec]] = {
    FieldType.SHORT_TEXT: FieldTypeSpec(AnswerShape.TEXT),
    FieldType.LONG_TEXT: FieldTypeSpec(AnswerShape.TEXT),
    FieldType.EMAIL: FieldTypeSpec(AnswerShape.TEXT),
    FieldType.WEBSITE: FieldTypeSpec(AnswerShape.TEXT),
    FieldType.PHONE_NUMBER: FieldTypeSpec(AnswerShape.TEXT),
    FieldType.MULTIPLE_CHOICE: FieldTypeSpec(AnswerShape.TEXT),
    FieldType.DROPDOWN: FieldTypeSpec(AnswerShape.TEXT),
    FieldType.YES_NO: FieldTypeSpec(AnswerShape.TEXT),
    FieldType.OPINION_SCALE: FieldTypeSpec(AnswerShape.NUMBER, default_rating_range=(1, 10)),
    FieldType.NUMBER_RATING: FieldTypeSpec(AnswerShape.NUMBER, default_rating_range=(1, 5)),
    FieldType.STATEMENT: FieldTypeSpec(AnswerShape.NONE, structural=True),
    FieldType.LEGAL: FieldTypeSpec(AnswerShape.BOOLEAN),
    FieldType.FILE_UPLOAD: FieldTypeSpec(AnswerShape.FILES),
    FieldType.PAGE_BREAK: FieldTypeSpec(AnswerShape.NONE, structural=True, delimiter=True),
    FieldType.STARTING_PAGE: FieldTypeSpec(AnswerShape.NONE, structural=True),
    FieldType.POST_SUBMISSION: FieldTypeSpec(AnswerShape.NONE, structural=True),
}

# Field types written by older form builders.
LEGACY_TYPE_ALIASES: Final[Mapping[str, FieldType]] = {
    "text": FieldType.SHORT_TEXT,
    "rating": FieldType.NUMBER_RATING,
    "date": FieldType.SHORT_TEXT,
}


def spec_for(field_type: FieldType) -> FieldTypeSpec:
    """Return the registry entry for ``field_type``."""

    return FIELD_TYPE_SPECS[field_type]


def coerce_field_type(value: object) -> FieldType:
    """Return the :class:`FieldType` for ``value``, resolving legacy aliases."""

    if isinstance(value, FieldType):
        return value
    if isinstance(value, str):
        candidate = value.strip()
        if candidate in LEGACY_TYPE_ALIASES:
            return LEGACY_TYPE_ALIASES[candidate]
        return FieldType(candidate)
    raise ValueError(f"Unsupported field type: {value!r}")


def is_delimiter(field_type: FieldType) -> bool:
    return spec_for(field_type).delimiter


def is_structural(field_type: FieldType) -> bool:
    return spec_for(field_type).structural


def empty_answer(field_type: FieldType) -> Any:
    """Return the type-appropriate empty answer for ``field_type``."""

    shape = spec_for(field_type).shape
    if shape is AnswerShape.TEXT:
        return ""
    if shape is AnswerShape.BOOLEAN:
        return False
    if shape is AnswerShape.FILES:
        return []
    return None


def is_empty_answer(shape: AnswerShape, value: object) -> bool:
    """Return ``True`` when ``value`` counts as unanswered for ``shape``."""

    if shape is AnswerShape.TEXT:
        return value is None or (isinstance(value, str) and not value.strip())
    if shape is AnswerShape.BOOLEAN:
        return value is not True
    if shape is AnswerShape.FILES:
        if value is None:
            return True
        if isinstance(value, (list, tuple)):
            return len(value) == 0
        return False
    return value is None


__all__ = [
    "AnswerShape",
    "FIELD_TYPE_SPECS",
    "FieldType",
    "FieldTypeSpec",
    "LEGACY_TYPE_ALIASES",
    "coerce_field_type",
    "empty_answer",
    "is_delimiter",
    "is_empty_answer",
    "is_structural",
    "spec_for",
]
