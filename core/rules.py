"""Per-type validation rules.

Every field type maps to exactly one pure rule function through
:func:`rule_for`. A rule receives a field and a non-empty answer that already
passed the shape check and returns the first :class:`RuleViolation` it finds.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field as dataclass_field
from functools import lru_cache
from typing import Any, Callable, Final, Mapping, Sequence, assert_never

from pydantic import AnyUrl, EmailStr, ValidationError
from pydantic.type_adapter import TypeAdapter

from constants.keys import AnswerTokens
from core.field_types import AnswerShape, FieldType
from core.regexes import PHONE_MAX_DIGITS, PHONE_MIN_DIGITS, PHONE_PATTERN, count_digits
from core.schema import FieldDefinition
from utils.i18n import LocalizedText, tr_pair

logger = logging.getLogger(__name__)

_EMAIL_ADAPTER: Final[TypeAdapter[EmailStr]] = TypeAdapter(EmailStr)
_URL_ADAPTER: Final[TypeAdapter[AnyUrl]] = TypeAdapter(AnyUrl)

DEFAULT_EMAIL_MAX_LENGTH: Final[int] = 255
DEFAULT_URL_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})
BYTES_PER_MB: Final[int] = 1024 * 1024

REQUIRED_MESSAGE: Final[LocalizedText] = ("{label} ist ein Pflichtfeld", "{label} is required")
LEGAL_REQUIRED_MESSAGE: Final[LocalizedText] = (
    "Bitte stimme zu, um fortzufahren",
    "You must agree to continue",
)
FILE_REQUIRED_MESSAGE: Final[LocalizedText] = ("Bitte lade eine Datei hoch", "Please upload a file")
INVALID_TEXT_MESSAGE: Final[LocalizedText] = ("{label} muss ein Text sein", "{label} must be text")
INVALID_NUMBER_MESSAGE: Final[LocalizedText] = ("{label} muss eine ganze Zahl sein", "{label} must be a whole number")
INVALID_BOOLEAN_MESSAGE: Final[LocalizedText] = ("{label} muss bestätigt werden", "{label} must be checked or unchecked")
INVALID_FILES_MESSAGE: Final[LocalizedText] = ("Ungültiger Datei-Upload", "Invalid file upload")
MIN_LENGTH_MESSAGE: Final[LocalizedText] = (
    "{label} muss mindestens {limit} Zeichen lang sein",
    "{label} must be at least {limit} characters",
)
MAX_LENGTH_MESSAGE: Final[LocalizedText] = (
    "{label} darf höchstens {limit} Zeichen lang sein",
    "{label} must be at most {limit} characters",
)
INVALID_FORMAT_MESSAGE: Final[LocalizedText] = ("Ungültiges Format", "Invalid format")
INVALID_EMAIL_MESSAGE: Final[LocalizedText] = (
    "Bitte gib eine gültige E-Mail-Adresse ein",
    "Please enter a valid email address",
)
EMAIL_DOMAIN_MESSAGE: Final[LocalizedText] = (
    "E-Mail-Adressen von {domain} sind nicht erlaubt",
    "Email addresses from {domain} are not allowed",
)
INVALID_URL_MESSAGE: Final[LocalizedText] = ("Bitte gib eine gültige URL ein", "Please enter a valid URL")
URL_PROTOCOL_MESSAGE: Final[LocalizedText] = (
    "Die URL muss mit {protocols} beginnen",
    "The URL must use {protocols}",
)
INVALID_PHONE_MESSAGE: Final[LocalizedText] = (
    "Bitte gib eine gültige Telefonnummer ein",
    "Please enter a valid phone number",
)
INVALID_OPTION_MESSAGE: Final[LocalizedText] = (
    "Bitte wähle eine gültige Option",
    "Please select a valid option",
)
OTHER_TEXT_MESSAGE: Final[LocalizedText] = (
    "Bitte beschreibe deine Antwort unter „Sonstiges“",
    "Please describe your other answer",
)
INVALID_YES_NO_MESSAGE: Final[LocalizedText] = ("Bitte wähle Ja oder Nein", "Please select yes or no")
RATING_TOO_LOW_MESSAGE: Final[LocalizedText] = (
    "Die Bewertung muss zwischen {minimum} und {maximum} liegen und mindestens {minimum} betragen",
    "Rating must be between {minimum} and {maximum} and cannot be below {minimum}",
)
RATING_TOO_HIGH_MESSAGE: Final[LocalizedText] = (
    "Die Bewertung muss zwischen {minimum} und {maximum} liegen und darf {maximum} nicht überschreiten",
    "Rating must be between {minimum} and {maximum} and cannot exceed {maximum}",
)
FILE_TYPE_MESSAGE: Final[LocalizedText] = (
    "Bitte lade einen gültigen Dateityp hoch: {types}",
    "Please upload a valid file type: {types}",
)
FILE_SIZE_MESSAGE: Final[LocalizedText] = (
    "Die Datei muss kleiner als {limit} MB sein",
    "File size must be less than {limit}MB",
)


@dataclass(frozen=True)
class RuleViolation:
    """A failed rule together with the values for its message template."""

    message: LocalizedText
    values: Mapping[str, object] = dataclass_field(default_factory=dict)

    def render(self, field: FieldDefinition, lang: str | None = None) -> str:
        """Return the user-facing message, preferring the field's custom message."""

        if field.constraints.custom_message:
            return field.constraints.custom_message
        return tr_pair(self.message, lang, label=field.display_label, **self.values)


Rule = Callable[[FieldDefinition, Any], RuleViolation | None]


def required_violation(field: FieldDefinition) -> RuleViolation:
    """Return the violation reported for an unanswered required field."""

    if field.type is FieldType.LEGAL:
        return RuleViolation(LEGAL_REQUIRED_MESSAGE)
    if field.type is FieldType.FILE_UPLOAD:
        return RuleViolation(FILE_REQUIRED_MESSAGE)
    return RuleViolation(REQUIRED_MESSAGE)


def check_shape(shape: AnswerShape, value: object) -> RuleViolation | None:
    """Return a violation when ``value`` does not have the expected shape."""

    if shape is AnswerShape.TEXT:
        return None if isinstance(value, str) else RuleViolation(INVALID_TEXT_MESSAGE)
    if shape is AnswerShape.NUMBER:
        if isinstance(value, bool):
            return RuleViolation(INVALID_NUMBER_MESSAGE)
        if isinstance(value, int):
            return None
        if isinstance(value, float) and value.is_integer():
            return None
        return RuleViolation(INVALID_NUMBER_MESSAGE)
    if shape is AnswerShape.BOOLEAN:
        return None if isinstance(value, bool) else RuleViolation(INVALID_BOOLEAN_MESSAGE)
    if shape is AnswerShape.FILES:
        return None if isinstance(value, (list, tuple)) else RuleViolation(INVALID_FILES_MESSAGE)
    return None


@lru_cache(maxsize=128)
def _compile_pattern(pattern: str) -> re.Pattern[str] | None:
    try:
        return re.compile(pattern)
    except re.error:
        logger.warning("Ignoring invalid validation pattern %r", pattern)
        return None


def _check_length(field: FieldDefinition, value: str, *, default_max: int | None = None) -> RuleViolation | None:
    constraints = field.constraints
    if constraints.min_length is not None and len(value) < constraints.min_length:
        return RuleViolation(MIN_LENGTH_MESSAGE, {"limit": constraints.min_length})
    max_length = constraints.max_length if constraints.max_length is not None else default_max
    if max_length is not None and len(value) > max_length:
        return RuleViolation(MAX_LENGTH_MESSAGE, {"limit": max_length})
    return None


def text_rule(field: FieldDefinition, value: str) -> RuleViolation | None:
    violation = _check_length(field, value)
    if violation is not None:
        return violation
    if field.constraints.pattern:
        compiled = _compile_pattern(field.constraints.pattern)
        if compiled is not None and not compiled.search(value):
            return RuleViolation(INVALID_FORMAT_MESSAGE)
    return None


def email_rule(field: FieldDefinition, value: str) -> RuleViolation | None:
    candidate = value.strip()
    violation = _check_length(field, candidate, default_max=DEFAULT_EMAIL_MAX_LENGTH)
    if violation is not None:
        return violation
    try:
        normalized = _EMAIL_ADAPTER.validate_python(candidate)
    except ValidationError:
        return RuleViolation(INVALID_EMAIL_MESSAGE)
    domain = normalized.rsplit("@", 1)[1].lower()
    blocked = {entry.lower().lstrip("@") for entry in field.constraints.blocked_domains}
    if domain in blocked:
        return RuleViolation(EMAIL_DOMAIN_MESSAGE, {"domain": domain})
    allowed = {entry.lower().lstrip("@") for entry in field.constraints.allowed_domains}
    if allowed and domain not in allowed:
        return RuleViolation(EMAIL_DOMAIN_MESSAGE, {"domain": domain})
    return None


def _is_hostname(host: str | None) -> bool:
    """Return ``True`` for dotted hosts whose labels are letters, digits or inner hyphens."""

    if not host or "." not in host.strip("."):
        return False
    for label in host.strip(".").split("."):
        if not label or label.startswith("-") or label.endswith("-"):
            return False
        if not all(char.isascii() and (char.isalnum() or char == "-") for char in label):
            return False
    return True


def website_rule(field: FieldDefinition, value: str) -> RuleViolation | None:
    candidate = value.strip()
    try:
        url = _URL_ADAPTER.validate_python(candidate)
    except ValidationError:
        return RuleViolation(INVALID_URL_MESSAGE)
    if not _is_hostname(url.host):
        return RuleViolation(INVALID_URL_MESSAGE)
    allowed = tuple(entry.lower().rstrip(":/") for entry in field.constraints.allowed_protocols)
    if allowed:
        if url.scheme.lower() not in allowed:
            return RuleViolation(URL_PROTOCOL_MESSAGE, {"protocols": ", ".join(allowed)})
    elif url.scheme.lower() not in DEFAULT_URL_SCHEMES:
        return RuleViolation(INVALID_URL_MESSAGE)
    return _check_length(field, candidate)


def phone_rule(field: FieldDefinition, value: str) -> RuleViolation | None:
    candidate = value.strip()
    if not PHONE_PATTERN.match(candidate):
        return RuleViolation(INVALID_PHONE_MESSAGE)
    digits = count_digits(candidate)
    if digits < PHONE_MIN_DIGITS or digits > PHONE_MAX_DIGITS:
        return RuleViolation(INVALID_PHONE_MESSAGE)
    return None


def _has_other_option(options: Sequence[str]) -> bool:
    return any(option.lower() == AnswerTokens.OTHER_OPTION for option in options)


def choice_rule(field: FieldDefinition, value: str) -> RuleViolation | None:
    options = field.constraints.options
    if not options:
        return None
    if value in options:
        if value.lower() == AnswerTokens.OTHER_OPTION and field.constraints.require_other_text:
            return RuleViolation(OTHER_TEXT_MESSAGE)
        return None
    if value.startswith(AnswerTokens.OTHER_PREFIX) and _has_other_option(options):
        if field.constraints.require_other_text and not value[len(AnswerTokens.OTHER_PREFIX) :].strip():
            return RuleViolation(OTHER_TEXT_MESSAGE)
        return None
    return RuleViolation(INVALID_OPTION_MESSAGE)


def yes_no_rule(field: FieldDefinition, value: str) -> RuleViolation | None:
    if value in (AnswerTokens.YES, AnswerTokens.NO):
        return None
    return RuleViolation(INVALID_YES_NO_MESSAGE)


def rating_rule(field: FieldDefinition, value: int | float) -> RuleViolation | None:
    minimum, maximum = field.rating_bounds()
    bounds = {"minimum": minimum, "maximum": maximum}
    if value < minimum:
        return RuleViolation(RATING_TOO_LOW_MESSAGE, bounds)
    if value > maximum:
        return RuleViolation(RATING_TOO_HIGH_MESSAGE, bounds)
    return None


def legal_rule(field: FieldDefinition, value: bool) -> RuleViolation | None:
    # ``True`` is the only non-empty legal answer; the required check covers the rest.
    return None


def file_metadata(file: object) -> dict[str, Any]:
    """Return ``name``, ``type`` and ``size`` of an uploaded file or mapping."""

    if isinstance(file, Mapping):
        name = file.get("name")
        mime = file.get("type", file.get("mime_type"))
        size = file.get("size")
    else:
        name = getattr(file, "name", None)
        mime = getattr(file, "type", None)
        size = getattr(file, "size", None)
    return {
        "name": str(name or ""),
        "type": str(mime or "").lower(),
        "size": int(size) if isinstance(size, (int, float)) and not isinstance(size, bool) else 0,
    }


def _file_type_matches(entry: str, name: str, mime: str) -> bool:
    accepted = entry.strip().lower()
    if not accepted:
        return False
    lowered_name = name.lower()
    if accepted.startswith("."):
        return lowered_name.endswith(accepted)
    if accepted.endswith("/*"):
        return mime.startswith(accepted[:-1])
    if "/" in accepted:
        return mime == accepted
    extension = lowered_name.rsplit(".", 1)[-1] if "." in lowered_name else ""
    return extension == accepted or accepted in mime


def file_rule(field: FieldDefinition, value: Sequence[object]) -> RuleViolation | None:
    constraints = field.constraints
    for file in value:
        meta = file_metadata(file)
        if constraints.accepted_file_types and not any(
            _file_type_matches(entry, meta["name"], meta["type"]) for entry in constraints.accepted_file_types
        ):
            return RuleViolation(FILE_TYPE_MESSAGE, {"types": ", ".join(constraints.accepted_file_types)})
        if constraints.max_file_size_mb is not None and meta["size"] > constraints.max_file_size_mb * BYTES_PER_MB:
            return RuleViolation(FILE_SIZE_MESSAGE, {"limit": f"{constraints.max_file_size_mb:g}"})
    return None


def structural_rule(field: FieldDefinition, value: object) -> RuleViolation | None:
    return None


def rule_for(field_type: FieldType) -> Rule:
    """Return the validation rule for ``field_type``."""

    match field_type:
        case FieldType.SHORT_TEXT | FieldType.LONG_TEXT:
            return text_rule
        case FieldType.EMAIL:
            return email_rule
        case FieldType.WEBSITE:
            return website_rule
        case FieldType.PHONE_NUMBER:
            return phone_rule
        case FieldType.MULTIPLE_CHOICE | FieldType.DROPDOWN:
            return choice_rule
        case FieldType.YES_NO:
            return yes_no_rule
        case FieldType.NUMBER_RATING | FieldType.OPINION_SCALE:
            return rating_rule
        case FieldType.LEGAL:
            return legal_rule
        case FieldType.FILE_UPLOAD:
            return file_rule
        case FieldType.STATEMENT | FieldType.PAGE_BREAK | FieldType.STARTING_PAGE | FieldType.POST_SUBMISSION:
            return structural_rule
        case _:
            assert_never(field_type)


__all__ = [
    "Rule",
    "RuleViolation",
    "check_shape",
    "file_metadata",
    "required_violation",
    "rule_for",
]
