"""Core package: field registry, form models and validation."""

from .field_types import AnswerShape, FieldType
from .schema import FieldConstraints, FieldDefinition, FormDefinition
from .validators import CompositeValidator, FieldError, ValidationResult, derive_validator

__all__ = [
    "AnswerShape",
    "CompositeValidator",
    "FieldConstraints",
    "FieldDefinition",
    "FieldError",
    "FieldType",
    "FormDefinition",
    "ValidationResult",
    "derive_validator",
]
