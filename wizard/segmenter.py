"""Split a form into steps at page-break fields."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from core.schema import FieldDefinition, FormDefinition


@dataclass(frozen=True)
class Step:
    """A contiguous group of fields shown together."""

    index: int
    title: str
    fields: tuple[FieldDefinition, ...] = ()

    @property
    def field_ids(self) -> tuple[str, ...]:
        return tuple(field.id for field in self.fields)

    @property
    def is_empty(self) -> bool:
        return not self.fields


@dataclass(frozen=True)
class Segmentation:
    """Result of :func:`segment`."""

    steps: tuple[Step, ...]
    is_multi_step: bool

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def step_for_field(self, field_id: str) -> int | None:
        for step in self.steps:
            if field_id in step.field_ids:
                return step.index
        return None


def default_step_title(index: int) -> str:
    return f"Step {index + 1}"


def segment(fields: FormDefinition | Sequence[FieldDefinition]) -> Segmentation:
    """Partition ``fields`` into steps using page breaks as delimiters.

    Every page break closes the current step, even an empty one, so leading
    and trailing page breaks yield empty steps. A labelled page break names
    the step that follows it. Forms without page breaks form a single step.
    """

    source: Iterable[FieldDefinition] = fields.fields if isinstance(fields, FormDefinition) else fields
    steps: list[Step] = []
    buffer: list[FieldDefinition] = []
    pending_title: str | None = None
    saw_delimiter = False

    for field in source:
        if not field.is_delimiter:
            buffer.append(field)
            continue
        saw_delimiter = True
        index = len(steps)
        steps.append(Step(index=index, title=pending_title or default_step_title(index), fields=tuple(buffer)))
        buffer = []
        pending_title = field.label.strip() or None

    index = len(steps)
    steps.append(Step(index=index, title=pending_title or default_step_title(index), fields=tuple(buffer)))
    return Segmentation(steps=tuple(steps), is_multi_step=saw_delimiter)


__all__ = ["Segmentation", "Step", "default_step_title", "segment"]
