"""Tests for splitting forms into steps."""

from __future__ import annotations

from wizard.segmenter import segment
from tests.helpers import make_form


def test_form_without_page_breaks_is_single_step() -> None:
    form = make_form([{"id": "a", "type": "shortText"}, {"id": "b", "type": "email"}])

    result = segment(form)

    assert not result.is_multi_step
    assert result.total_steps == 1
    assert result.steps[0].field_ids == ("a", "b")
    assert result.steps[0].title == "Step 1"


def test_page_breaks_split_and_are_dropped() -> None:
    form = make_form(
        [
            {"id": "a", "type": "shortText"},
            {"id": "p1", "type": "pageBreak"},
            {"id": "b", "type": "email"},
            {"id": "c", "type": "statement"},
        ]
    )

    result = segment(form)

    assert result.is_multi_step
    assert [step.field_ids for step in result.steps] == [("a",), ("b", "c")]
    assert [step.index for step in result.steps] == [0, 1]


def test_labelled_page_break_titles_following_step() -> None:
    form = make_form(
        [
            {"id": "a", "type": "shortText"},
            {"id": "p1", "type": "pageBreak", "label": "Contact details"},
            {"id": "b", "type": "email"},
        ]
    )

    steps = segment(form).steps

    assert steps[0].title == "Step 1"
    assert steps[1].title == "Contact details"


def test_leading_and_consecutive_breaks_yield_empty_steps() -> None:
    form = make_form(
        [
            {"id": "p0", "type": "pageBreak"},
            {"id": "a", "type": "shortText"},
            {"id": "p1", "type": "pageBreak"},
            {"id": "p2", "type": "pageBreak"},
            {"id": "b", "type": "shortText"},
        ]
    )

    steps = segment(form).steps

    assert [step.field_ids for step in steps] == [(), ("a",), (), ("b",)]
    assert steps[0].is_empty


def test_trailing_page_break_yields_trailing_empty_step() -> None:
    form = make_form([{"id": "a", "type": "shortText"}, {"id": "p1", "type": "pageBreak"}])

    steps = segment(form).steps

    assert [step.field_ids for step in steps] == [("a",), ()]


def test_segment_accepts_field_sequences_and_preserves_order() -> None:
    form = make_form(
        [
            {"id": "z", "type": "shortText"},
            {"id": "y", "type": "shortText"},
            {"id": "p", "type": "pageBreak"},
            {"id": "x", "type": "shortText"},
        ]
    )

    result = segment(list(form.fields))
    flattened = [field_id for step in result.steps for field_id in step.field_ids]

    assert flattened == ["z", "y", "x"]
    assert result.step_for_field("x") == 1
    assert result.step_for_field("p") is None


def test_empty_form_has_one_empty_step() -> None:
    result = segment([])

    assert result.total_steps == 1
    assert result.steps[0].is_empty
