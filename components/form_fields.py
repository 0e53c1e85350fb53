"""Streamlit widgets for each field type."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import streamlit as st

from constants.keys import AnswerTokens, field_widget_key
from core.field_types import FieldType
from core.schema import FieldDefinition
from utils.i18n import tr

__all__ = ["accepted_upload_types", "compose_other_answer", "render_field", "split_other_answer"]

_OTHER_DETAIL_SUFFIX = ".other"


def split_other_answer(value: Any, options: Sequence[str]) -> tuple[str | None, str]:
    """Return the selected option and any free text of an ``"Other: ..."`` answer."""

    if not isinstance(value, str) or not value:
        return None, ""
    if value in options:
        return value, ""
    if value.startswith(AnswerTokens.OTHER_PREFIX):
        other = next((option for option in options if option.lower() == AnswerTokens.OTHER_OPTION), None)
        if other is not None:
            return other, value[len(AnswerTokens.OTHER_PREFIX) :].strip()
    return None, ""


def compose_other_answer(detail: str) -> str:
    """Return the stored answer for an "Other" choice with ``detail`` text."""

    return f"{AnswerTokens.OTHER_PREFIX} {detail.strip()}"


def accepted_upload_types(field: FieldDefinition) -> list[str] | None:
    """Return extensions for ``st.file_uploader`` or ``None`` to accept anything.

    MIME entries cannot be expressed as uploader filters, so their presence
    disables the widget filter and leaves the check to the validator.
    """

    entries = [entry.strip().lower() for entry in field.constraints.accepted_file_types if entry.strip()]
    if not entries or any("/" in entry for entry in entries):
        return None
    return [entry.lstrip(".") for entry in entries]


def _label(field: FieldDefinition) -> str:
    return f"{field.display_label} *" if field.required else field.display_label


def _render_choice(field: FieldDefinition, value: Any, key: str, lang: str | None) -> str:
    options = list(field.constraints.options)
    selected, detail = split_other_answer(value, options)
    index = options.index(selected) if selected in options else None
    if field.type is FieldType.DROPDOWN:
        choice = st.selectbox(
            _label(field),
            options,
            index=index,
            key=key,
            placeholder=tr("Bitte wählen …", "Select an option…", lang),
        )
    else:
        choice = st.radio(_label(field), options, index=index, key=key)
    if choice is None:
        return ""
    if choice.lower() == AnswerTokens.OTHER_OPTION:
        detail = st.text_input(
            tr("Bitte angeben", "Please specify", lang),
            value=detail,
            key=f"{key}{_OTHER_DETAIL_SUFFIX}",
        )
        if detail.strip():
            return compose_other_answer(detail)
    return choice


def _render_yes_no(field: FieldDefinition, value: Any, key: str, lang: str | None) -> str:
    options = [AnswerTokens.YES, AnswerTokens.NO]
    labels = {AnswerTokens.YES: tr("Ja", "Yes", lang), AnswerTokens.NO: tr("Nein", "No", lang)}
    index = options.index(value) if value in options else None
    choice = st.radio(
        _label(field),
        options,
        index=index,
        key=key,
        horizontal=True,
        format_func=lambda option: labels[option],
    )
    return choice or ""


def _render_rating(field: FieldDefinition, value: Any, key: str) -> int | None:
    minimum, maximum = field.rating_bounds()
    options = list(range(minimum, maximum + 1))
    index = options.index(value) if value in options else None
    choice = st.radio(_label(field), options, index=index, key=key, horizontal=True)
    return int(choice) if choice is not None else None


def _render_files(field: FieldDefinition, value: Any, key: str, lang: str | None) -> list[Any]:
    uploaded = st.file_uploader(
        _label(field),
        type=accepted_upload_types(field),
        accept_multiple_files=True,
        key=key,
    )
    if uploaded:
        return list(uploaded)
    # Restored sessions only carry file metadata; keep it until a new upload.
    previous = [item for item in value or [] if isinstance(item, dict) and item.get("name")]
    if previous:
        names = ", ".join(item["name"] for item in previous)
        st.caption(tr("Zuvor hochgeladen: {names}", "Previously uploaded: {names}", lang).format(names=names))
    return previous


def render_field(
    field: FieldDefinition,
    value: Any,
    *,
    error: str | None = None,
    lang: str | None = None,
) -> Any:
    """Render ``field`` with its current ``value`` and return the widget value.

    Structural fields only display their label and return ``None``.
    """

    key = field_widget_key(field.id)
    result: Any
    match field.type:
        case FieldType.SHORT_TEXT | FieldType.EMAIL | FieldType.WEBSITE | FieldType.PHONE_NUMBER:
            kwargs: dict[str, Any] = {}
            if field.constraints.max_length:
                kwargs["max_chars"] = field.constraints.max_length
            result = st.text_input(_label(field), value=value or "", key=key, **kwargs)
        case FieldType.LONG_TEXT:
            result = st.text_area(_label(field), value=value or "", key=key)
        case FieldType.MULTIPLE_CHOICE | FieldType.DROPDOWN:
            result = _render_choice(field, value, key, lang)
        case FieldType.YES_NO:
            result = _render_yes_no(field, value, key, lang)
        case FieldType.NUMBER_RATING | FieldType.OPINION_SCALE:
            result = _render_rating(field, value, key)
        case FieldType.LEGAL:
            result = st.checkbox(_label(field), value=value is True, key=key)
        case FieldType.FILE_UPLOAD:
            result = _render_files(field, value, key, lang)
        case FieldType.STARTING_PAGE | FieldType.POST_SUBMISSION:
            st.subheader(field.display_label)
            return None
        case FieldType.STATEMENT | FieldType.PAGE_BREAK:
            if field.label.strip():
                st.markdown(field.label)
            return None
    if error:
        st.error(error)
    return result
