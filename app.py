# app.py: formstep Streamlit host for the form runtime
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
import sys
from typing import Any

import streamlit as st

APP_ROOT = Path(__file__).resolve().parent
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

import config  # noqa: E402
from components.form_fields import render_field  # noqa: E402
from constants.keys import StateKeys, UIKeys  # noqa: E402
from core.field_types import FieldType  # noqa: E402
from core.schema import FormDefinition  # noqa: E402
from integrations.http_submit import HttpSubmitter, serialise_answers  # noqa: E402
from state.kv import FileStore, KeyValueStore, SessionStateStore  # noqa: E402
from utils.i18n import tr  # noqa: E402
from utils.logging_context import configure_logging  # noqa: E402
from utils.telemetry import setup_tracing  # noqa: E402
from wizard.engine import FormEngine, load_form_definition  # noqa: E402

logger = logging.getLogger("formstep.app")

DEFAULT_FORM_PATH = APP_ROOT / "forms" / "contact_request.json"

configure_logging()
setup_tracing()

st.set_page_config(page_title="formstep", page_icon="📝", layout="centered")


@st.cache_data(show_spinner=False)
def _read_form_payload(path: str) -> dict[str, Any]:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def load_form() -> FormDefinition:
    """Return the form configured via ``FORM_DEFINITION_PATH``."""

    path = config.FORM_DEFINITION_PATH or str(DEFAULT_FORM_PATH)
    return load_form_definition(_read_form_payload(path))


def _progress_store_backend() -> KeyValueStore:
    if config.FORM_PROGRESS_DIR:
        return FileStore(config.FORM_PROGRESS_DIR)
    return SessionStateStore()


async def _record_submission(answers: dict[str, Any]) -> None:
    """Fallback collaborator used when no submit URL is configured."""

    recorded = serialise_answers(answers)
    st.session_state[StateKeys.SUBMITTED] = recorded
    logger.info("Recorded submission locally (%d answers)", len(recorded))


def _clear_widget_state() -> None:
    for key in [key for key in st.session_state if str(key).startswith(UIKeys.FIELD_PREFIX)]:
        del st.session_state[key]


def get_engine(form: FormDefinition, lang: str) -> FormEngine:
    """Return the session's engine, creating and starting it on first use."""

    engine = st.session_state.get(StateKeys.ENGINE)
    if isinstance(engine, FormEngine) and engine.form.id == form.id and engine.validator.lang == lang:
        return engine
    if isinstance(engine, FormEngine):
        engine.stop()
    submit = HttpSubmitter(form_id=form.id) if config.FORM_SUBMIT_URL else _record_submission
    engine = FormEngine(form, submit=submit, store=_progress_store_backend(), lang=lang)
    if engine.start():
        st.toast(tr("Gespeicherter Fortschritt wiederhergestellt", "Restored your saved progress", lang))
    st.session_state[StateKeys.ENGINE] = engine
    return engine


def render_sidebar(engine: FormEngine | None) -> str:
    """Render language selection and progress controls; return the language."""

    with st.sidebar:
        options = ["de", "en"]
        current = st.session_state.get("lang", config.DEFAULT_LANGUAGE)
        lang = st.selectbox(
            "Sprache / Language",
            options,
            index=options.index(current) if current in options else 1,
            key=UIKeys.LANG_SELECT,
            format_func=lambda code: "Deutsch" if code == "de" else "English",
        )
        st.session_state["lang"] = lang
        if engine is not None and not engine.pipeline.succeeded:
            if st.button(tr("Fortschritt löschen", "Clear progress", lang), key=UIKeys.CLEAR_PROGRESS_BUTTON):
                engine.clear_progress()
                _clear_widget_state()
                st.rerun()
    return lang


def render_step_header(engine: FormEngine, lang: str) -> None:
    st.title(engine.form.title or engine.form.id)
    if not engine.is_multi_step:
        return
    step = engine.current_step
    st.progress(engine.completion_percentage / 100)
    st.caption(
        tr("Schritt {current} von {total}: {title}", "Step {current} of {total}: {title}", lang).format(
            current=step.index + 1, total=len(engine.steps), title=step.title
        )
    )
    columns = st.columns(len(engine.steps))
    for column, candidate in zip(columns, engine.steps):
        marker = "✓ " if engine.navigator.is_step_completed(candidate.index) else ""
        if engine.navigator.has_step_error(candidate.index):
            marker = "⚠ "
        if column.button(
            f"{marker}{candidate.index + 1}",
            key=f"ui.nav.step.{candidate.index}",
            disabled=not engine.can_access_step(candidate.index),
            help=candidate.title,
        ):
            if engine.go_to_step(candidate.index):
                st.rerun()


def render_current_step(engine: FormEngine, lang: str) -> None:
    step_errors = engine.step_errors(engine.current_step.index)
    if step_errors:
        st.warning(
            tr(
                "Bitte korrigiere {count} Feld(er), bevor du fortfährst.",
                "Please fix {count} field(s) before continuing.",
                lang,
            ).format(count=len(step_errors))
        )
    changed = False
    for field in engine.current_step.fields:
        if field.type is FieldType.POST_SUBMISSION:
            continue
        if field.is_structural:
            render_field(field, None, lang=lang)
            continue
        current = engine.get_value(field.id)
        value = render_field(field, current, error=engine.field_error(field.id), lang=lang)
        if value != current:
            engine.set_value(field.id, value)
            changed = True
    # Streamlit has no page-unload callback to reach handle_unload(). Reruns run
    # without an event loop, so this save is written immediately instead.
    if changed:
        engine.autosave.request_save()


def render_navigation(engine: FormEngine, lang: str) -> None:
    if engine.has_submit_error:
        st.error(engine.submit_error)
        if st.button(tr("Schließen", "Dismiss", lang), key=UIKeys.DISMISS_ERROR_BUTTON):
            engine.clear_submit_error()
            st.rerun()

    back_col, next_col = st.columns(2)
    if not engine.navigator.is_first_step:
        if back_col.button(tr("Zurück", "Back", lang), key=UIKeys.BACK_BUTTON, disabled=engine.is_submitting):
            engine.previous_step()
            st.rerun()
    if not engine.is_last_step:
        if next_col.button(tr("Weiter", "Next", lang), key=UIKeys.NEXT_BUTTON, type="primary"):
            engine.next_step()
            st.rerun()
        return
    if next_col.button(
        tr("Absenden", "Submit", lang),
        key=UIKeys.SUBMIT_BUTTON,
        type="primary",
        disabled=engine.is_submitting,
    ):
        asyncio.run(engine.submit())
        st.rerun()


def render_success(engine: FormEngine, lang: str) -> None:
    closing = [field for field in engine.form.fields if field.type is FieldType.POST_SUBMISSION]
    if closing:
        for field in closing:
            render_field(field, None, lang=lang)
    else:
        st.success(tr("Vielen Dank! Deine Antworten wurden gesendet.", "Thank you! Your response was submitted.", lang))
    if st.button(tr("Neue Antwort", "Submit another response", lang)):
        engine.stop()
        del st.session_state[StateKeys.ENGINE]
        _clear_widget_state()
        st.rerun()


def main() -> None:
    existing = st.session_state.get(StateKeys.ENGINE)
    lang = render_sidebar(existing if isinstance(existing, FormEngine) else None)
    try:
        form = load_form()
    except (OSError, ValueError) as exc:
        logger.error("Could not load form definition: %s", exc)
        st.error(tr("Das Formular konnte nicht geladen werden.", "The form could not be loaded.", lang))
        return
    engine = get_engine(form, lang)
    if engine.pipeline.succeeded:
        render_success(engine, lang)
        return
    render_step_header(engine, lang)
    render_current_step(engine, lang)
    render_navigation(engine, lang)


main()
