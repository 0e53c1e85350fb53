from typing import Final


class UIKeys:
    """Keys for UI widgets in ``st.session_state``."""

    LANG_SELECT = "ui.lang_select"
    FIELD_PREFIX = "ui.field."
    BACK_BUTTON = "ui.nav.back"
    NEXT_BUTTON = "ui.nav.next"
    SUBMIT_BUTTON = "ui.nav.submit"
    CLEAR_PROGRESS_BUTTON = "ui.nav.clear_progress"
    DISMISS_ERROR_BUTTON = "ui.nav.dismiss_error"


class StateKeys:
    """Keys for data stored in ``st.session_state``."""

    ENGINE = "form.engine"
    FORM_DEFINITION = "form.definition"
    PROGRESS_STORE = "form.progress_store"
    SUBMITTED = "form.submitted"


class AnswerTokens:
    """Reserved answer values shared by validators and widgets."""

    YES: Final[str] = "yes"
    NO: Final[str] = "no"
    OTHER_OPTION: Final[str] = "other"
    OTHER_PREFIX: Final[str] = "Other:"


def field_widget_key(field_id: str) -> str:
    """Return the session-state key used for the widget of ``field_id``."""

    return f"{UIKeys.FIELD_PREFIX}{field_id}"
