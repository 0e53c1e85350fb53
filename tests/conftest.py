from pathlib import Path
import sys
from dataclasses import dataclass

import streamlit as st

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import config  # noqa: E402

from core.schema import FormDefinition  # noqa: E402
from tests.helpers import FakeClock, make_form  # noqa: E402


@dataclass
class _SessionDict(dict[str, object]):
    """Lightweight replacement for ``st.session_state`` during tests."""

    def clear(self) -> None:  # type: ignore[override]
        super().clear()


@pytest.fixture(autouse=True)
def _stub_streamlit_session_state(monkeypatch: pytest.MonkeyPatch) -> None:
    """Replace Streamlit's runtime-bound session state with a plain dictionary."""

    session_state = _SessionDict()
    monkeypatch.setattr(st, "session_state", session_state, raising=False)
    monkeypatch.setattr(config, "DEFAULT_LANGUAGE", "en")
    yield


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def contact_form() -> FormDefinition:
    """Two steps: a required name, then a required email."""

    return make_form(
        [
            {"id": "name", "type": "shortText", "label": "Name", "required": True},
            {"id": "break", "type": "pageBreak", "label": "Contact"},
            {"id": "email", "type": "email", "label": "Email", "required": True},
        ]
    )


@pytest.fixture
def survey_form() -> FormDefinition:
    """Three steps mixing most answer shapes."""

    return make_form(
        [
            {"id": "intro", "type": "startingPage", "label": "Welcome"},
            {"id": "name", "type": "shortText", "label": "Name", "required": True},
            {"id": "p1", "type": "pageBreak"},
            {"id": "rating", "type": "numberRating", "label": "Rating", "required": True, "minRating": 1, "maxRating": 5},
            {"id": "color", "type": "multipleChoice", "label": "Color", "options": ["Red", "Blue", "Other"]},
            {"id": "p2", "type": "pageBreak", "label": "Final"},
            {"id": "files", "type": "fileUpload", "label": "Files", "acceptedFileTypes": [".pdf"], "maxFileSize": 1},
            {"id": "consent", "type": "legal", "label": "Consent", "required": True},
        ],
        form_id="survey",
    )
