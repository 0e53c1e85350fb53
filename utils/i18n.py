"""Simple i18n helper utilities."""

from __future__ import annotations

import streamlit as st

import config

LocalizedText = tuple[str, str]


def resolve_language(lang: str | None = None) -> str:
    """Return ``"de"`` or ``"en"`` for ``lang`` or the active session language."""

    code = lang or st.session_state.get("lang") or config.DEFAULT_LANGUAGE
    return "de" if str(code).lower().startswith("de") else "en"


def tr(de: str, en: str, lang: str | None = None) -> str:
    """Return the string matching the current language.

    Args:
        de: German text.
        en: English text.
        lang: Optional language override (``"de"`` or ``"en"``).

    Returns:
        The localized string for the requested language.
    """
    code = resolve_language(lang)
    return de if code == "de" else en


def tr_pair(pair: LocalizedText, lang: str | None = None, **values: object) -> str:
    """Resolve a ``(de, en)`` pair and format it with ``values``."""

    text = tr(pair[0], pair[1], lang=lang)
    return text.format(**values) if values else text
