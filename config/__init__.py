"""Central configuration for the formstep runtime.

Values are read once from the environment (and an optional ``.env`` file).
Every engine component also accepts explicit overrides, so these module
constants only provide defaults for hosts that do not pass their own.

``FORM_PROGRESS_RETENTION_DAYS`` controls how long an autosaved snapshot may
be restored, ``FORM_AUTOSAVE_INTERVAL_SECONDS`` the recurring autosave period
and ``FORM_SAVE_DEBOUNCE_SECONDS`` the delay before a post-navigation save.
"""

import logging
import os
import warnings

from dotenv import load_dotenv

load_dotenv()


logger = logging.getLogger(__name__)


_TRUTHY_ENV_VALUES: tuple[str, ...] = ("1", "true", "yes", "on")


def _is_truthy_flag(value: str | None) -> bool:
    """Return ``True`` when ``value`` matches a truthy environment token."""

    if value is None:
        return False
    return value.strip().lower() in _TRUTHY_ENV_VALUES


def _parse_positive_int_env(value: object | None, *, env_var: str) -> int | None:
    """Return a positive integer parsed from ``value`` or ``None``."""

    if value is None:
        return None
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return None
        try:
            parsed = int(float(candidate))
        except ValueError:
            warnings.warn(
                "%s is not a number; ignoring %s" % (candidate, env_var),
                RuntimeWarning,
            )
            return None
    elif isinstance(value, (int, float)):
        parsed = int(value)
    else:
        warnings.warn(
            "Unsupported %s value '%s'; using the default." % (env_var, value),
            RuntimeWarning,
        )
        return None
    if parsed <= 0:
        return None
    return parsed


def _parse_positive_float_env(value: str | None, *, env_var: str) -> float | None:
    """Return a positive float parsed from ``value`` or ``None``."""

    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        parsed = float(candidate)
    except ValueError:
        warnings.warn(
            "%s is not a number; ignoring %s" % (candidate, env_var),
            RuntimeWarning,
        )
        return None
    if parsed <= 0:
        return None
    return parsed


def _normalise_language(value: str | None) -> str:
    if not value:
        return "en"
    return "de" if value.strip().lower().startswith("de") else "en"


DEFAULT_LANGUAGE = _normalise_language(os.getenv("LANGUAGE"))

PROGRESS_RETENTION_DAYS = (
    _parse_positive_int_env(os.getenv("FORM_PROGRESS_RETENTION_DAYS"), env_var="FORM_PROGRESS_RETENTION_DAYS") or 7
)
AUTOSAVE_INTERVAL_SECONDS = (
    _parse_positive_float_env(os.getenv("FORM_AUTOSAVE_INTERVAL_SECONDS"), env_var="FORM_AUTOSAVE_INTERVAL_SECONDS")
    or 30.0
)
SAVE_DEBOUNCE_SECONDS = (
    _parse_positive_float_env(os.getenv("FORM_SAVE_DEBOUNCE_SECONDS"), env_var="FORM_SAVE_DEBOUNCE_SECONDS") or 1.0
)
PROGRESS_KEY_PREFIX = os.getenv("FORM_PROGRESS_KEY_PREFIX", "progress:")
CLEAR_PROGRESS_ON_SUCCESS = not _is_truthy_flag(os.getenv("FORM_KEEP_PROGRESS_AFTER_SUBMIT"))

FORM_SUBMIT_URL = os.getenv("FORM_SUBMIT_URL", "").strip()
FORM_SUBMIT_TIMEOUT_SECONDS = (
    _parse_positive_float_env(os.getenv("FORM_SUBMIT_TIMEOUT_SECONDS"), env_var="FORM_SUBMIT_TIMEOUT_SECONDS") or 15.0
)
FORM_DEFINITION_PATH = os.getenv("FORM_DEFINITION_PATH", "").strip()
FORM_PROGRESS_DIR = os.getenv("FORM_PROGRESS_DIR", "").strip()


__all__ = [
    "AUTOSAVE_INTERVAL_SECONDS",
    "CLEAR_PROGRESS_ON_SUCCESS",
    "DEFAULT_LANGUAGE",
    "FORM_DEFINITION_PATH",
    "FORM_PROGRESS_DIR",
    "FORM_SUBMIT_TIMEOUT_SECONDS",
    "FORM_SUBMIT_URL",
    "PROGRESS_KEY_PREFIX",
    "PROGRESS_RETENTION_DAYS",
    "SAVE_DEBOUNCE_SECONDS",
]
