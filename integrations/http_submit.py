"""Submit collaborator that posts answers as JSON over HTTP."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import requests
from requests import Response

import config
from core.errors import (
    DuplicateSubmissionError,
    FormNotFoundError,
    SubmissionConnectionError,
    SubmissionError,
    SubmissionValidationError,
)
from core.rules import file_metadata

logger = logging.getLogger(__name__)

_JSON_SCALARS = (str, int, float, bool, type(None))

USER_AGENT = "formstep/0.1 (+https://example.invalid/formstep)"

_STATUS_ERRORS: Mapping[int, type[SubmissionError]] = {
    400: SubmissionValidationError,
    404: FormNotFoundError,
    409: DuplicateSubmissionError,
    410: FormNotFoundError,
    422: SubmissionValidationError,
}


def _response_message(resp: Response) -> str:
    """Return the ``message`` or ``error`` field of a JSON body, if any."""

    try:
        body = resp.json()
    except ValueError:
        return ""
    if isinstance(body, Mapping):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return ""


def serialise_answers(answers: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``answers`` with uploaded files replaced by their metadata."""

    serialised: dict[str, Any] = {}
    for key, value in answers.items():
        if isinstance(value, (list, tuple)):
            value = [item if isinstance(item, _JSON_SCALARS) else file_metadata(item) for item in value]
        serialised[key] = value
    return serialised


class HttpSubmitter:
    """POST ``{"formId": ..., "answers": ...}`` to ``url``.

    Instances are awaitable callables, so they can be passed straight to
    :class:`wizard.engine.FormEngine` as its ``submit`` collaborator. The
    blocking ``requests`` call runs in a worker thread.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        form_id: str,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        resolved = (url or config.FORM_SUBMIT_URL).strip()
        if not resolved:
            raise ValueError("A submit URL is required (set FORM_SUBMIT_URL)")
        self.url = resolved
        self.form_id = form_id
        self.timeout = timeout if timeout is not None else config.FORM_SUBMIT_TIMEOUT_SECONDS
        self.headers = {"User-Agent": USER_AGENT, **dict(headers or {})}

    async def __call__(self, answers: dict[str, Any]) -> None:
        await asyncio.to_thread(self.post, answers)

    def post(self, answers: Mapping[str, Any]) -> None:
        """Send ``answers`` and raise a :class:`SubmissionError` on failure."""

        payload = {"formId": self.form_id, "answers": serialise_answers(answers)}
        try:
            resp = requests.post(self.url, json=payload, headers=self.headers, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as exc:
            logger.warning("Submit request to %s failed: %s", self.url, exc)
            raise SubmissionConnectionError("Failed to submit form: connection error") from exc
        except requests.RequestException as exc:
            raise SubmissionError("Failed to submit form") from exc

        status = resp.status_code
        if status < 400:
            logger.debug("Submit request accepted with status %s", status)
            return
        message = _response_message(resp)
        error_type = _STATUS_ERRORS.get(status)
        if error_type is not None:
            raise error_type(message or f"submission rejected (status {status})")
        if status >= 500:
            raise SubmissionConnectionError(f"Failed to submit form (status {status})")
        raise SubmissionError(message or f"submission rejected (status {status})")


__all__ = ["HttpSubmitter", "serialise_answers"]
