"""Tests for the HTTP submit collaborator."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
import requests

import config
from core.errors import (
    DuplicateSubmissionError,
    FormNotFoundError,
    SubmissionConnectionError,
    SubmissionError,
    SubmissionValidationError,
)
from integrations.http_submit import HttpSubmitter


class DummyResponse:
    """Minimal response object mimicking ``requests.Response`` for tests."""

    def __init__(self, status_code: int, body: Any = None) -> None:
        self.status_code = status_code
        self._body = body

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("no json")
        return self._body


def _patch_post(monkeypatch: pytest.MonkeyPatch, response: DummyResponse | Exception) -> list[dict[str, Any]]:
    calls: list[dict[str, Any]] = []

    def fake_post(url: str, **kwargs: Any) -> DummyResponse:
        calls.append({"url": url, **kwargs})
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(requests, "post", fake_post)
    return calls


def test_posts_answers_as_json(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _patch_post(monkeypatch, DummyResponse(201))
    submitter = HttpSubmitter("https://api.example.com/responses", form_id="f1", timeout=3)

    asyncio.run(submitter({"name": "Ada"}))

    assert calls[0]["url"] == "https://api.example.com/responses"
    assert calls[0]["json"] == {"formId": "f1", "answers": {"name": "Ada"}}
    assert calls[0]["timeout"] == 3
    assert calls[0]["headers"]["User-Agent"].startswith("formstep/")


class UploadedFile:
    """Stand-in for Streamlit's ``UploadedFile``."""

    def __init__(self, name: str, type: str, size: int) -> None:
        self.name = name
        self.type = type
        self.size = size


def test_file_answers_are_sent_as_metadata(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _patch_post(monkeypatch, DummyResponse(201))
    submitter = HttpSubmitter("https://api.example.com/responses", form_id="f1")

    asyncio.run(submitter({"cv": [UploadedFile("cv.pdf", "application/pdf", 2048)], "name": "Ada"}))

    answers = calls[0]["json"]["answers"]
    assert answers == {"cv": [{"name": "cv.pdf", "type": "application/pdf", "size": 2048}], "name": "Ada"}
    json.dumps(calls[0]["json"])


@pytest.mark.parametrize(
    ("status", "error_type"),
    [
        (400, SubmissionValidationError),
        (422, SubmissionValidationError),
        (404, FormNotFoundError),
        (410, FormNotFoundError),
        (409, DuplicateSubmissionError),
        (503, SubmissionConnectionError),
        (403, SubmissionError),
    ],
)
def test_status_codes_map_to_errors(monkeypatch: pytest.MonkeyPatch, status: int, error_type: type) -> None:
    _patch_post(monkeypatch, DummyResponse(status))
    submitter = HttpSubmitter("https://api.example.com/responses", form_id="f1")

    with pytest.raises(error_type):
        submitter.post({"name": "Ada"})


def test_error_body_message_is_kept(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_post(monkeypatch, DummyResponse(403, {"message": "Responses are closed"}))
    submitter = HttpSubmitter("https://api.example.com/responses", form_id="f1")

    with pytest.raises(SubmissionError, match="Responses are closed"):
        submitter.post({})


@pytest.mark.parametrize("exc", [requests.ConnectionError("refused"), requests.Timeout("slow")])
def test_network_failures_raise_connection_error(monkeypatch: pytest.MonkeyPatch, exc: Exception) -> None:
    _patch_post(monkeypatch, exc)
    submitter = HttpSubmitter("https://api.example.com/responses", form_id="f1")

    with pytest.raises(SubmissionConnectionError):
        asyncio.run(submitter({}))


def test_url_defaults_to_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "FORM_SUBMIT_URL", "https://configured.example.com/submit")

    assert HttpSubmitter(form_id="f1").url == "https://configured.example.com/submit"

    monkeypatch.setattr(config, "FORM_SUBMIT_URL", "")
    with pytest.raises(ValueError):
        HttpSubmitter(form_id="f1")
