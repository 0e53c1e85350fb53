"""Exception types raised by submit collaborators."""

from __future__ import annotations


class SubmissionError(Exception):
    """Base exception for failed form submissions."""


class SubmissionValidationError(SubmissionError):
    """Raised when the receiving side rejects the answers as invalid."""


class FormNotFoundError(SubmissionError):
    """Raised when the form no longer exists, expired or stopped accepting answers."""


class DuplicateSubmissionError(SubmissionError):
    """Raised when the respondent already submitted this form."""


class SubmissionConnectionError(SubmissionError):
    """Raised when the submission could not reach the receiving service."""
