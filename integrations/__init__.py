"""Collaborators that deliver submitted answers to external services."""

from .http_submit import HttpSubmitter

__all__ = ["HttpSubmitter"]
