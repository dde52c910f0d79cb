"""
Exception hierarchy for the UAPS engine.

Inference errors are raised by the clients in ``uaps.ensemble.inference`` and
absorbed at the blender boundary; nothing in the prediction path lets them
escape to callers.
"""

from __future__ import annotations


class UAPSError(Exception):
    """Base error for the UAPS engine."""


class InferenceError(UAPSError):
    """An external inference attempt failed."""

    def __init__(self, message: str, model: str | None = None):
        super().__init__(message)
        self.model = model


class InferenceTimeoutError(InferenceError):
    """The inference attempt exceeded its per-attempt timeout."""


class InferenceRateLimitError(InferenceError):
    """The inference service rejected the request for quota reasons (429)."""


class InferenceUnavailableError(InferenceError):
    """No inference backend is configured or reachable."""


class MalformedResponseError(InferenceError):
    """The inference response could not be parsed or failed schema validation."""


class InvalidStatusTransitionError(UAPSError):
    """A candidate product was moved through an illegal lifecycle transition."""
