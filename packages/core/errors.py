from __future__ import annotations


class InvalidRequest(ValueError):
    """Client-supplied attendance data failed validation."""


class DeliveryFailure(Exception):
    """The n8n webhook call did not complete successfully."""


class DuplicateJobError(KeyError):
    """A job record with the same identifier already exists."""


class JobTransitionError(RuntimeError):
    """A job record was asked to leave a terminal state."""
