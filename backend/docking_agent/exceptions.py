from __future__ import annotations

"""Domain-specific exceptions for service and orchestration layers.

Routers should catch these and translate them to appropriate HTTP responses.
"""


class NotFoundError(Exception):
    """Job, report or tag id is unknown (maps to HTTP 404)."""


class JobValidationError(Exception):
    """Malformed job fields supplied by a caller (maps to HTTP 422)."""


class ConflictError(Exception):
    """Job is already being processed by the agent (maps to HTTP 409)."""


class ExternalServiceError(Exception):
    """Categorization, report generation or ledger call failed (maps to HTTP 503)."""


class PersistenceError(Exception):
    """Job store could not be read or written (maps to HTTP 503)."""
