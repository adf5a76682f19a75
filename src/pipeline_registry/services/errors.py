"""Domain exceptions raised by the registry services.

The API layer maps each class onto an HTTP status; services never raise
``HTTPException`` themselves.
"""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base exception for pipeline registry failures."""


class InvalidArgumentError(PipelineError):
    """Raised when a request argument fails validation.

    Covers unsupported sort fields, malformed page tokens and bad page sizes
    as well as empty names or templates on creation.
    """


class NotFoundError(PipelineError):
    """Raised when a pipeline id does not resolve to a stored record."""


class AlreadyExistsError(PipelineError):
    """Raised when a pipeline name collides with an existing record."""


class TemplateFetchError(PipelineError):
    """Raised when a template cannot be downloaded from its URL."""
