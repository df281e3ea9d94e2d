"""
Error Types
===========

Typed failures raised across the agent.

Only validation, model and deadline errors ever reach the caller of
Agent.process(). Calculation and retrieval failures are converted into
tool-result text so the execution loop keeps running.
"""


class AgentError(Exception):
    """Base class for errors reported to the caller of the agent."""


class RequestValidationError(AgentError, ValueError):
    """
    A required request field is missing or empty.

    Attributes:
        field: Dotted name of the offending field (e.g., "user.location.lat")
    """

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class ModelCallError(AgentError):
    """The model call failed or timed out."""


class DeadlineExceeded(AgentError):
    """The caller's deadline expired before the request finished."""


class CalculationError(Exception):
    """
    A call to the calculation service failed.

    Attributes:
        message: Short, human-readable reason suitable for the model
        status_code: HTTP status when the service answered, else None
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class IndexingError(Exception):
    """Uploading a document to the remote index failed."""


class UploadTimeoutError(IndexingError):
    """A document upload did not finish before the hard timeout."""


class RetrievalError(Exception):
    """The book store could not answer a query."""
