"""
Error taxonomy for Doveable services.

Every error carries a human-readable message and the HTTP status the API
layer answers with. Routes let these propagate; ``index.py`` renders them
as ``{"error": message}``.
"""
from typing import Any, Dict, Optional


class DoveableError(Exception):
    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ConfigurationError(DoveableError):
    """Backend credentials are missing or invalid."""
    status_code = 500


class EmptyPromptError(DoveableError):
    status_code = 400


class GenerationError(DoveableError):
    """Base for failures that end a generation after it was submitted."""
    status_code = 502


class TransportError(GenerationError):
    """The generation backend could not be reached or answered with an error."""


class MalformedResponseError(GenerationError):
    """The backend replied with text that is not a JSON object."""


class SchemaViolationError(GenerationError):
    """The backend reply parsed but does not satisfy the response contract."""


class InsufficientCreditsError(DoveableError):
    status_code = 402

    def __init__(self, required: int, available: int):
        super().__init__(
            f"Insufficient credits. Required: {required}, available: {available}. "
            "Upgrade to keep building."
        )
        self.required = required
        self.available = available

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "upgrade": True,
            "required": self.required,
            "available": self.available,
        }


class GenerationInProgressError(DoveableError):
    status_code = 409

    def __init__(self, message: str = "A generation is already in progress for this project."):
        super().__init__(message)


class PersistenceError(DoveableError):
    """A read or write against the record store failed."""
    status_code = 503


class NotFoundError(DoveableError):
    status_code = 404
