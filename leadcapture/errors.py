"""Structured error types for the lead-capture runtime.

Two families live here:

- ``FieldError``: a frozen value describing one field that failed validation.
  Field errors are shown inline next to the offending input and never travel
  to the network layer.
- Exceptions raised across module boundaries: definition loading, store
  access and the submission pipeline. ``SubmissionError`` subclasses carry a
  short user-facing message separate from the technical cause.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from leadcapture.types import FieldErrorCode

GENERIC_RETRY_MESSAGE = "Une erreur est survenue. Veuillez réessayer."


@dataclass(frozen=True)
class FieldError:
    """Per-field validation error details.

    Attributes:
        field_id: Identifier of the field that failed
        code: Specific validation error code
        message: Human-readable message displayed next to the field
        received: Optional - the offending value

    Examples:
        >>> err = FieldError(
        ...     field_id="email",
        ...     code=FieldErrorCode.INVALID_FORMAT,
        ...     message="Veuillez saisir un email valide",
        ...     received="not-an-email"
        ... )
        >>> err.field_id
        'email'
    """
    field_id: str
    code: FieldErrorCode
    message: str
    received: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "fieldId": self.field_id,
            "code": self.code.value if isinstance(self.code, FieldErrorCode) else self.code,
            "message": self.message,
        }
        if self.received is not None:
            result["received"] = self.received
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldError":
        """Create FieldError from dict."""
        code = data["code"]
        if isinstance(code, str):
            code = FieldErrorCode(code)
        return cls(
            field_id=data["fieldId"],
            code=code,
            message=data["message"],
            received=data.get("received"),
        )


class LeadCaptureError(Exception):
    """Base class for all lead-capture exceptions."""


class FormDefinitionError(LeadCaptureError):
    """Raised when a form definition cannot be loaded.

    Attributes:
        path: Location of the offending element in the raw definition
    """

    def __init__(self, message: str, path: str = ""):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class StoreError(LeadCaptureError):
    """Raised when the external data store rejects or fails an operation.

    Attributes:
        table: Table the operation targeted
        operation: "insert" or "select"
    """

    def __init__(self, table: str, operation: str, message: str):
        self.table = table
        self.operation = operation
        super().__init__(f"{operation} on '{table}' failed: {message}")


class SubmissionError(LeadCaptureError):
    """Raised when the submission pipeline aborts.

    The wizard surfaces ``user_message`` to the visitor; ``__cause__`` holds
    the underlying store failure when there is one.
    """

    user_message = GENERIC_RETRY_MESSAGE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {"error": self.user_message, "detail": str(self)}


class ContactCreationError(SubmissionError):
    """The contact record could not be created; nothing else was written."""


class ProjectCreationError(SubmissionError):
    """The project record could not be created after the contact was.

    Attributes:
        contact_id: Identifier of the contact left without a project
    """

    def __init__(self, message: str, contact_id: Any):
        self.contact_id = contact_id
        super().__init__(message)


__all__ = [
    "GENERIC_RETRY_MESSAGE",
    "FieldError",
    "LeadCaptureError",
    "FormDefinitionError",
    "StoreError",
    "SubmissionError",
    "ContactCreationError",
    "ProjectCreationError",
]
