"""Core type definitions for the lead-capture runtime.

This module defines the fundamental types shared by the wizard and the
webhook ingestion handler:
- FieldKind: Input kinds a form field can declare
- FieldErrorCode: Validation error codes for individual fields
- WizardPhase: Lifecycle phases of one wizard session
- NavigationOutcome: What a call to ``next()`` did
- SubmissionStatus: Status carried by a durable Submission
- TrackingEventName: Analytics events emitted by the wizard
- InteractionType / InteractionStatus: Normalized provider event values
- ConsentFlags: Per-purpose opt-ins collected on the final step
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, List


class FieldKind(str, Enum):
    """Input kinds supported by form fields."""
    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    DATE = "date"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"


class FieldErrorCode(str, Enum):
    """Validation error codes for individual field failures."""
    REQUIRED = "required"
    INVALID_FORMAT = "invalid_format"
    INVALID_VALUE = "invalid_value"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"


class WizardPhase(str, Enum):
    """Lifecycle phases of a wizard session.

    The step index is tracked separately; the phase only says whether the
    session still accepts edits. SUBMITTED is terminal.
    """
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class NavigationOutcome(str, Enum):
    """Result of advancing the wizard."""
    INVALID = "invalid"
    ADVANCED = "advanced"
    SUBMITTED = "submitted"
    FAILED = "failed"


class SubmissionStatus(str, Enum):
    """Status of a durable Submission.

    The wizard only ever creates SUBMITTED; the other values are set by
    downstream systems.
    """
    PARTIAL = "partial"
    SUBMITTED = "submitted"
    QUALIFIED = "qualified"


class TrackingEventName(str, Enum):
    """Analytics events emitted by the wizard."""
    FORM_STARTED = "form_started"
    STEP_COMPLETED = "step_completed"
    FORM_SUBMITTED = "form_submitted"
    CONSENT_GRANTED = "consent_granted"


class InteractionType(str, Enum):
    """Normalized interaction types written by the webhook handler."""
    ENVOI = "envoi"
    OUVERTURE = "ouverture"
    CLIC = "clic"
    BOUNCE = "bounce"
    DESABONNEMENT = "desabonnement"


class InteractionStatus(str, Enum):
    """Outcome recorded on an interaction."""
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass
class ConsentFlags:
    """Per-purpose consent opt-ins.

    Processing needed to answer the quote request (contractual basis) is
    always granted and cannot be toggled; it is exposed as a read-only
    property rather than a field.

    Examples:
        >>> flags = ConsentFlags(marketing=True)
        >>> flags.granted_purposes()
        ['contractual', 'marketing', 'email']
    """
    marketing: bool = False
    phone: bool = False
    email: bool = True
    sms: bool = False
    partners: bool = False

    @property
    def contractual(self) -> bool:
        return True

    def granted_purposes(self) -> List[str]:
        """Names of every granted consent, contractual first."""
        return ["contractual"] + [f.name for f in fields(self) if getattr(self, f.name)]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {"contractual": True}
        result.update({f.name: getattr(self, f.name) for f in fields(self)})
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConsentFlags":
        """Create ConsentFlags from dict, ignoring the contractual flag."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: bool(v) for k, v in data.items() if k in names})


__all__ = [
    "FieldKind",
    "FieldErrorCode",
    "WizardPhase",
    "NavigationOutcome",
    "SubmissionStatus",
    "TrackingEventName",
    "InteractionType",
    "InteractionStatus",
    "ConsentFlags",
]
