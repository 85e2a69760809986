"""Wizard session state for the lead-capture form.

``FormState`` holds everything one visitor's wizard session owns: the
current step index, the entered values, the displayed field errors, the
consent flags and the session phase.

The phase follows a small transition table:

    EDITING ──submit──▶ SUBMITTING ──ok──▶ SUBMITTED (terminal)
       ▲                    │
       └──────failure───────┘

Step navigation happens only while EDITING and is bounded to
``[0, step_count - 1]``.

Usage:
    >>> state = FormState(step_count=3)
    >>> state.go_to_step(1)
    >>> state.step_index
    1
    >>> state.transition_to(WizardPhase.SUBMITTING)
    >>> state.submitting
    True
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Set

from leadcapture.types import ConsentFlags, WizardPhase


class InvalidStateTransitionError(Exception):
    """Raised when an operation is not allowed in the current phase.

    Attributes:
        current_phase: The phase before the attempted transition
        target_phase: The phase that was attempted
    """

    def __init__(self, current_phase: WizardPhase, target_phase: WizardPhase, message: str):
        self.current_phase = current_phase
        self.target_phase = target_phase
        super().__init__(message)


VALID_TRANSITIONS: Dict[WizardPhase, Set[WizardPhase]] = {
    WizardPhase.EDITING: {WizardPhase.SUBMITTING},
    WizardPhase.SUBMITTING: {WizardPhase.EDITING, WizardPhase.SUBMITTED},
    WizardPhase.SUBMITTED: set(),
}


@dataclass
class FormState:
    """Mutable state of one wizard session.

    Attributes:
        step_count: Number of steps in the form definition
        step_index: Current 0-based step
        values: Field id -> entered value
        errors: Field id -> displayed error message
        consents: Consent opt-ins collected on the last step
        phase: Session phase
    """

    step_count: int
    step_index: int = 0
    values: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    consents: ConsentFlags = field(default_factory=ConsentFlags)
    phase: WizardPhase = WizardPhase.EDITING

    def __post_init__(self):
        if self.step_count < 1:
            raise ValueError("a form needs at least one step")
        if not 0 <= self.step_index < self.step_count:
            raise ValueError(f"step index {self.step_index} out of range")

    @property
    def submitting(self) -> bool:
        return self.phase == WizardPhase.SUBMITTING

    @property
    def is_last_step(self) -> bool:
        return self.step_index == self.step_count - 1

    def is_terminal(self) -> bool:
        return len(VALID_TRANSITIONS[self.phase]) == 0

    def can_transition_to(self, target_phase: WizardPhase) -> bool:
        return target_phase in VALID_TRANSITIONS.get(self.phase, set())

    def transition_to(self, target_phase: WizardPhase) -> None:
        """Move to a new phase.

        Raises:
            InvalidStateTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(target_phase):
            allowed = VALID_TRANSITIONS[self.phase]
            raise InvalidStateTransitionError(
                current_phase=self.phase,
                target_phase=target_phase,
                message=(
                    f"Invalid phase transition: cannot go from '{self.phase.value}' "
                    f"to '{target_phase.value}'. Allowed: "
                    f"{', '.join(sorted(p.value for p in allowed))}"
                    if allowed
                    else f"Invalid phase transition: '{self.phase.value}' is terminal."
                ),
            )
        self.phase = target_phase

    def ensure_editable(self) -> None:
        """Raise unless the session still accepts edits and navigation."""
        if self.phase != WizardPhase.EDITING:
            raise InvalidStateTransitionError(
                current_phase=self.phase,
                target_phase=WizardPhase.EDITING,
                message=f"Wizard is '{self.phase.value}', edits are not accepted.",
            )

    def go_to_step(self, index: int) -> None:
        """Jump to a step, clamped to the form's bounds."""
        self.ensure_editable()
        self.step_index = max(0, min(index, self.step_count - 1))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the state to a dictionary."""
        return {
            "stepCount": self.step_count,
            "stepIndex": self.step_index,
            "values": dict(self.values),
            "errors": dict(self.errors),
            "consents": self.consents.to_dict(),
            "phase": self.phase.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormState":
        """Deserialize a state from a dictionary."""
        return cls(
            step_count=data["stepCount"],
            step_index=data.get("stepIndex", 0),
            values=dict(data.get("values", {})),
            errors=dict(data.get("errors", {})),
            consents=ConsentFlags.from_dict(data.get("consents", {})),
            phase=WizardPhase(data.get("phase", WizardPhase.EDITING.value)),
        )


__all__ = [
    "FormState",
    "InvalidStateTransitionError",
    "VALID_TRANSITIONS",
]
