"""FormWizard controller for the lead-capture form.

This module provides the FormWizard class that coordinates the session state,
the step validator, the tracking emitter and the submission pipeline to run
one visitor's multi-step form.

The wizard is single-session and synchronous. Its collaborators are
injected: the external store, the tracking sinks and the success/failure
callbacks, so each can be swapped for a test double.

Usage:
    wizard = FormWizard.from_settings(default_quote_form(), get_settings())
    wizard.initialize()
    wizard.edit_field("prenom", "Léa")
    wizard.next()  # NavigationOutcome.INVALID until the whole step is filled
"""

import logging
from dataclasses import fields
from typing import Any, Callable, Dict, List, Optional

from leadcapture.config import Settings
from leadcapture.errors import SubmissionError
from leadcapture.events import LoggingTrackingSink, TrackingEmitter, TrackingSink
from leadcapture.forms import FormDefinition
from leadcapture.state_machine import FormState, InvalidStateTransitionError
from leadcapture.store import DataStore, SupabaseStore
from leadcapture.submission import CaptureContext, Submission, SubmissionPipeline
from leadcapture.types import ConsentFlags, NavigationOutcome, TrackingEventName, WizardPhase
from leadcapture.validation import ValidationEngine, ValidationResult

logger = logging.getLogger(__name__)

# Prefill claim -> field id
PREFILL_CLAIMS: Dict[str, str] = {
    "email": "email",
    "phone": "telephone",
    "first_name": "prenom",
    "last_name": "nom",
}

SuccessCallback = Callable[[Submission], None]
FailureCallback = Callable[[SubmissionError], None]


class FormWizard:
    """Controller for one wizard session.

    States are the step indexes 0..N-1 plus the terminal submitted phase.
    ``next`` validates and advances (or submits from the last step),
    ``prev`` goes back without validating, ``edit_field`` records a value.

    Attributes:
        definition: The form being filled
        context: Landing-page context (page slug, attribution, prefill claims)
        state: Session state, available once ``initialize`` has run
    """

    def __init__(
        self,
        definition: FormDefinition,
        store: DataStore,
        tracking_sinks: Optional[List[TrackingSink]] = None,
        context: Optional[CaptureContext] = None,
        on_success: Optional[SuccessCallback] = None,
        on_failure: Optional[FailureCallback] = None,
        project_type: str = "mutuelle_sante",
        project_commercial: str = "Auto-Lead",
    ):
        self.definition = definition
        self.context = context or CaptureContext()
        self.tracking = TrackingEmitter(
            tracking_sinks if tracking_sinks is not None else [LoggingTrackingSink()]
        )
        self.pipeline = SubmissionPipeline(
            form_id=definition.form_id,
            store=store,
            tracking=self.tracking,
            context=self.context,
            project_type=project_type,
            project_commercial=project_commercial,
        )
        self._validation_engine = ValidationEngine(definition)
        self._on_success = on_success
        self._on_failure = on_failure
        self._state: Optional[FormState] = None
        self.last_error: Optional[SubmissionError] = None

    @classmethod
    def from_settings(
        cls,
        definition: FormDefinition,
        settings: Settings,
        store: Optional[DataStore] = None,
        **kwargs: Any,
    ) -> "FormWizard":
        """Build a wizard whose store and project defaults come from settings."""
        return cls(
            definition,
            store=store or SupabaseStore.from_settings(settings),
            project_type=settings.project_type,
            project_commercial=settings.project_commercial,
            **kwargs,
        )

    @property
    def form_id(self) -> str:
        return self.definition.form_id

    @property
    def state(self) -> FormState:
        if self._state is None:
            raise RuntimeError("wizard is not initialized, call initialize() first")
        return self._state

    def initialize(self, values: Optional[Dict[str, Any]] = None) -> FormState:
        """Create the session state, apply prefill claims and emit form_started.

        Must be called exactly once per wizard.

        Args:
            values: Values already entered before the wizard was initialized;
                they win over prefill claims

        Returns:
            The initial FormState (step 0)

        Raises:
            InvalidStateTransitionError: If the wizard was already initialized
        """
        if self._state is not None:
            raise InvalidStateTransitionError(
                current_phase=self._state.phase,
                target_phase=WizardPhase.EDITING,
                message="Wizard is already initialized.",
            )

        prefilled = self._prefill_values()
        prefilled.update(values or {})
        self._state = FormState(step_count=self.definition.step_count, values=prefilled)

        self.tracking.emit(TrackingEventName.FORM_STARTED, self.form_id, {
            "page_slug": self.context.page_slug,
            "utm": dict(self.context.attribution),
        })
        return self._state

    def _prefill_values(self) -> Dict[str, Any]:
        claims = self.context.prefill_claims or {}
        prefilled: Dict[str, Any] = {}
        for claim, field_id in PREFILL_CLAIMS.items():
            if claims.get(claim) and self.definition.has_field(field_id):
                prefilled[field_id] = claims[claim]
        return prefilled

    def edit_field(self, field_id: str, value: Any) -> None:
        """Record a value and clear that field's displayed error, if any.

        Other fields' errors are left untouched and nothing is re-validated.

        Raises:
            KeyError: If the form declares no such field
            InvalidStateTransitionError: If the wizard no longer accepts edits
        """
        state = self.state
        state.ensure_editable()
        self.definition.field(field_id)
        state.values[field_id] = value
        state.errors.pop(field_id, None)

    def set_consent(self, name: str, granted: bool) -> None:
        """Toggle one consent opt-in.

        Raises:
            ValueError: For the contractual consent or an unknown name
        """
        state = self.state
        state.ensure_editable()
        if name == "contractual":
            raise ValueError("contractual consent is always granted")
        if name not in {f.name for f in fields(ConsentFlags)}:
            raise ValueError(f"unknown consent '{name}'")
        setattr(state.consents, name, bool(granted))

    def validate_step(self, step_index: Optional[int] = None) -> ValidationResult:
        """Validate one step and replace the displayed errors with the result."""
        state = self.state
        index = state.step_index if step_index is None else step_index
        result = self._validation_engine.validate_step(index, state.values)
        state.errors = result.error_map
        return result

    def next(self) -> NavigationOutcome:
        """Validate the current step, then advance or submit.

        Returns:
            INVALID if the step has errors (the wizard stays put), ADVANCED
            after moving to the next step, SUBMITTED or FAILED when called
            on the last step
        """
        state = self.state
        state.ensure_editable()

        result = self.validate_step()
        if not result.is_valid:
            return NavigationOutcome.INVALID

        step = self.definition.steps[state.step_index]
        self.tracking.emit(TrackingEventName.STEP_COMPLETED, self.form_id, {
            "step": state.step_index + 1,
            "step_title": step.title,
            "payload": dict(state.values),
        })

        if not state.is_last_step:
            state.go_to_step(state.step_index + 1)
            return NavigationOutcome.ADVANCED
        return self.submit()

    def prev(self) -> int:
        """Go back one step without validating. Returns the new step index."""
        state = self.state
        state.go_to_step(state.step_index - 1)
        return state.step_index

    def submit(self) -> NavigationOutcome:
        """Re-validate and run the submission pipeline.

        On success the wizard reaches its terminal phase and the success
        callback receives the Submission. On failure the wizard goes back to
        editing on the last step, ``last_error`` is set and the failure
        callback is invoked; resubmitting runs the whole pipeline again.
        """
        state = self.state
        state.ensure_editable()

        if not self.validate_step().is_valid:
            return NavigationOutcome.INVALID
        earlier = self._validation_engine.validate_all(state.values)
        if earlier is not None:
            state.go_to_step(earlier.step_index)
            state.errors = earlier.error_map
            return NavigationOutcome.INVALID

        state.transition_to(WizardPhase.SUBMITTING)
        try:
            submission = self.pipeline.execute(dict(state.values), state.consents)
        except SubmissionError as exc:
            return self._fail(exc)
        except Exception as exc:
            logger.exception(f"Unexpected submission failure for form {self.form_id}")
            error = SubmissionError(f"unexpected failure: {exc}")
            error.__cause__ = exc
            return self._fail(error)

        state.transition_to(WizardPhase.SUBMITTED)
        self.last_error = None
        if self._on_success is not None:
            self._on_success(submission)
        return NavigationOutcome.SUBMITTED

    def _fail(self, error: SubmissionError) -> NavigationOutcome:
        self.state.transition_to(WizardPhase.EDITING)
        self.last_error = error
        logger.error(f"Submission failed for form {self.form_id}: {error}")
        if self._on_failure is not None:
            self._on_failure(error)
        return NavigationOutcome.FAILED


__all__ = [
    "FormWizard",
    "PREFILL_CLAIMS",
]
