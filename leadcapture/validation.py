"""Field and step validation for the lead-capture wizard.

``validate_field`` decides whether one value satisfies one field's declared
constraints. ``ValidationEngine`` runs it over every field of a step and
produces the complete error map the wizard displays.

Checks, in order, for a single field:
1. required and empty (None, "", []) -> REQUIRED
2. otherwise, if the value is non-empty:
   - choice fields: every selected value must be a declared option
   - date fields: the value must parse as an ISO date
   - rule pattern: the whole value must match (each item for lists)
   - rule min/max: length within inclusive bounds (item count for lists)

Validation is a pure function of (field, value); nothing here mutates state.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dateutil.parser import isoparse

from leadcapture.errors import FieldError
from leadcapture.forms import ChoiceField, DateField, FormDefinition, FormField
from leadcapture.types import FieldErrorCode


def is_empty(value: Any) -> bool:
    """True for None, the empty string and empty sequences."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple)):
        return len(value) == 0
    return False


def validate_field(form_field: FormField, value: Any) -> Optional[FieldError]:
    """Validate one value against one field definition.

    Args:
        form_field: The field definition
        value: Candidate value (string, list of strings, or None)

    Returns:
        A FieldError for the first failed check, or None if the value passes

    Examples:
        >>> from leadcapture.forms import TextField
        >>> validate_field(TextField(id="nom", label="Nom", required=True), "")
        FieldError(field_id='nom', code=<FieldErrorCode.REQUIRED: 'required'>, message='Nom est requis', received=None)
        >>> validate_field(TextField(id="nom", label="Nom", required=True), "Durand") is None
        True
    """
    if is_empty(value):
        if form_field.required:
            return FieldError(
                field_id=form_field.id,
                code=FieldErrorCode.REQUIRED,
                message=f"{form_field.label} est requis",
            )
        return None

    items = list(value) if isinstance(value, (list, tuple)) else [value]

    if isinstance(form_field, ChoiceField):
        unknown = [item for item in items if item not in form_field.options]
        if unknown or (len(items) > 1 and not form_field.multiple):
            return FieldError(
                field_id=form_field.id,
                code=FieldErrorCode.INVALID_VALUE,
                message=f"Valeur non autorisée pour {form_field.label}",
                received=value,
            )

    if isinstance(form_field, DateField):
        try:
            isoparse(str(value))
        except ValueError:
            return FieldError(
                field_id=form_field.id,
                code=FieldErrorCode.INVALID_FORMAT,
                message=f"Date incorrecte pour {form_field.label}",
                received=value,
            )

    rule = form_field.validation
    if rule is None:
        return None

    if rule.pattern is not None:
        regex = re.compile(rule.pattern)
        if not all(regex.fullmatch(str(item)) for item in items):
            return FieldError(
                field_id=form_field.id,
                code=FieldErrorCode.INVALID_FORMAT,
                message=rule.message or f"Format incorrect pour {form_field.label}",
                received=value,
            )

    length = len(value)
    if rule.min is not None and length < rule.min:
        return FieldError(
            field_id=form_field.id,
            code=FieldErrorCode.TOO_SHORT,
            message=f"{form_field.label} doit contenir au moins {rule.min} caractères",
            received=value,
        )
    if rule.max is not None and length > rule.max:
        return FieldError(
            field_id=form_field.id,
            code=FieldErrorCode.TOO_LONG,
            message=f"{form_field.label} doit contenir au maximum {rule.max} caractères",
            received=value,
        )

    return None


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating one step.

    Attributes:
        step_index: The step that was validated
        errors: Field-level errors in declared field order (empty if valid)

    Examples:
        >>> result = ValidationResult(step_index=0, errors=[])
        >>> result.is_valid
        True
        >>> result.error_map
        {}
    """
    step_index: int
    errors: List[FieldError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def error_map(self) -> Dict[str, str]:
        """Field id -> message, the shape the wizard displays."""
        return {e.field_id: e.message for e in self.errors}

    @property
    def missing_fields(self) -> List[str]:
        return [e.field_id for e in self.errors if e.code == FieldErrorCode.REQUIRED]

    @property
    def invalid_fields(self) -> List[str]:
        return [e.field_id for e in self.errors if e.code != FieldErrorCode.REQUIRED]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "stepIndex": self.step_index,
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "missingFields": self.missing_fields,
            "invalidFields": self.invalid_fields,
        }


class ValidationEngine:
    """Step validator for one form definition.

    Attributes:
        definition: The form whose steps are validated

    Examples:
        >>> from leadcapture.forms import default_quote_form
        >>> engine = ValidationEngine(default_quote_form())
        >>> result = engine.validate_step(0, {"prenom": "Léa"})
        >>> result.is_valid
        False
        >>> sorted(result.missing_fields)
        ['email', 'nom', 'telephone']
    """

    def __init__(self, definition: FormDefinition) -> None:
        self.definition = definition

    def validate_step(self, step_index: int, values: Dict[str, Any]) -> ValidationResult:
        """Validate every field of one step against the current values.

        Args:
            step_index: 0-based index of the step
            values: Field id -> entered value

        Returns:
            ValidationResult holding every failing field of the step

        Raises:
            IndexError: If step_index is outside the definition
        """
        if not 0 <= step_index < self.definition.step_count:
            raise IndexError(f"step index {step_index} out of range")

        errors: List[FieldError] = []
        for form_field in self.definition.steps[step_index].fields:
            error = validate_field(form_field, values.get(form_field.id))
            if error is not None:
                errors.append(error)
        return ValidationResult(step_index=step_index, errors=errors)

    def validate_all(self, values: Dict[str, Any]) -> Optional[ValidationResult]:
        """Validate every step in order.

        Returns:
            The result for the first invalid step, or None if all pass
        """
        for index in range(self.definition.step_count):
            result = self.validate_step(index, values)
            if not result.is_valid:
                return result
        return None


__all__ = [
    "is_empty",
    "validate_field",
    "ValidationResult",
    "ValidationEngine",
]
