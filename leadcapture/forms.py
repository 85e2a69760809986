"""Form definitions for the lead-capture wizard.

A form definition is an ordered sequence of steps, each an ordered group of
fields. Field kinds form a closed set of variants decided when the definition
is loaded:

- text-like fields (text, email, tel, date) carry an optional placeholder
- choice fields (select, radio, checkbox) carry their list of options

Both variants may carry a ``ValidationRule``. Raw definitions (dicts parsed
from JSON) are checked against ``DEFINITION_SCHEMA`` with jsonschema before
any variant is built, so a loaded ``FormDefinition`` is always well formed.

Usage:
    >>> form = FormDefinition.from_dict({
    ...     "id": "contact",
    ...     "steps": [{"id": "s1", "title": "Vous", "fields": [
    ...         {"id": "nom", "type": "text", "label": "Nom", "required": True}
    ...     ]}]
    ... })
    >>> form.step_count
    1
    >>> form.field("nom").kind
    <FieldKind.TEXT: 'text'>
"""

import re
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from leadcapture.errors import FormDefinitionError
from leadcapture.types import FieldKind


DEFINITION_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["id", "steps"],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "steps": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["id", "title", "fields"],
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "fields": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["id", "type", "label"],
                            "properties": {
                                "id": {"type": "string", "minLength": 1},
                                "type": {"enum": [k.value for k in FieldKind]},
                                "label": {"type": "string"},
                                "placeholder": {"type": "string"},
                                "required": {"type": "boolean"},
                                "options": {
                                    "type": "array",
                                    "items": {"type": "string"},
                                },
                                "validation": {
                                    "type": "object",
                                    "properties": {
                                        "pattern": {"type": "string"},
                                        "min": {"type": "integer", "minimum": 0},
                                        "max": {"type": "integer", "minimum": 0},
                                        "message": {"type": "string"},
                                    },
                                    "additionalProperties": False,
                                },
                            },
                        },
                    },
                },
            },
        },
    },
}

_definition_validator = Draft7Validator(DEFINITION_SCHEMA)


@dataclass(frozen=True)
class ValidationRule:
    """Constraints applied to a non-empty field value.

    Attributes:
        pattern: Regular expression the whole value must match
        min: Minimum length, inclusive
        max: Maximum length, inclusive
        message: Custom message used when the pattern does not match
    """
    pattern: Optional[str] = None
    min: Optional[int] = None
    max: Optional[int] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            key: value
            for key, value in (
                ("pattern", self.pattern),
                ("min", self.min),
                ("max", self.max),
                ("message", self.message),
            )
            if value is not None
        }


@dataclass(frozen=True)
class FormField:
    """Base for every field variant. Not instantiated directly."""
    kind: ClassVar[FieldKind]

    id: str
    label: str
    required: bool = False
    validation: Optional[ValidationRule] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "label": self.label,
            "required": self.required,
        }
        if self.validation is not None:
            result["validation"] = self.validation.to_dict()
        return result


@dataclass(frozen=True)
class TextField(FormField):
    kind: ClassVar[FieldKind] = FieldKind.TEXT

    placeholder: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.placeholder is not None:
            result["placeholder"] = self.placeholder
        return result


@dataclass(frozen=True)
class EmailField(TextField):
    kind: ClassVar[FieldKind] = FieldKind.EMAIL


@dataclass(frozen=True)
class TelField(TextField):
    kind: ClassVar[FieldKind] = FieldKind.TEL


@dataclass(frozen=True)
class DateField(TextField):
    """Date input; values are ISO dates (YYYY-MM-DD)."""
    kind: ClassVar[FieldKind] = FieldKind.DATE


@dataclass(frozen=True)
class ChoiceField(FormField):
    """Base for fields whose values come from a fixed list of options."""
    options: Tuple[str, ...] = ()
    multiple: ClassVar[bool] = False

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["options"] = list(self.options)
        return result


@dataclass(frozen=True)
class SelectField(ChoiceField):
    kind: ClassVar[FieldKind] = FieldKind.SELECT


@dataclass(frozen=True)
class RadioField(ChoiceField):
    kind: ClassVar[FieldKind] = FieldKind.RADIO


@dataclass(frozen=True)
class CheckboxField(ChoiceField):
    """Multi-select field; its value is a list of selected options."""
    kind: ClassVar[FieldKind] = FieldKind.CHECKBOX
    multiple: ClassVar[bool] = True


FIELD_TYPES: Dict[FieldKind, Type[FormField]] = {
    FieldKind.TEXT: TextField,
    FieldKind.EMAIL: EmailField,
    FieldKind.TEL: TelField,
    FieldKind.DATE: DateField,
    FieldKind.SELECT: SelectField,
    FieldKind.RADIO: RadioField,
    FieldKind.CHECKBOX: CheckboxField,
}


@dataclass(frozen=True)
class FormStep:
    """An ordered, named group of fields."""
    id: str
    title: str
    fields: Tuple[FormField, ...]
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "fields": [f.to_dict() for f in self.fields],
        }
        if self.description is not None:
            result["description"] = self.description
        return result


@dataclass(frozen=True)
class FormDefinition:
    """Immutable, ordered sequence of steps making up one wizard.

    Attributes:
        form_id: Identifier carried on tracking events and submissions
        steps: Steps in wizard order
    """
    form_id: str
    steps: Tuple[FormStep, ...]

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def last_step_index(self) -> int:
        return len(self.steps) - 1

    def all_fields(self) -> List[FormField]:
        return [f for step in self.steps for f in step.fields]

    def field(self, field_id: str) -> FormField:
        """Look up a field by id.

        Raises:
            KeyError: If no step declares this field
        """
        for f in self.all_fields():
            if f.id == field_id:
                return f
        raise KeyError(field_id)

    def has_field(self, field_id: str) -> bool:
        return any(f.id == field_id for f in self.all_fields())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {"id": self.form_id, "steps": [s.to_dict() for s in self.steps]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormDefinition":
        """Load and check a raw form definition.

        Raises:
            FormDefinitionError: If the definition does not match
                DEFINITION_SCHEMA, declares a field id twice, carries an
                invalid regular expression, or declares a choice field
                without options
        """
        first = best_match(_definition_validator.iter_errors(data))
        if first is not None:
            path = ".".join(str(p) for p in first.path)
            raise FormDefinitionError(first.message, path=path)

        seen = set()
        steps: List[FormStep] = []
        for step_index, raw_step in enumerate(data["steps"]):
            step_fields: List[FormField] = []
            for field_index, raw_field in enumerate(raw_step["fields"]):
                path = f"steps.{step_index}.fields.{field_index}"
                if raw_field["id"] in seen:
                    raise FormDefinitionError(f"duplicate field id '{raw_field['id']}'", path=path)
                seen.add(raw_field["id"])
                step_fields.append(_build_field(raw_field, path))
            steps.append(
                FormStep(
                    id=raw_step["id"],
                    title=raw_step["title"],
                    fields=tuple(step_fields),
                    description=raw_step.get("description"),
                )
            )
        return cls(form_id=data["id"], steps=tuple(steps))


def _build_field(raw: Dict[str, Any], path: str) -> FormField:
    kind = FieldKind(raw["type"])
    field_cls = FIELD_TYPES[kind]

    rule = None
    if raw.get("validation"):
        rule = ValidationRule(**raw["validation"])
        if rule.pattern is not None:
            try:
                re.compile(rule.pattern)
            except re.error as exc:
                raise FormDefinitionError(f"invalid pattern: {exc}", path=f"{path}.validation.pattern")
        if rule.min is not None and rule.max is not None and rule.min > rule.max:
            raise FormDefinitionError("min is greater than max", path=f"{path}.validation")

    kwargs: Dict[str, Any] = {
        "id": raw["id"],
        "label": raw["label"],
        "required": raw.get("required", False),
        "validation": rule,
    }
    if issubclass(field_cls, ChoiceField):
        options = raw.get("options") or []
        if not options:
            raise FormDefinitionError(f"{kind.value} field requires options", path=path)
        kwargs["options"] = tuple(options)
    else:
        kwargs["placeholder"] = raw.get("placeholder")
    return field_cls(**kwargs)


DEFAULT_QUOTE_FORM: Dict[str, Any] = {
    "id": "default-form",
    "steps": [
        {
            "id": "step-1",
            "title": "Vos informations",
            "description": "Quelques détails pour personnaliser votre devis",
            "fields": [
                {"id": "prenom", "type": "text", "label": "Prénom", "placeholder": "Votre prénom", "required": True},
                {"id": "nom", "type": "text", "label": "Nom", "placeholder": "Votre nom", "required": True},
                {
                    "id": "email",
                    "type": "email",
                    "label": "Email",
                    "placeholder": "votre.email@exemple.fr",
                    "required": True,
                    "validation": {
                        "pattern": r"^[^@]+@[^@]+\.[^@]+$",
                        "message": "Veuillez saisir un email valide",
                    },
                },
                {
                    "id": "telephone",
                    "type": "tel",
                    "label": "Téléphone",
                    "placeholder": "06 12 34 56 78",
                    "required": True,
                    "validation": {
                        "pattern": r"^(?:(?:\+|00)33|0)\s*[1-9](?:[\s.-]*\d{2}){4}$",
                        "message": "Veuillez saisir un numéro français valide",
                    },
                },
            ],
        },
        {
            "id": "step-2",
            "title": "Votre situation",
            "description": "Pour vous proposer les meilleures garanties",
            "fields": [
                {
                    "id": "age",
                    "type": "select",
                    "label": "Votre âge",
                    "required": True,
                    "options": ["18-25 ans", "26-35 ans", "36-45 ans", "46-55 ans", "56-65 ans", "Plus de 65 ans"],
                },
                {
                    "id": "code_postal",
                    "type": "text",
                    "label": "Code postal",
                    "placeholder": "75001",
                    "required": True,
                    "validation": {"pattern": r"^\d{5}$", "message": "Code postal invalide (5 chiffres)"},
                },
                {
                    "id": "situation",
                    "type": "select",
                    "label": "Situation professionnelle",
                    "required": True,
                    "options": [
                        "Salarié(e)",
                        "Indépendant(e)",
                        "Fonctionnaire",
                        "Demandeur d'emploi",
                        "Retraité(e)",
                        "Étudiant(e)",
                    ],
                },
                {
                    "id": "mutuelle_actuelle",
                    "type": "select",
                    "label": "Avez-vous une mutuelle actuellement ?",
                    "required": True,
                    "options": ["Oui, j'ai une mutuelle", "Non, aucune mutuelle", "Je ne sais pas"],
                },
            ],
        },
        {
            "id": "step-3",
            "title": "Vos besoins",
            "description": "Dernière étape pour votre devis personnalisé",
            "fields": [
                {
                    "id": "garanties",
                    "type": "checkbox",
                    "label": "Garanties importantes pour vous",
                    "required": True,
                    "options": [
                        "Optique (lunettes, lentilles)",
                        "Dentaire (soins, prothèses)",
                        "Hospitalisation",
                        "Médecines douces",
                        "Maternité",
                    ],
                },
                {
                    "id": "budget",
                    "type": "select",
                    "label": "Budget mensuel souhaité",
                    "required": True,
                    "options": ["Moins de 30€", "30€ - 50€", "50€ - 80€", "80€ - 120€", "Plus de 120€"],
                },
                {
                    "id": "delai",
                    "type": "select",
                    "label": "Quand souhaitez-vous souscrire ?",
                    "required": True,
                    "options": ["Immédiatement", "Dans le mois", "Dans les 3 mois", "Je réfléchis encore"],
                },
            ],
        },
    ],
}


def default_quote_form() -> FormDefinition:
    """The three-step health-insurance quote form used on landing pages."""
    return FormDefinition.from_dict(DEFAULT_QUOTE_FORM)


__all__ = [
    "DEFINITION_SCHEMA",
    "ValidationRule",
    "FormField",
    "TextField",
    "EmailField",
    "TelField",
    "DateField",
    "ChoiceField",
    "SelectField",
    "RadioField",
    "CheckboxField",
    "FIELD_TYPES",
    "FormStep",
    "FormDefinition",
    "DEFAULT_QUOTE_FORM",
    "default_quote_form",
]
