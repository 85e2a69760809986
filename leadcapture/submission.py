"""Submission pipeline for the lead-capture wizard.

Turns a fully validated wizard state into durable records. Writes are
sequential, each depending on the identifier generated by the previous one:

1. contact      (``contact``)          -- failure aborts everything
2. consents     (``consents``)         -- best effort, failures logged
3. project      (``projets``)          -- failure aborts, contact stays
4. submission   (``form_submissions``) -- best effort, failures logged
5. tracking     ``form_submitted`` then ``consent_granted``

There is no retry and no idempotency key: running the pipeline twice with
the same values creates two contacts and two projects.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from leadcapture.errors import ContactCreationError, ProjectCreationError, StoreError
from leadcapture.events import TrackingEmitter
from leadcapture.store import DataStore
from leadcapture.types import ConsentFlags, SubmissionStatus, TrackingEventName

logger = logging.getLogger(__name__)

CONTACT_TABLE = "contact"
CONSENT_TABLE = "consents"
PROJECT_TABLE = "projets"
SUBMISSION_TABLE = "form_submissions"

CONTACT_ID_COLUMN = "identifiant"
PROJECT_ID_COLUMN = "projet_id"

# Wizard field id -> contact column
CONTACT_FIELDS = ("civilite", "prenom", "nom", "email", "telephone", "code_postal")

# Consent flag -> (purpose, channel, text shown next to the checkbox)
CONSENT_RECORDS: Dict[str, Tuple[str, str, str]] = {
    "marketing": (
        "marketing",
        "email",
        "J'accepte de recevoir des offres commerciales personnalisées par email.",
    ),
    "phone": (
        "marketing",
        "phone",
        "J'accepte d'être contacté par téléphone par nos conseillers ou nos partenaires.",
    ),
    "sms": (
        "marketing",
        "sms",
        "J'accepte de recevoir des offres commerciales par SMS.",
    ),
    "partners": (
        "partners",
        "all",
        "J'accepte que mes données soient partagées avec nos partenaires assureurs.",
    ),
}


@dataclass(frozen=True)
class ClientContext:
    """Browser context recorded on consent records."""
    ip: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class CaptureContext:
    """Where and how a wizard session was opened.

    Attributes:
        page_slug: Landing page hosting the form
        attribution: Campaign parameters captured when the form loaded
        prefill_claims: Externally supplied identity claims (email, phone,
            first_name, last_name) used to prefill the form
        client: Browser context of the visitor
    """
    page_slug: Optional[str] = None
    attribution: Dict[str, str] = field(default_factory=dict)
    prefill_claims: Optional[Dict[str, Any]] = None
    client: ClientContext = field(default_factory=ClientContext)


@dataclass(frozen=True)
class Submission:
    """Durable result of a completed wizard.

    Created once per successful pipeline run and never mutated afterwards;
    later status changes happen in downstream systems.
    """
    form_id: str
    payload: Dict[str, Any]
    status: SubmissionStatus
    utm: Dict[str, str]
    contact_id: Optional[str] = None
    project_id: Optional[str] = None
    prefill_claims: Optional[Dict[str, Any]] = None
    page_slug: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "form_id": self.form_id,
            "contact_id": self.contact_id,
            "project_id": self.project_id,
            "payload": self.payload,
            "status": self.status.value,
            "utm": self.utm,
            "page_slug": self.page_slug,
            "created_at": self.created_at.isoformat(),
        }
        if self.prefill_claims is not None:
            result["prefill_claims"] = self.prefill_claims
        return result


def build_contact_row(values: Dict[str, Any]) -> Dict[str, Any]:
    """Contact columns taken from the collected values."""
    return {name: values[name] for name in CONTACT_FIELDS if values.get(name) not in (None, "")}


def build_consent_rows(
    contact_id: Any, consents: ConsentFlags, client: ClientContext
) -> List[Dict[str, Any]]:
    """One consent record per granted opt-in.

    The contractual basis and the default email channel never produce a
    record.

    Examples:
        >>> rows = build_consent_rows(7, ConsentFlags(phone=True), ClientContext())
        >>> [(r["purpose"], r["channel"]) for r in rows]
        [('marketing', 'phone')]
    """
    rows: List[Dict[str, Any]] = []
    for flag, (purpose, channel, text) in CONSENT_RECORDS.items():
        if not getattr(consents, flag):
            continue
        rows.append({
            "contact_id": contact_id,
            "purpose": purpose,
            "channel": channel,
            "lawful_basis": "consent",
            "text": text,
            "granted": True,
            "ip": client.ip,
            "user_agent": client.user_agent,
        })
    return rows


class SubmissionPipeline:
    """Writes the records produced by one completed wizard.

    Args:
        form_id: Form definition identifier
        store: External data store
        tracking: Tracking emitter for form_submitted / consent_granted
        context: Landing-page context of the session
        project_type: ``type`` written on created projects
        project_commercial: ``commercial`` written on created projects
    """

    def __init__(
        self,
        form_id: str,
        store: DataStore,
        tracking: TrackingEmitter,
        context: Optional[CaptureContext] = None,
        project_type: str = "mutuelle_sante",
        project_commercial: str = "Auto-Lead",
    ):
        self.form_id = form_id
        self.store = store
        self.tracking = tracking
        self.context = context or CaptureContext()
        self.project_type = project_type
        self.project_commercial = project_commercial

    def execute(self, values: Dict[str, Any], consents: ConsentFlags) -> Submission:
        """Run every write for one submission.

        Args:
            values: Validated field values
            consents: Consent flags from the last step

        Returns:
            The assembled Submission

        Raises:
            ContactCreationError: The contact insert failed; nothing was written
            ProjectCreationError: The project insert failed after the contact
                was created
        """
        contact = self._create_contact(values)
        contact_id = contact[CONTACT_ID_COLUMN]

        self._record_consents(contact_id, consents)

        project = self._create_project(contact_id)
        project_id = project.get(PROJECT_ID_COLUMN)

        submission = Submission(
            form_id=self.form_id,
            payload=dict(values),
            status=SubmissionStatus.SUBMITTED,
            utm=dict(self.context.attribution),
            contact_id=str(contact_id),
            project_id=str(project_id) if project_id is not None else None,
            prefill_claims=self.context.prefill_claims,
            page_slug=self.context.page_slug,
        )
        self._persist_submission(submission)

        self.tracking.emit(TrackingEventName.FORM_SUBMITTED, self.form_id, {
            "contact_id": contact_id,
            "projet_id": project_id,
            "utm": dict(self.context.attribution),
        })
        self.tracking.emit(TrackingEventName.CONSENT_GRANTED, self.form_id, {
            "contact_id": contact_id,
            "purposes": consents.granted_purposes(),
        })
        return submission

    def _create_contact(self, values: Dict[str, Any]) -> Dict[str, Any]:
        try:
            contact = self.store.insert(CONTACT_TABLE, build_contact_row(values))
        except StoreError as exc:
            logger.error(f"Contact creation failed for form {self.form_id}: {exc}")
            raise ContactCreationError(f"contact creation failed: {exc}") from exc
        if contact.get(CONTACT_ID_COLUMN) is None:
            raise ContactCreationError("contact creation returned no identifier")
        return contact

    def _record_consents(self, contact_id: Any, consents: ConsentFlags) -> None:
        for row in build_consent_rows(contact_id, consents, self.context.client):
            try:
                self.store.insert(CONSENT_TABLE, row)
            except StoreError as exc:
                logger.warning(
                    f"Consent {row['purpose']}/{row['channel']} not recorded for contact {contact_id}: {exc}"
                )

    def _create_project(self, contact_id: Any) -> Dict[str, Any]:
        attribution = self.context.attribution
        row = {
            "contact_id": contact_id,
            "origine": attribution.get("utm_source") or "landing-page",
            "provenance": self.context.page_slug or "unknown",
            "statut": "nouveau",
            "type": self.project_type,
            "attribution": attribution.get("utm_campaign") or "default",
            "date_creation": datetime.now(timezone.utc).isoformat(),
            "commercial": self.project_commercial,
        }
        try:
            return self.store.insert(PROJECT_TABLE, row)
        except StoreError as exc:
            logger.error(f"Project creation failed for contact {contact_id}, contact left without project: {exc}")
            raise ProjectCreationError(f"project creation failed: {exc}", contact_id=contact_id) from exc

    def _persist_submission(self, submission: Submission) -> None:
        try:
            self.store.insert(SUBMISSION_TABLE, submission.to_dict())
        except StoreError as exc:
            logger.warning(f"Submission snapshot not stored for contact {submission.contact_id}: {exc}")


__all__ = [
    "ClientContext",
    "CaptureContext",
    "Submission",
    "SubmissionPipeline",
    "build_contact_row",
    "build_consent_rows",
    "CONSENT_RECORDS",
    "CONTACT_FIELDS",
]
