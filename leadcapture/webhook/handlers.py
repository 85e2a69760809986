"""Email-provider event ingestion.

Each recognized provider event becomes exactly one Interaction row:

    delivered                              -> envoi          / success
    opened                                 -> ouverture      / success
    click                                  -> clic           / success
    bounced, hard_bounced, soft_bounced    -> bounce         / error
    unsubscribed                           -> desabonnement  / info

Unrecognized events are logged and ignored. The recipient is resolved to a
contact by exact email match; a miss still records the interaction, with a
null contact reference. Events are neither ordered nor deduplicated: a
provider redelivery produces a second row.
"""
import logging
from typing import Any, Callable, Dict, Optional

from leadcapture.errors import StoreError
from leadcapture.store import DataStore
from leadcapture.types import InteractionStatus, InteractionType
from leadcapture.webhook.models import Interaction, ProviderEvent, provider_time_to_iso

logger = logging.getLogger(__name__)

INTERACTION_TABLE = "interactions"
CONTACT_TABLE = "contact"
CONTACT_ID_COLUMN = "identifiant"
EMAIL_CHANNEL = "email"

InteractionBuilder = Callable[[ProviderEvent, Optional[Any]], Interaction]


def _delivered(event: ProviderEvent, contact_id: Optional[Any]) -> Interaction:
    return Interaction(
        contact_id=contact_id,
        type=InteractionType.ENVOI,
        canal=EMAIL_CHANNEL,
        sujet=event.subject or "Email envoyé",
        message="Email délivré avec succès",
        statut=InteractionStatus.SUCCESS,
        created_at=provider_time_to_iso(event.ts),
    )


def _opened(event: ProviderEvent, contact_id: Optional[Any]) -> Interaction:
    return Interaction(
        contact_id=contact_id,
        type=InteractionType.OUVERTURE,
        canal=EMAIL_CHANNEL,
        sujet=event.subject or "Email ouvert",
        message="Email ouvert",
        statut=InteractionStatus.SUCCESS,
        created_at=provider_time_to_iso(event.ts),
    )


def _clicked(event: ProviderEvent, contact_id: Optional[Any]) -> Interaction:
    return Interaction(
        contact_id=contact_id,
        type=InteractionType.CLIC,
        canal=EMAIL_CHANNEL,
        sujet=event.subject or "Lien cliqué",
        message=f"Lien cliqué: {event.link}",
        statut=InteractionStatus.SUCCESS,
        created_at=provider_time_to_iso(event.ts),
    )


def _bounced(event: ProviderEvent, contact_id: Optional[Any]) -> Interaction:
    return Interaction(
        contact_id=contact_id,
        type=InteractionType.BOUNCE,
        canal=EMAIL_CHANNEL,
        sujet=event.subject or "Email bounce",
        message=f"Email bounce: {event.reason}",
        statut=InteractionStatus.ERROR,
        created_at=provider_time_to_iso(event.ts),
    )


def _unsubscribed(event: ProviderEvent, contact_id: Optional[Any]) -> Interaction:
    return Interaction(
        contact_id=contact_id,
        type=InteractionType.DESABONNEMENT,
        canal=EMAIL_CHANNEL,
        sujet="Désabonnement",
        message="Contact désabonné",
        statut=InteractionStatus.INFO,
        created_at=provider_time_to_iso(event.ts),
    )


EVENT_BUILDERS: Dict[str, InteractionBuilder] = {
    "delivered": _delivered,
    "opened": _opened,
    "click": _clicked,
    "bounced": _bounced,
    "hard_bounced": _bounced,
    "soft_bounced": _bounced,
    "unsubscribed": _unsubscribed,
}


class WebhookIngestionHandler:
    """Appends one Interaction per recognized provider event.

    Stateless apart from the injected store; safe to share across requests.
    """

    def __init__(self, store: DataStore):
        self.store = store

    def handle(self, event: ProviderEvent) -> Optional[Interaction]:
        """Dispatch one provider event.

        Returns:
            The Interaction built for the event, or None when the event type
            is not handled. A failed insert is logged and the Interaction is
            still returned.
        """
        logger.info(f"Event: {event.event}, Email: {event.email}, Message ID: {event.message_id}")

        builder = EVENT_BUILDERS.get(event.event)
        if builder is None:
            logger.info(f"Unhandled provider event: {event.event}")
            return None

        interaction = builder(event, self.resolve_contact_id(event.email))
        try:
            self.store.insert(INTERACTION_TABLE, interaction.to_row())
        except StoreError as e:
            logger.error(f"Interaction insert failed for {event.event}: {e}")
        return interaction

    def resolve_contact_id(self, email: str) -> Optional[Any]:
        """Exact-match lookup of a contact identifier by email.

        Zero matches, several matches or a failed lookup all resolve to None.
        """
        try:
            rows = self.store.select(
                CONTACT_TABLE, {"email": email}, columns=CONTACT_ID_COLUMN, limit=2
            )
        except StoreError as e:
            logger.error(f"Contact lookup failed for {email}: {e}")
            return None

        if len(rows) != 1:
            logger.info(f"No single contact found for email: {email} ({len(rows)} matches)")
            return None
        return rows[0].get(CONTACT_ID_COLUMN)
