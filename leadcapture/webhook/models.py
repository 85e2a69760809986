"""Webhook payload and interaction models"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from leadcapture.types import InteractionStatus, InteractionType


class ProviderEvent(BaseModel):
    """Event callback sent by the email-delivery provider"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    event: str
    email: str
    ts: float  # seconds since epoch, provider time
    message_id: Optional[str] = Field(default=None, alias="message-id")
    tags: Optional[List[str]] = None
    subject: Optional[str] = None
    link: Optional[str] = None
    reason: Optional[str] = None

    @property
    def campaign_tag(self) -> Optional[str]:
        """First tag, used as the campaign reference"""
        return self.tags[0] if self.tags else None


def provider_time_to_iso(ts: float) -> str:
    """Unix seconds -> ISO-8601 UTC instant with millisecond precision.

    >>> provider_time_to_iso(1700000000)
    '2023-11-14T22:13:20.000Z'
    """
    instant = datetime.fromtimestamp(ts, tz=timezone.utc)
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Interaction:
    """One normalized, append-only contact interaction"""
    contact_id: Optional[Any]
    type: InteractionType
    canal: str
    sujet: str
    message: str
    statut: InteractionStatus
    created_at: str

    def to_row(self) -> Dict[str, Any]:
        return {
            "contact_id": self.contact_id,
            "type": self.type.value,
            "canal": self.canal,
            "sujet": self.sujet,
            "message": self.message,
            "statut": self.statut.value,
            "created_at": self.created_at,
        }
