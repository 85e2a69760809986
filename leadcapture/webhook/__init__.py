"""Email-provider webhook ingestion.

The FastAPI application lives in ``leadcapture.webhook.app``; it is not
imported here so the handler can be used without the HTTP stack.
"""

from leadcapture.webhook.handlers import EVENT_BUILDERS, WebhookIngestionHandler
from leadcapture.webhook.models import Interaction, ProviderEvent, provider_time_to_iso

__all__ = [
    "EVENT_BUILDERS",
    "WebhookIngestionHandler",
    "Interaction",
    "ProviderEvent",
    "provider_time_to_iso",
]
