"""Tests for email-provider webhook ingestion.

Tests cover:
- Event dispatch to interaction types and statuses
- Contact resolution by email
- Logged, non-fatal store failures
- The HTTP endpoint: pre-flight, success and error envelopes, CORS headers
"""

import logging

import pytest
from fastapi.testclient import TestClient

from leadcapture.types import InteractionStatus, InteractionType
from leadcapture.webhook.app import CORS_HEADERS, app, get_store
from leadcapture.webhook.handlers import EVENT_BUILDERS, WebhookIngestionHandler
from leadcapture.webhook.models import ProviderEvent, provider_time_to_iso
from tests.fakes import FakeStore


def make_event(**overrides):
    data = {"event": "opened", "email": "a@b.fr", "ts": 1700000000, "message-id": "<msg-1@relay>"}
    data.update(overrides)
    return ProviderEvent.model_validate(data)


@pytest.fixture
def store():
    store = FakeStore()
    store.rows["contact"].append({"identifiant": 42, "email": "a@b.fr"})
    return store


class TestProviderEvent:
    """Test payload parsing."""

    def test_aliases_and_extras(self):
        event = make_event(tags=["campagne-juin", "relance"], sending_ip="1.2.3.4")
        assert event.message_id == "<msg-1@relay>"
        assert event.campaign_tag == "campagne-juin"
        assert event.model_extra == {"sending_ip": "1.2.3.4"}

    def test_no_tags(self):
        assert make_event().campaign_tag is None

    def test_provider_time(self):
        assert provider_time_to_iso(1700000000) == "2023-11-14T22:13:20.000Z"
        assert provider_time_to_iso(1700000000.25) == "2023-11-14T22:13:20.250Z"


class TestDispatch:
    """Test event type mapping."""

    def test_opened_event(self, store):
        """Scenario: an open for a known contact records one success row."""
        interaction = WebhookIngestionHandler(store).handle(make_event())

        assert interaction.contact_id == 42
        assert interaction.type == InteractionType.OUVERTURE
        assert interaction.statut == InteractionStatus.SUCCESS
        assert interaction.canal == "email"
        assert store.inserts("interactions") == [{
            "contact_id": 42,
            "type": "ouverture",
            "canal": "email",
            "sujet": "Email ouvert",
            "message": "Email ouvert",
            "statut": "success",
            "created_at": "2023-11-14T22:13:20.000Z",
        }]

    @pytest.mark.parametrize("event_name, interaction_type, status", [
        ("delivered", InteractionType.ENVOI, InteractionStatus.SUCCESS),
        ("opened", InteractionType.OUVERTURE, InteractionStatus.SUCCESS),
        ("click", InteractionType.CLIC, InteractionStatus.SUCCESS),
        ("bounced", InteractionType.BOUNCE, InteractionStatus.ERROR),
        ("hard_bounced", InteractionType.BOUNCE, InteractionStatus.ERROR),
        ("soft_bounced", InteractionType.BOUNCE, InteractionStatus.ERROR),
        ("unsubscribed", InteractionType.DESABONNEMENT, InteractionStatus.INFO),
    ])
    def test_mapping(self, store, event_name, interaction_type, status):
        interaction = WebhookIngestionHandler(store).handle(make_event(event=event_name))
        assert (interaction.type, interaction.statut) == (interaction_type, status)
        assert len(store.inserts("interactions")) == 1

    def test_every_builder_is_tested(self):
        assert set(EVENT_BUILDERS) == {
            "delivered", "opened", "click", "bounced", "hard_bounced", "soft_bounced", "unsubscribed",
        }

    def test_messages_carry_event_details(self, store):
        handler = WebhookIngestionHandler(store)
        clicked = handler.handle(make_event(event="click", link="https://exemple.fr/devis"))
        bounced = handler.handle(make_event(event="hard_bounced", reason="mailbox full", subject="Votre devis"))
        assert clicked.message == "Lien cliqué: https://exemple.fr/devis"
        assert clicked.sujet == "Lien cliqué"
        assert bounced.message == "Email bounce: mailbox full"
        assert bounced.sujet == "Votre devis"

    def test_unknown_event_is_ignored(self, store, caplog):
        """Scenario: an unrecognized event writes nothing."""
        with caplog.at_level(logging.INFO, logger="leadcapture.webhook.handlers"):
            assert WebhookIngestionHandler(store).handle(make_event(event="spam")) is None
        assert store.inserts("interactions") == []
        assert "Unhandled provider event: spam" in caplog.text

    def test_redelivery_is_not_deduplicated(self, store):
        handler = WebhookIngestionHandler(store)
        handler.handle(make_event())
        handler.handle(make_event())
        assert len(store.inserts("interactions")) == 2


class TestContactResolution:
    """Test recipient lookup."""

    def test_unknown_recipient(self, store):
        interaction = WebhookIngestionHandler(store).handle(make_event(email="inconnu@b.fr"))
        assert interaction.contact_id is None
        assert store.inserts("interactions")[0]["contact_id"] is None

    def test_ambiguous_recipient(self, store):
        store.rows["contact"].append({"identifiant": 43, "email": "a@b.fr"})
        assert WebhookIngestionHandler(store).resolve_contact_id("a@b.fr") is None

    def test_exact_match_only(self, store):
        assert WebhookIngestionHandler(store).resolve_contact_id("A@B.fr") is None

    def test_lookup_failure(self):
        store = FakeStore(fail_select_on={"contact"})
        interaction = WebhookIngestionHandler(store).handle(make_event())
        assert interaction.contact_id is None
        assert len(store.inserts("interactions")) == 1

    def test_insert_failure_is_logged(self, caplog):
        store = FakeStore(fail_insert_on={"interactions"})
        with caplog.at_level(logging.ERROR, logger="leadcapture.webhook.handlers"):
            interaction = WebhookIngestionHandler(store).handle(make_event(event="delivered"))
        assert interaction.type == InteractionType.ENVOI
        assert "Interaction insert failed for delivered" in caplog.text


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def assert_cors(response):
    for name, value in CORS_HEADERS.items():
        assert response.headers[name] == value


class TestEndpoint:
    """Test the HTTP surface."""

    @pytest.mark.parametrize("path", ["/", "/webhooks/brevo"])
    def test_preflight(self, client, path):
        response = client.options(path)
        assert response.status_code == 200
        assert response.content == b""
        assert_cors(response)

    @pytest.mark.parametrize("path", ["/", "/webhooks/brevo"])
    def test_event_recorded(self, client, store, path):
        response = client.post(path, json={"event": "delivered", "email": "a@b.fr", "ts": 1700000000})
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert_cors(response)
        assert store.inserts("interactions")[0]["contact_id"] == 42

    def test_unknown_event_still_succeeds(self, client, store):
        response = client.post("/", json={"event": "spam", "email": "a@b.fr", "ts": 1700000000})
        assert response.status_code == 200
        assert store.inserts("interactions") == []

    def test_insert_failure_still_succeeds(self, client, store):
        store.fail_insert_on.add("interactions")
        response = client.post("/", json={"event": "opened", "email": "a@b.fr", "ts": 1700000000})
        assert response.status_code == 200

    def test_malformed_json(self, client):
        response = client.post("/", content=b"{not json", headers={"content-type": "application/json"})
        assert response.status_code == 500
        assert "error" in response.json()
        assert_cors(response)

    def test_missing_fields(self, client, store):
        response = client.post("/", json={"event": "opened"})
        assert response.status_code == 500
        assert "email" in response.json()["error"]
        assert store.calls == []

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.parametrize("method", ["PUT", "PATCH", "DELETE", "GET"])
    def test_any_method_submits_event(self, client, store, method):
        """Every method other than OPTIONS is treated as an event submission."""
        response = client.request(
            method, "/webhooks/brevo", json={"event": "opened", "email": "a@b.fr", "ts": 1700000000}
        )
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert_cors(response)
        assert len(store.inserts("interactions")) == 1

    def test_open_with_subject(self, client, store):
        """Scenario: an open for a known contact keeps the provider subject."""
        response = client.post(
            "/", json={"event": "opened", "email": "a@b.fr", "ts": 1700000000, "subject": "Hi"}
        )
        assert response.status_code == 200
        assert store.inserts("interactions") == [{
            "contact_id": 42,
            "type": "ouverture",
            "canal": "email",
            "sujet": "Hi",
            "message": "Email ouvert",
            "statut": "success",
            "created_at": "2023-11-14T22:13:20.000Z",
        }]

    def test_unknown_recipient_is_recorded(self, client, store):
        """Scenario: a delivery to an unknown address is stored without a contact."""
        response = client.post("/", json={"event": "delivered", "email": "inconnu@b.fr", "ts": 1700000000})
        assert response.status_code == 200
        assert response.json() == {"success": True}
        [row] = store.inserts("interactions")
        assert row["contact_id"] is None
        assert row["type"] == "envoi"
        assert row["statut"] == "success"
