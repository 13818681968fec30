import hashlib
import hmac
import json

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr
from sqlalchemy import select

from wa_hub.api.v1 import webhooks_whatsapp
from wa_hub.core.config import settings
from wa_hub.db.model.messaging import IncomingMessage
from wa_hub.main import app

URL = f"{settings.API_PREFIX}/webhooks/whatsapp"


@pytest.fixture
def client(monkeypatch, session_factory):
    monkeypatch.setattr(webhooks_whatsapp, "SessionLocal", session_factory)
    monkeypatch.setattr(settings, "WHATSAPP_WEBHOOK_VERIFY_TOKEN", "verify-me")
    monkeypatch.setattr(settings, "WHATSAPP_APP_SECRET", None)
    return TestClient(app)


def _event(message_id="in-1"):
    return {
        "object": "whatsapp_business_account",
        "entry": [{"changes": [{"field": "messages", "value": {
            "metadata": {"phone_number_id": "phone-1"},
            "messages": [{"id": message_id, "from": "233241234567", "type": "text", "text": {"body": "hello"}}],
        }}]}],
    }


def test_verify_echoes_challenge(client):
    resp = client.get(URL, params={"hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "12345"})
    assert resp.status_code == 200
    assert resp.text == "12345"


@pytest.mark.parametrize("params", [
    {"hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "1"},
    {"hub.mode": "unsubscribe", "hub.verify_token": "verify-me", "hub.challenge": "1"},
    {},
])
def test_verify_rejects(client, params):
    assert client.get(URL, params=params).status_code == 403


def test_event_is_ingested(client, db, business):
    resp = client.post(URL, json=_event())
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "statuses": 0, "messages": 1, "errors": 0}
    row = db.execute(select(IncomingMessage)).scalars().one()
    assert row.business_id == business.id


def test_malformed_body_is_still_acknowledged(client):
    resp = client.post(URL, content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_processing_error_is_acknowledged(client, monkeypatch):
    def boom(db, payload):
        raise RuntimeError("db down")

    monkeypatch.setattr(webhooks_whatsapp, "process_webhook_payload", boom)
    resp = client.post(URL, json=_event())
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "note": "processing error"}


def test_signature_checked_when_secret_configured(client, monkeypatch, db, business):
    monkeypatch.setattr(settings, "WHATSAPP_APP_SECRET", SecretStr("app-secret"))
    raw = json.dumps(_event("in-signed")).encode("utf-8")
    good = "sha256=" + hmac.new(b"app-secret", raw, hashlib.sha256).hexdigest()

    assert client.post(URL, content=raw).status_code == 401
    assert client.post(URL, content=raw, headers={"X-Hub-Signature-256": "sha256=deadbeef"}).status_code == 401

    resp = client.post(URL, content=raw, headers={"X-Hub-Signature-256": good})
    assert resp.status_code == 200
    assert resp.json()["messages"] == 1
