"""Webhook surface."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from orderbot import main as main_mod
from orderbot.checkout import sign_fields
from orderbot.db import get_db
from orderbot.main import app, get_transport
from orderbot.messages import COLD_GREETING, MAIN_MENU, NO_COMMAND_TEXT, UNHANDLED_COMMAND_TEXT
from orderbot.models import Order, User
from orderbot.transport import LogTransport


@pytest.fixture
def sent():
    return LogTransport()


@pytest.fixture
def client(session_factory, sent):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_transport] = lambda: sent
    yield TestClient(app)
    app.dependency_overrides.clear()


def _cloud_payload(sender, text):
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "changes": [
                    {
                        "value": {
                            "messaging_product": "whatsapp",
                            "messages": [
                                {"from": sender, "type": "text", "text": {"body": text}},
                                {"from": sender, "type": "image", "image": {"id": "1"}},
                            ],
                        }
                    }
                ]
            }
        ],
    }


def test_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_verify_webhook(client, monkeypatch):
    monkeypatch.setattr(main_mod.settings, "verify_token", "tok")
    ok = client.get("/webhook/whatsapp", params={"hub.mode": "subscribe", "hub.verify_token": "tok", "hub.challenge": "42"})
    assert ok.status_code == 200
    assert ok.text == "42"

    bad = client.get("/webhook/whatsapp", params={"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "42"})
    assert bad.status_code == 403


def test_cloud_webhook_first_and_second_contact(client, sent, session_factory):
    r = client.post("/webhook/whatsapp", json=_cloud_payload("27825550101", "hi"))
    assert r.status_code == 200
    assert r.json() == {"ok": True, "handled": 1}
    assert sent.sent[0][0] == "27825550101"
    assert sent.sent[0][1].startswith(COLD_GREETING)

    client.post("/webhook/whatsapp", json=_cloud_payload("27825550101", "still nothing"))
    assert sent.sent[1][1].startswith(NO_COMMAND_TEXT)

    client.post("/webhook/whatsapp", json=_cloud_payload("27825550101", "Menu?"))
    assert sent.sent[2][1] == MAIN_MENU

    db = session_factory()
    assert db.query(User).count() == 1
    db.close()


def test_cloud_webhook_ignores_status_updates(client, sent):
    r = client.post("/webhook/whatsapp", json={"entry": [{"changes": [{"value": {"statuses": [{}]}}]}]})
    assert r.json() == {"ok": True, "handled": 0}
    assert sent.sent == []


def test_twilio_webhook_saves_order(client, sent, session_factory):
    r = client.post("/webhook/twilio", data={"From": "whatsapp:+27825550101", "Body": "update order 9:12"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/xml")
    assert "successfully updated current order" in sent.sent[0][1]

    db = session_factory()
    order = db.query(Order).one()
    assert order.items_json == '[{"item": 9, "amount": "12"}]'
    db.close()


def test_twilio_webhook_needs_sender(client):
    assert client.post("/webhook/twilio", data={"Body": "menu?"}).status_code == 400


def test_unexpected_failure_sends_apology(client, sent, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("bug")

    monkeypatch.setattr(main_mod, "handle_message", boom)
    client.post("/webhook/whatsapp", json=_cloud_payload("27825550101", "menu?"))
    assert sent.sent == [("27825550101", UNHANDLED_COMMAND_TEXT)]


MERCHANT_ID = "10000100"
PASSPHRASE = "jt7NOE43FZPn"


@pytest.fixture
def merchant(monkeypatch):
    monkeypatch.setattr(main_mod.settings, "merchant_id", MERCHANT_ID)
    monkeypatch.setattr(main_mod.settings, "payment_passphrase", PASSPHRASE)


def _notification(ref, amount, status="COMPLETE", merchant_id=MERCHANT_ID, passphrase=PASSPHRASE):
    fields = [
        ("m_payment_id", ref),
        ("pf_payment_id", "1089250"),
        ("payment_status", status),
        ("item_name", f"Flying Rasta order #{ref}"),
        ("amount_gross", amount),
        ("merchant_id", merchant_id),
    ]
    return dict(fields + [("signature", sign_fields(fields, passphrase))])


def _place_order(client, session_factory, body="update order 1:2"):
    client.post("/webhook/twilio", data={"From": "whatsapp:+27825550101", "Body": body})
    db = session_factory()
    ref = db.query(Order).one().order_ref
    db.close()
    return ref


def _order_status(session_factory):
    db = session_factory()
    status = db.query(Order).one().status
    db.close()
    return status


def test_checkout_notify_marks_order_paid(client, session_factory, merchant):
    ref = _place_order(client, session_factory)

    # 2 gram of Durban poison at R90
    r = client.post("/checkout/notify", data=_notification(ref, "180.00"))
    assert r.status_code == 200
    assert _order_status(session_factory) == "paid"

    assert client.post("/checkout/notify", data=_notification("nope", "180.00")).status_code == 404


def test_checkout_notify_ignores_unfinished_payments(client, session_factory, merchant):
    ref = _place_order(client, session_factory)
    r = client.post("/checkout/notify", data=_notification(ref, "180.00", status="CANCELLED"))
    assert r.status_code == 200
    assert _order_status(session_factory) == "pending"


def test_checkout_notify_rejects_unsigned_post(client, session_factory, merchant):
    ref = _place_order(client, session_factory)
    r = client.post("/checkout/notify", data={"m_payment_id": ref, "payment_status": "COMPLETE"})
    assert r.status_code == 400
    assert _order_status(session_factory) == "pending"


def test_checkout_notify_rejects_forged_signature(client, session_factory, merchant):
    ref = _place_order(client, session_factory)
    forged = _notification(ref, "180.00", passphrase="guessed")
    assert client.post("/checkout/notify", data=forged).status_code == 400

    tampered = _notification(ref, "1.00")
    tampered["amount_gross"] = "180.00"
    assert client.post("/checkout/notify", data=tampered).status_code == 400
    assert _order_status(session_factory) == "pending"


def test_checkout_notify_rejects_other_merchant(client, session_factory, merchant):
    ref = _place_order(client, session_factory)
    r = client.post("/checkout/notify", data=_notification(ref, "180.00", merchant_id="999"))
    assert r.status_code == 400
    assert _order_status(session_factory) == "pending"


def test_checkout_notify_rejects_wrong_amount(client, session_factory, merchant):
    ref = _place_order(client, session_factory)
    r = client.post("/checkout/notify", data=_notification(ref, "1.00"))
    assert r.status_code == 400
    assert r.json()["detail"] == "Amount mismatch"
    assert _order_status(session_factory) == "pending"


def test_checkout_notify_needs_merchant_configured(client, session_factory):
    ref = _place_order(client, session_factory)
    r = client.post("/checkout/notify", data=_notification(ref, "180.00"))
    assert r.status_code == 400
    assert _order_status(session_factory) == "pending"


def test_bare_update_order_saves_nothing(client, sent, session_factory):
    client.post("/webhook/twilio", data={"From": "whatsapp:+27825550101", "Body": "update order"})
    assert "error parsing update order command: no items given" in sent.sent[0][1]
    assert "successfully updated current order" not in sent.sent[0][1]

    db = session_factory()
    assert db.query(Order).count() == 0
    db.close()


def test_webhooks_answer_off_the_event_loop(client, sent, monkeypatch):
    on_loop = []
    answer = main_mod.answer_message

    def recording(*args):
        try:
            asyncio.get_running_loop()
            on_loop.append(True)
        except RuntimeError:
            on_loop.append(False)
        return answer(*args)

    monkeypatch.setattr(main_mod, "answer_message", recording)
    client.post("/webhook/whatsapp", json=_cloud_payload("27825550101", "menu?"))
    client.post("/webhook/twilio", data={"From": "whatsapp:+27825550101", "Body": "menu?"})

    assert on_loop == [False, False]
    assert len(sent.sent) == 2
    assert sent.sent[1][1] == MAIN_MENU
