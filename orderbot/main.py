# orderbot/main.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy.orm import Session

from .checkout import CheckoutInfo, verify_notification
from .config import settings
from .db import Base, engine, get_db
from .logging_config import setup_logging
from .messages import UNHANDLED_COMMAND_TEXT
from .ordering.brain import handle_message
from .ordering.conversation import ConversationContext
from .store import OrderingStore, StoreError
from .transport import ChatTransport, TransportError, build_transport, normalize_phone_number

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Flying Rasta Ordering Bot",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

Base.metadata.create_all(bind=engine)

_transport: Optional[ChatTransport] = None


# -------------------
# Dependencies
# -------------------
def get_transport() -> ChatTransport:
    global _transport
    if _transport is None:
        _transport = build_transport(settings)
        logger.info("Chat transport: %s", type(_transport).__name__)
    return _transport


def get_store(db: Session = Depends(get_db)) -> OrderingStore:
    return OrderingStore(db, settings.catalogue_id)


def get_checkout_info() -> CheckoutInfo:
    return CheckoutInfo.from_settings(settings)


# -------------------
# Helpers
# -------------------
def build_conversation(store: OrderingStore, cell_number: str, body: str) -> ConversationContext:
    user, existed = store.get_or_create_user(cell_number)
    return ConversationContext(
        message_body=body,
        user=user,
        current_order=store.current_order(user),
        user_existed=existed,
    )


def answer_message(
    store: OrderingStore,
    transport: ChatTransport,
    checkout_urls: CheckoutInfo,
    cell_number: str,
    body: str,
) -> str:
    """Run one inbound message through the pipeline; never lets it kill the webhook."""
    cell_number = normalize_phone_number(cell_number).lstrip("+")
    logger.info("[%s] %r", cell_number, body)
    try:
        convo = build_conversation(store, cell_number, body)
        return handle_message(convo, store, transport, checkout_urls, settings.order_auto_increment)
    except Exception:
        logger.exception("Unhandled failure answering %s", cell_number)
        store.db.rollback()
        try:
            transport.send_message(cell_number, UNHANDLED_COMMAND_TEXT)
        except TransportError as e:
            logger.error("Reply to %s failed: %s", cell_number, e)
        return UNHANDLED_COMMAND_TEXT


def _iter_cloud_text_messages(payload: Dict[str, Any]) -> Iterator[Tuple[str, str]]:
    """Yield (sender, text) for every text message in a Cloud API webhook payload."""
    for entry in payload.get("entry") or []:
        for change in (entry or {}).get("changes") or []:
            value = (change or {}).get("value") or {}
            for msg in value.get("messages") or []:
                if not isinstance(msg, dict) or msg.get("type") != "text":
                    continue
                sender = str(msg.get("from") or "").strip()
                text = str((msg.get("text") or {}).get("body") or "")
                if sender:
                    yield sender, text


# -------------------
# Health
# -------------------
@app.get("/")
def root():
    return {"ok": True, "service": "orderbot", "catalogue": settings.catalogue_id}


# -------------------
# WhatsApp Cloud API
# -------------------
@app.get("/webhook/whatsapp")
def verify_webhook(request: Request):
    mode = request.query_params.get("hub.mode")
    token = request.query_params.get("hub.verify_token")
    challenge = request.query_params.get("hub.challenge") or ""
    if mode == "subscribe" and settings.verify_token and token == settings.verify_token:
        return PlainTextResponse(challenge)
    raise HTTPException(status_code=403, detail="Verification failed")


@app.post("/webhook/whatsapp")
async def whatsapp_webhook(
    request: Request,
    store: OrderingStore = Depends(get_store),
    transport: ChatTransport = Depends(get_transport),
    checkout_urls: CheckoutInfo = Depends(get_checkout_info),
):
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    replies: List[str] = []
    if isinstance(payload, dict):
        for sender, text in _iter_cloud_text_messages(payload):
            replies.append(await run_in_threadpool(answer_message, store, transport, checkout_urls, sender, text))

    return {"ok": True, "handled": len(replies)}


# -------------------
# Twilio WhatsApp
# -------------------
@app.post("/webhook/twilio")
async def twilio_webhook(
    request: Request,
    store: OrderingStore = Depends(get_store),
    transport: ChatTransport = Depends(get_transport),
    checkout_urls: CheckoutInfo = Depends(get_checkout_info),
):
    form = await request.form()
    sender = str(form.get("From") or "").strip()
    body = str(form.get("Body") or "")
    if not sender:
        raise HTTPException(status_code=400, detail="Missing From")

    await run_in_threadpool(answer_message, store, transport, checkout_urls, sender, body)

    # reply already went out through the REST API
    return Response(content="<Response></Response>", media_type="application/xml")


# -------------------
# Payment notifications
# -------------------
@app.post("/checkout/notify")
async def checkout_notify(
    request: Request,
    store: OrderingStore = Depends(get_store),
    checkout_urls: CheckoutInfo = Depends(get_checkout_info),
):
    form = await request.form()
    fields = [(k, str(v)) for k, v in form.multi_items()]
    if not verify_notification(fields, checkout_urls):
        logger.warning("Rejected payment notification with bad signature or merchant")
        raise HTTPException(status_code=400, detail="Invalid notification")

    order_ref = str(form.get("m_payment_id") or "").strip()
    status = str(form.get("payment_status") or "").strip().upper()
    if not order_ref:
        raise HTTPException(status_code=400, detail="Missing m_payment_id")

    if status != "COMPLETE":
        logger.info("Payment for order %s is %s", order_ref, status or "unknown")
        return PlainTextResponse("OK")

    order = store.find_order(order_ref)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    try:
        expected = store.order_total(order)
        paid = float(form.get("amount_gross") or "nan")
    except (StoreError, ValueError) as e:
        logger.error("Could not check amount for order %s: %s", order_ref, e)
        raise HTTPException(status_code=400, detail="Invalid amount")
    if not abs(paid - expected) < 0.01:
        logger.warning("Order %s paid %s, expected %.2f", order_ref, form.get("amount_gross"), expected)
        raise HTTPException(status_code=400, detail="Amount mismatch")

    try:
        store.mark_order_paid(order_ref)
    except StoreError as e:
        logger.error("Could not mark order %s paid: %s", order_ref, e)
        raise HTTPException(status_code=500, detail="Could not update order")
    return PlainTextResponse("OK")
