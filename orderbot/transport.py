"""
Chat transports: how a composed reply reaches the customer.

Exactly one provider is active, picked by CHAT_TRANSPORT:
- "cloud":  WhatsApp Cloud API (graph.facebook.com)
- "twilio": Twilio's WhatsApp sender
- "log":    logs the reply instead of sending it (mock mode)
"""
from __future__ import annotations

import logging
from typing import List, Protocol, Tuple

import requests
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from .config import Settings

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    pass


class ChatTransport(Protocol):
    def send_message(self, destination: str, text: str) -> None:
        ...


def normalize_phone_number(phone: str) -> str:
    """
    Normalize to E.164 digits with a leading "+".

    Examples:
        "whatsapp:+27 82 555 0101" -> "+27825550101"
        "27825550101"              -> "+27825550101"
    """
    digits = "".join(c for c in (phone or "") if c.isdigit())
    return "+" + digits


class CloudApiTransport:
    def __init__(self, token: str, phone_number_id: str, graph_version: str = "v22.0", timeout: float = 15.0) -> None:
        self.token = token
        self.phone_number_id = phone_number_id
        self.graph_version = graph_version
        self.timeout = timeout

    def _url(self) -> str:
        return f"https://graph.facebook.com/{self.graph_version}/{self.phone_number_id}/messages"

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"}

    def send_message(self, destination: str, text: str) -> None:
        # Cloud API wants bare digits, no "+"
        to = normalize_phone_number(destination).lstrip("+")
        data = {"messaging_product": "whatsapp", "to": to, "type": "text", "text": {"body": text}}
        try:
            r = requests.post(self._url(), headers=self._headers(), json=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"ReturnToUser failed with: {e}") from e
        if r.status_code >= 400:
            raise TransportError(f"ReturnToUser failed with: {r.status_code} {r.text}")
        logger.info("Sent %d chars to %s via Cloud API", len(text), to)


class TwilioTransport:
    def __init__(self, account_sid: str, auth_token: str, from_number: str) -> None:
        self.client = Client(account_sid, auth_token)
        self.from_number = from_number

    def send_message(self, destination: str, text: str) -> None:
        to = "whatsapp:" + normalize_phone_number(destination)
        from_ = "whatsapp:" + normalize_phone_number(self.from_number)
        try:
            message = self.client.messages.create(body=text, from_=from_, to=to)
        except TwilioException as e:
            raise TransportError(f"ReturnToUser failed with: {e}") from e
        logger.info("Sent message to %s via Twilio (SID: %s)", to, message.sid)


class LogTransport:
    """Mock mode: log each reply and keep it in `sent`."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str]] = []

    def send_message(self, destination: str, text: str) -> None:
        logger.info("MOCK reply to %s: %s", destination, text)
        self.sent.append((destination, text))


def build_transport(s: Settings) -> ChatTransport:
    kind = (s.chat_transport or "log").strip().lower()
    if kind == "cloud":
        if not (s.whatsapp_token and s.phone_number_id):
            raise ValueError("CHAT_TRANSPORT=cloud needs WHATSAPP_TOKEN and PHONE_NUMBER_ID")
        return CloudApiTransport(s.whatsapp_token, s.phone_number_id, s.graph_version)
    if kind == "twilio":
        if not (s.twilio_account_sid and s.twilio_auth_token and s.twilio_whatsapp_from):
            raise ValueError(
                "CHAT_TRANSPORT=twilio needs TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_WHATSAPP_FROM"
            )
        return TwilioTransport(s.twilio_account_sid, s.twilio_auth_token, s.twilio_whatsapp_from)
    if kind == "log":
        return LogTransport()
    raise ValueError(f"unknown CHAT_TRANSPORT {kind!r}")
