# orderbot/config.py
from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env locally (safe in prod too)
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no", ""}


# -------------------
# Config (env-driven)
# -------------------
class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./orderbot.db")
    catalogue_id: str = os.getenv("CATALOGUE_ID", "flying-rasta").strip().lower()
    order_auto_increment: bool = _flag("ORDER_AUTO_INCREMENT", "1")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()

    # "cloud" | "twilio" | "log"
    chat_transport: str = os.getenv("CHAT_TRANSPORT", "log").strip().lower()

    # WhatsApp Cloud API
    whatsapp_token: str = os.getenv("WHATSAPP_TOKEN", "").strip()
    phone_number_id: str = os.getenv("PHONE_NUMBER_ID", "").strip()
    graph_version: str = os.getenv("GRAPH_VERSION", "v22.0").strip()
    verify_token: str = os.getenv("VERIFY_TOKEN", "").strip()

    # Twilio WhatsApp sender
    twilio_account_sid: str = os.getenv("TWILIO_ACCOUNT_SID", "").strip()
    twilio_auth_token: str = os.getenv("TWILIO_AUTH_TOKEN", "").strip()
    twilio_whatsapp_from: str = os.getenv("TWILIO_WHATSAPP_FROM", "").strip()

    # Hosted checkout
    payment_url: str = os.getenv("PAYMENT_URL", "https://sandbox.payfast.co.za/eng/process").strip()
    merchant_id: str = os.getenv("MERCHANT_ID", "").strip()
    merchant_key: str = os.getenv("MERCHANT_KEY", "").strip()
    payment_passphrase: str = os.getenv("PAYMENT_PASSPHRASE", "").strip()
    checkout_return_url: str = os.getenv("CHECKOUT_RETURN_URL", "").strip()
    checkout_cancel_url: str = os.getenv("CHECKOUT_CANCEL_URL", "").strip()
    checkout_notify_url: str = os.getenv("CHECKOUT_NOTIFY_URL", "").strip()
    item_name_prefix: str = os.getenv("ITEM_NAME_PREFIX", "Flying Rasta order").strip()


settings = Settings()
