"""
Hosted-checkout payment links.

The link carries the cart as PayFast-style form fields plus an MD5
signature over the encoded fields (and the passphrase, when one is set).
"""
from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import List, Tuple
from urllib.parse import quote_plus, urlencode, urlsplit

from .config import Settings
from .models import User
from .store import OrderingStore, StoreError

logger = logging.getLogger(__name__)


@dataclass
class CheckoutInfo:
    return_url: str = ""
    cancel_url: str = ""
    notify_url: str = ""
    item_name_prefix: str = ""
    payment_url: str = ""
    merchant_id: str = ""
    merchant_key: str = ""
    passphrase: str = ""

    @classmethod
    def from_settings(cls, s: Settings) -> "CheckoutInfo":
        return cls(
            return_url=s.checkout_return_url,
            cancel_url=s.checkout_cancel_url,
            notify_url=s.checkout_notify_url,
            item_name_prefix=s.item_name_prefix,
            payment_url=s.payment_url,
            merchant_id=s.merchant_id,
            merchant_key=s.merchant_key,
            passphrase=s.payment_passphrase,
        )


@dataclass
class CheckoutCart:
    item_name: str
    cart_total: float
    order_id: str
    cust_first_name: str = ""
    cust_last_name: str = ""
    cust_email: str = ""


def _clean_url(raw: str) -> str:
    raw = (raw or "").strip()
    if not raw:
        return ""
    return urlsplit(raw).geturl()


def sign_fields(fields: List[Tuple[str, str]], passphrase: str) -> str:
    payload = "&".join(f"{k}={quote_plus(v)}" for k, v in fields)
    if passphrase:
        payload += f"&passphrase={quote_plus(passphrase)}"
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


def build_payment_link(cart: CheckoutCart, urls: CheckoutInfo) -> str:
    candidates = [
        ("merchant_id", urls.merchant_id),
        ("merchant_key", urls.merchant_key),
        ("return_url", _clean_url(urls.return_url)),
        ("cancel_url", _clean_url(urls.cancel_url)),
        ("notify_url", _clean_url(urls.notify_url)),
        ("name_first", cart.cust_first_name),
        ("name_last", cart.cust_last_name),
        ("email_address", cart.cust_email),
        ("m_payment_id", cart.order_id),
        ("amount", f"{cart.cart_total:.2f}"),
        ("item_name", cart.item_name),
    ]
    # blank fields are left out of both the link and the signature
    fields = [(k, str(v).strip()) for k, v in candidates if v and str(v).strip()]
    fields.append(("signature", sign_fields(fields, urls.passphrase)))
    return f"{urls.payment_url}?{urlencode(fields)}"


def verify_notification(fields: List[Tuple[str, str]], urls: CheckoutInfo) -> bool:
    """
    Check a payment notification: the posted signature must match the other
    fields (in posted order) plus the passphrase, and it must be for our merchant.
    """
    posted = dict(fields)
    signature = posted.get("signature", "")
    if not (signature and urls.merchant_id) or posted.get("merchant_id", "") != urls.merchant_id:
        return False
    unsigned = [(k, v) for k, v in fields if k != "signature"]
    return hmac.compare_digest(sign_fields(unsigned, urls.passphrase), signature)


def build_item_name(order_ref: str, prefix: str) -> str:
    prefix = (prefix or "").strip()
    return f"{prefix} #{order_ref}" if prefix else f"Order #{order_ref}"


def begin_checkout(store: OrderingStore, user: User, checkout_urls: CheckoutInfo, auto_increment: bool) -> str:
    """Tally the pending order and return its summary followed by a payment link."""
    try:
        cart_total, cart_summary = store.tally(user, auto_increment)
    except StoreError as e:
        return str(e)

    order_ref = store.order_ref(store.current_order(user), auto_increment)
    cart = CheckoutCart(
        item_name=build_item_name(order_ref, checkout_urls.item_name_prefix),
        cart_total=cart_total,
        order_id=order_ref,
        cust_first_name=user.nickname or "",
        cust_last_name=user.cell_number,
        cust_email=user.email or "",
    )
    logger.info("Checkout link for order %s (%.2f)", order_ref, cart_total)
    return cart_summary + "\n\n" + build_payment_link(cart, checkout_urls)
