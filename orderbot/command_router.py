# orderbot/command_router.py
from __future__ import annotations

import logging
import re
from typing import List, Optional

from .checkout import CheckoutInfo, begin_checkout
from .messages import MAIN_MENU, PRICE_LIST_PREAMBLE
from .ordering.commands import Command, FieldUpdateCommand, OrderUpdateCommand, QuestionCommand
from .ordering.conversation import ConversationContext
from .ordering.menu import render_price_list
from .store import OrderingStore, StoreError

logger = logging.getLogger(__name__)

# ----------------------------
# Command patterns (compiled once, read-only)
# ----------------------------
_QUESTION_RE = re.compile(r"(menu\?|fr\.prlist\?|userinfo\?|currentorder\?|checkoutnow\?)", re.IGNORECASE)

# values keep the sender's casing: "update nickname: Bob" -> "Bob"
_UPDATE_FIELD_RE = re.compile(r"(update email|update nickname|update social|update consent):\s*(\S*)", re.IGNORECASE)

_UPDATE_ORDER_RE = re.compile(r"(update order):?\s*(.*)", re.IGNORECASE)


def _price_list_text(store: OrderingStore) -> str:
    try:
        prices = render_price_list(store.menu())
    except StoreError as e:
        prices = str(e)
    return PRICE_LIST_PREAMBLE + "\n\n" + prices


def question_command(
    keyword: str,
    convo: ConversationContext,
    store: OrderingStore,
    checkout_urls: CheckoutInfo,
    auto_increment: bool,
) -> QuestionCommand:
    """Resolve a `keyword?` query into its reply text right away."""
    keyword = (keyword or "").lower()
    user = convo.user

    if keyword == "currentorder?":
        return QuestionCommand(name="currentorder", text=store.render_current_order(user, auto_increment))
    if keyword == "fr.prlist?":
        return QuestionCommand(name="fr.prlist", text=_price_list_text(store))
    if keyword == "userinfo?":
        return QuestionCommand(name="userinfo", text=store.render_profile(user))
    if keyword == "checkoutnow?":
        return QuestionCommand(
            name="checkoutnow",
            text=begin_checkout(store, user, checkout_urls, auto_increment),
        )
    return QuestionCommand(name="menu", text=MAIN_MENU)


def recognize(
    message_body: str,
    convo: ConversationContext,
    store: OrderingStore,
    checkout_urls: Optional[CheckoutInfo] = None,
    auto_increment: bool = True,
) -> List[Command]:
    """
    Pull every command out of a message, in this order:
      1) `keyword?` questions
      2) `update <field>: <value>`
      3) `update order[:] <items>`
    An empty list means nothing was understood.
    """
    body = message_body or ""
    checkout_urls = checkout_urls or CheckoutInfo()
    commands: List[Command] = []

    for m in _QUESTION_RE.finditer(body):
        commands.append(question_command(m.group(1), convo, store, checkout_urls, auto_increment))

    for m in _UPDATE_FIELD_RE.finditer(body):
        commands.append(FieldUpdateCommand(name=m.group(1).lower(), text=m.group(2)))

    for m in _UPDATE_ORDER_RE.finditer(body):
        commands.append(OrderUpdateCommand(name=m.group(1).lower(), text=m.group(2).lower()))

    logger.debug("Recognised %d command(s): %s", len(commands), [c.name for c in commands])
    return commands
