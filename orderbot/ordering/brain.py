# orderbot/ordering/brain.py
from __future__ import annotations

import logging
from typing import Any, Optional

from ..checkout import CheckoutInfo
from ..command_router import recognize
from ..messages import (
    COLD_GREETING,
    NO_COMMAND_TEXT,
    REMINDER_GREETING,
    SAY_MENU,
    SMARTY_PANTS_GREETING,
)
from ..transport import ChatTransport, TransportError
from .commands import process_commands
from .conversation import ConversationContext

logger = logging.getLogger(__name__)

# results that count as "nothing happened"
_BLANK_RESULTS = {"", " ", "\n"}


def is_blank_result(result_block: Optional[str]) -> bool:
    return result_block is None or result_block in _BLANK_RESULTS


def compose_reply(convo: ConversationContext, result_block: Optional[str], recognized: bool) -> str:
    """
    Wrap command results in the greeting policy:

      new user, results       -> smarty pants greeting + results + email reminder + menu hint
      new user, nothing       -> cold greeting + email reminder + menu hint
      known user, nothing     -> no-command text + menu hint
      known user, results     -> results as they are

    Marks the user as known afterwards.
    """
    understood = recognized and not is_blank_result(result_block)

    if not convo.user_existed:
        if understood:
            reply = "\n\n".join([SMARTY_PANTS_GREETING, result_block, REMINDER_GREETING, SAY_MENU])
        else:
            reply = "\n\n".join([COLD_GREETING, REMINDER_GREETING, SAY_MENU])
    elif not understood:
        reply = NO_COMMAND_TEXT + "\n\n" + SAY_MENU
    else:
        reply = result_block

    convo.user_existed = True
    return reply


def run_commands(
    convo: ConversationContext,
    store: Any,
    checkout_urls: Optional[CheckoutInfo] = None,
    auto_increment: bool = True,
) -> str:
    """Recognise, execute and compose; no sending."""
    commands = recognize(convo.message_body, convo, store, checkout_urls, auto_increment)
    result_block = ""
    if commands:
        result_block = process_commands(commands, store, convo.user, auto_increment)
    return compose_reply(convo, result_block, bool(commands))


def handle_message(
    convo: ConversationContext,
    store: Any,
    transport: ChatTransport,
    checkout_urls: Optional[CheckoutInfo] = None,
    auto_increment: bool = True,
) -> str:
    """Answer one inbound message through the transport and return the reply text."""
    reply = run_commands(convo, store, checkout_urls, auto_increment)

    try:
        transport.send_message(convo.user.cell_number, reply)
    except TransportError as e:
        logger.error("Reply to %s failed: %s", convo.user.cell_number, e)

    return reply
