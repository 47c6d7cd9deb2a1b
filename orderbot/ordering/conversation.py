# orderbot/ordering/conversation.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ConversationContext:
    """One inbound message and who sent it."""

    message_body: str
    user: Any  # models.User
    current_order: Optional[Any] = None  # models.Order
    user_existed: bool = False
