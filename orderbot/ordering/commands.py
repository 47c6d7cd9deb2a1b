# orderbot/ordering/commands.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, List, Union

from ..store import StoreError
from .nlp import OrderParseError, parse_order_update

logger = logging.getLogger(__name__)


class OutcomeStatus(enum.Enum):
    OK = "ok"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    status: OutcomeStatus
    text: str

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.OK


def _ok(text: str) -> Outcome:
    return Outcome(OutcomeStatus.OK, text)


def _failed(text: str) -> Outcome:
    return Outcome(OutcomeStatus.FAILED, text)


@dataclass
class QuestionCommand:
    """A `keyword?` query; the reply text is worked out when it is recognised."""

    name: str
    text: str

    def execute(self, store: Any, user: Any, auto_increment: bool) -> Outcome:
        return _ok(self.text)


@dataclass
class FieldUpdateCommand:
    name: str  # "update email", "update nickname", ...
    text: str

    @property
    def field(self) -> str:
        name = self.name.strip()
        if name.lower().startswith("update"):
            name = name[len("update"):]
        return name.strip().lower()

    def execute(self, store: Any, user: Any, auto_increment: bool) -> Outcome:
        try:
            store.update_field(user, self.field, self.text)
        except StoreError as e:
            return _failed(f"unhandled error updating user info: {e}")
        return _ok(f"successfully updated user info.{self.field} to {self.text}")


@dataclass
class OrderUpdateCommand:
    name: str
    text: str

    def execute(self, store: Any, user: Any, auto_increment: bool) -> Outcome:
        try:
            updates = parse_order_update(self.text)
        except OrderParseError as e:
            return _failed(f"error parsing update order command: {e}")
        if not updates:
            return _failed("error parsing update order command: no items given")

        try:
            store.upsert_order(user, store.catalogue_id, updates, auto_increment)
        except StoreError as e:
            return _failed(f"unhandled error updating order: {e}")
        return _ok("successfully updated current order")


Command = Union[QuestionCommand, FieldUpdateCommand, OrderUpdateCommand]


def execute_all(commands: List[Command], store: Any, user: Any, auto_increment: bool) -> List[Outcome]:
    """Run every command in order; a failure never stops the ones after it."""
    outcomes: List[Outcome] = []
    for command in commands:
        outcome = command.execute(store, user, auto_increment)
        if not outcome.ok:
            logger.info("%s failed: %s", command.name, outcome.text)
        outcomes.append(outcome)
    return outcomes


def process_commands(commands: List[Command], store: Any, user: Any, auto_increment: bool) -> str:
    return "\n".join(o.text for o in execute_all(commands, store, user, auto_increment))
