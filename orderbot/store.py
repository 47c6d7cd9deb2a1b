"""
User/order store backed by SQLAlchemy.

The command layer only talks to OrderingStore; every failure it can report
is a StoreError so that commands can turn it into reply text.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import Order, User
from .ordering.cart import build_summary, dump_items, load_items, merge_items, validate_line
from .ordering.menu_store import load_menu_by_slug
from .ordering.nlp import MenuIndication

logger = logging.getLogger(__name__)

USER_FIELDS = ("email", "nickname", "social", "consent")

NO_PENDING_ORDER = "You have no pending order."


class StoreError(RuntimeError):
    pass


class UserStoreError(StoreError):
    pass


class OrderStoreError(StoreError):
    pass


class OrderingStore:
    def __init__(
        self,
        db: Session,
        catalogue_id: str,
        menu_loader: Callable[[str], Optional[Dict[str, Any]]] = load_menu_by_slug,
    ) -> None:
        self.db = db
        self.catalogue_id = catalogue_id
        self._menu_loader = menu_loader

    # -------------------
    # Catalogue
    # -------------------
    def menu(self, catalogue_id: Optional[str] = None) -> Dict[str, Any]:
        slug = catalogue_id or self.catalogue_id
        menu = self._menu_loader(slug)
        if not menu:
            raise OrderStoreError(f"catalogue {slug!r} not found")
        return menu

    # -------------------
    # Users
    # -------------------
    def get_or_create_user(self, cell_number: str) -> Tuple[User, bool]:
        """Returns (user, existed)."""
        u = self.db.query(User).filter(User.cell_number == cell_number).first()
        if u:
            return u, True

        u = User(cell_number=cell_number)
        self.db.add(u)
        self.db.commit()
        self.db.refresh(u)
        logger.info("Created user for %s", cell_number)
        return u, False

    def update_field(self, user: User, field: str, value: str) -> None:
        field = (field or "").strip().lower()
        if field not in USER_FIELDS:
            raise UserStoreError(f"unknown user field {field!r}")

        setattr(user, field, value)
        user.updated_at = datetime.utcnow()
        try:
            self.db.add(user)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to update %s for user %s: %s", field, user.id, e)
            raise UserStoreError(str(e)) from e

    def render_profile(self, user: User) -> str:
        def show(v: Optional[str]) -> str:
            return v if v else "not set"

        return (
            "User info:\n"
            f"Cell number: {user.cell_number}\n"
            f"Nickname: {show(user.nickname)}\n"
            f"Email: {show(user.email)}\n"
            f"Social: {show(user.social)}\n"
            f"Consent: {show(user.consent)}"
        )

    # -------------------
    # Orders
    # -------------------
    def current_order(self, user: User) -> Optional[Order]:
        return (
            self.db.query(Order)
            .filter(Order.user_id == user.id, Order.status == "pending")
            .order_by(Order.id.desc())
            .first()
        )

    def upsert_order(
        self,
        user: User,
        catalogue_id: str,
        items: List[MenuIndication],
        auto_increment: bool,
    ) -> Optional[Order]:
        if not items:
            return self.current_order(user)

        menu = self.menu(catalogue_id)
        for line in items:
            try:
                validate_line(menu, line)
            except ValueError as e:
                raise OrderStoreError(str(e)) from e

        order = self.current_order(user)
        try:
            if order is None or order.catalogue_id != catalogue_id:
                if order is not None:
                    # switching catalogues starts a fresh order
                    order.status = "abandoned"
                    self.db.add(order)
                order = Order(
                    user_id=user.id,
                    catalogue_id=catalogue_id,
                    status="pending",
                    items_json="[]",
                )
                if not auto_increment:
                    order.order_ref = uuid4().hex
                self.db.add(order)
                self.db.flush()
                if auto_increment:
                    order.order_ref = str(order.id)

            order.items_json = dump_items(merge_items(load_items(order.items_json), items))
            order.updated_at = datetime.utcnow()
            self.db.add(order)
            self.db.commit()
            self.db.refresh(order)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to save order for user %s: %s", user.id, e)
            raise OrderStoreError(str(e)) from e

        logger.info("Order %s for %s now has %s", order.order_ref, user.cell_number, order.items_json)
        return order

    def order_ref(self, order: Order, auto_increment: bool) -> str:
        if auto_increment:
            return str(order.id)
        return order.order_ref or str(order.id)

    def render_current_order(self, user: User, auto_increment: bool) -> str:
        order = self.current_order(user)
        items = load_items(order.items_json) if order else []
        if not items:
            return NO_PENDING_ORDER
        try:
            menu = self.menu(order.catalogue_id)
        except OrderStoreError as e:
            return str(e)
        summary, _total = build_summary(
            menu, items, title=f"Current order #{self.order_ref(order, auto_increment)}:"
        )
        return summary

    def tally(self, user: User, auto_increment: bool) -> Tuple[float, str]:
        order = self.current_order(user)
        items = load_items(order.items_json) if order else []
        if not items:
            raise OrderStoreError(NO_PENDING_ORDER)
        menu = self.menu(order.catalogue_id)
        summary, total = build_summary(
            menu, items, title=f"Checkout for order #{self.order_ref(order, auto_increment)}:"
        )
        return total, summary

    def find_order(self, order_ref: str) -> Optional[Order]:
        return self.db.query(Order).filter(Order.order_ref == order_ref).first()

    def order_total(self, order: Order) -> float:
        items = load_items(order.items_json)
        _summary, total = build_summary(self.menu(order.catalogue_id), items)
        return total

    def mark_order_paid(self, order_ref: str) -> Optional[Order]:
        order = self.find_order(order_ref)
        if order is None:
            return None
        order.status = "paid"
        order.updated_at = datetime.utcnow()
        try:
            self.db.add(order)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise OrderStoreError(str(e)) from e
        logger.info("Order %s marked paid", order_ref)
        return order
