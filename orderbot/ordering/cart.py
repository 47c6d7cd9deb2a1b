# orderbot/ordering/cart.py
from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Tuple

from .menu import currency_symbol, item_by_number, item_price, option_by_number
from .nlp import MenuIndication, is_option_amount, parse_option_amounts


def load_items(items_json: str | None) -> List[MenuIndication]:
    try:
        v = json.loads(items_json or "[]")
    except json.JSONDecodeError:
        return []
    if not isinstance(v, list):
        return []
    out: List[MenuIndication] = []
    for x in v:
        if isinstance(x, dict) and "item" in x:
            out.append(MenuIndication(item_menu_number=int(x["item"]), item_amount=str(x.get("amount", ""))))
    return out


def dump_items(items: List[MenuIndication]) -> str:
    return json.dumps(
        [{"item": i.item_menu_number, "amount": i.item_amount} for i in items],
        ensure_ascii=False,
    )


def _is_zero(amount: str) -> bool:
    try:
        return float(amount) == 0.0
    except ValueError:
        return False


def merge_items(existing: List[MenuIndication], updates: List[MenuIndication]) -> List[MenuIndication]:
    """
    Apply updates to an order's lines: a repeated item number replaces the
    earlier amount, an amount of 0 drops the item.
    """
    merged: Dict[int, MenuIndication] = {i.item_menu_number: i for i in existing}
    for u in updates:
        if _is_zero(u.item_amount):
            merged.pop(u.item_menu_number, None)
        else:
            merged[u.item_menu_number] = u
    return list(merged.values())


def validate_line(menu: Dict[str, Any], line: MenuIndication) -> None:
    """Raise ValueError if the line does not fit the catalogue."""
    item = item_by_number(menu, line.item_menu_number)
    if item is None:
        raise ValueError(f"there is no item {line.item_menu_number} on the price list")

    if _is_zero(line.item_amount):
        return

    if item.get("options"):
        if not is_option_amount(line.item_amount):
            raise ValueError(
                f"item {line.item_menu_number} needs options, e.g. {line.item_menu_number}:1x2"
            )
        for option, _qty in parse_option_amounts(line.item_amount):
            if option_by_number(item, option) is None:
                raise ValueError(f"item {line.item_menu_number} has no option {option}")
        return

    try:
        qty = float(line.item_amount)
    except ValueError:
        raise ValueError(f"amount {line.item_amount!r} for item {line.item_menu_number} is not a number") from None
    if not math.isfinite(qty):
        raise ValueError(f"amount for item {line.item_menu_number} is not a number")
    if qty < 0:
        raise ValueError(f"amount for item {line.item_menu_number} cannot be negative")


def line_total(menu: Dict[str, Any], line: MenuIndication) -> float:
    item = item_by_number(menu, line.item_menu_number)
    if item is None:
        return 0.0
    if item.get("options"):
        total = 0.0
        for option, qty in parse_option_amounts(line.item_amount):
            total += qty * item_price(item, option_by_number(item, option))
        return round(total, 2)
    return round(float(line.item_amount) * item_price(item), 2)


def describe_line(menu: Dict[str, Any], line: MenuIndication) -> str:
    item = item_by_number(menu, line.item_menu_number) or {}
    name = str(item.get("name", "Item"))
    if item.get("options"):
        picks = []
        for option, qty in parse_option_amounts(line.item_amount):
            opt = option_by_number(item, option) or {}
            picks.append(f"{qty}x {opt.get('name', 'Option')}")
        return f"{line.item_menu_number}. {name}: " + ", ".join(picks)
    unit = str(item.get("unit") or "").strip()
    suffix = f" {unit}" if unit else ""
    return f"{line.item_menu_number}. {name}: {line.item_amount}{suffix}"


def build_summary(
    menu: Dict[str, Any],
    items: List[MenuIndication],
    title: str = "Order summary:",
) -> Tuple[str, float]:
    if not items:
        return ("Your basket is empty.", 0.0)

    cur = currency_symbol(menu)
    lines: List[str] = []
    total = 0.0
    for line in items:
        lt = line_total(menu, line)
        total += lt
        lines.append(f"{describe_line(menu, line)} = {cur}{lt:.2f}")

    total = round(total, 2)
    return (title + "\n" + "\n".join(lines) + f"\n\nTotal: {cur}{total:.2f}", total)
