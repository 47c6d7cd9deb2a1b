# orderbot/ordering/nlp.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List


class OrderParseError(ValueError):
    """A segment of an order update could not be read as `item:amount`."""

    def __init__(self, segment: str, reason: str = "failed to parse item") -> None:
        self.segment = segment
        super().__init__(f"{reason}: {segment}")


@dataclass(frozen=True)
class MenuIndication:
    item_menu_number: int
    item_amount: str


# ----------------------------
# Regex helpers
# ----------------------------
# Items with options: "10: 1x3, 3x2, 2x1"
_COMPOUND_RE = re.compile(r"\b\d+:\s*(?:\d+x\d+(?:,\s*)?)+", re.IGNORECASE)

_ITEM_NUMBER_RE = re.compile(r"\d+")

# Whitespace around the commas inside an option run
_OPTION_SEP_RE = re.compile(r"\s*,\s*")

_KEYWORD = "update order"


def _strip_keyword(text: str) -> str:
    s = text or ""
    if s[: len(_KEYWORD)].lower() == _KEYWORD:
        s = s[len(_KEYWORD):]
    if s.startswith(":"):
        s = s[1:]
    s = s.strip()
    # people tend to type "update order 9: 12" as well as "9:12"
    return s.replace(" ", "", 1)


def parse_order_item(segment: str) -> MenuIndication:
    """Parse one `N:amount` segment."""
    parts = segment.split(":", 1)
    if len(parts) != 2:
        raise OrderParseError(segment)

    number = parts[0].strip()
    if not _ITEM_NUMBER_RE.fullmatch(number):
        raise OrderParseError(segment, "failed to parse item number")

    amount = parts[1].strip()
    if amount.endswith(","):
        amount = amount[:-1]

    return MenuIndication(item_menu_number=int(number), item_amount=amount)


def parse_order_update(text: str) -> List[MenuIndication]:
    """
    Parse the payload of an `update order` command.

    Accepts simple pairs and option runs, mixed freely:
      "9:12, 10: 1x3, 3x2, 2x1, 6:5"
        -> 10 -> "1x3,3x2,2x1", 9 -> "12", 6 -> "5"

    Option runs come first (in the order found), then the simple pairs
    left to right. The first bad segment aborts the whole parse.
    """
    remaining = _strip_keyword(text)

    runs: List[str] = []
    for match in _COMPOUND_RE.findall(remaining):
        run = match.strip()
        if run.endswith(","):
            run = run[:-1]
        runs.append(run)
        # first occurrence only: identical runs are removed once per match
        remaining = remaining.replace(match, "", 1)

    remaining = remaining.strip(",")

    items: List[MenuIndication] = []
    for run in runs:
        item = parse_order_item(run)
        items.append(
            MenuIndication(
                item_menu_number=item.item_menu_number,
                item_amount=_OPTION_SEP_RE.sub(",", item.item_amount).lower(),
            )
        )

    if remaining:
        for segment in remaining.split(","):
            segment = segment.strip()
            if not segment:
                continue
            items.append(parse_order_item(segment))

    return items


def parse_option_amounts(amount: str) -> List[tuple]:
    """
    Split an option amount like "1x3,3x2" into [(1, 3), (3, 2)].
    Raises ValueError on anything else.
    """
    out = []
    for token in _OPTION_SEP_RE.split((amount or "").strip()):
        if not token:
            continue
        option, sep, qty = token.lower().partition("x")
        if not sep or not option.isdigit() or not qty.isdigit():
            raise ValueError(f"bad option amount: {token}")
        out.append((int(option), int(qty)))
    if not out:
        raise ValueError(f"bad option amount: {amount}")
    return out


def is_option_amount(amount: str) -> bool:
    return "x" in (amount or "").lower()
