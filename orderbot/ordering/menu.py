# orderbot/ordering/menu.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

_CURRENCY_SYMBOLS = {"ZAR": "R", "GBP": "£", "USD": "$", "EUR": "€"}


def currency_symbol(menu: Dict[str, Any]) -> str:
    cur = ((menu.get("meta") or {}).get("currency") or "ZAR").upper()
    return _CURRENCY_SYMBOLS.get(cur, "")


def menu_items(menu: Dict[str, Any]) -> List[Dict[str, Any]]:
    items = menu.get("items") or []
    return [it for it in items if isinstance(it, dict)] if isinstance(items, list) else []


def item_by_number(menu: Dict[str, Any], number: int) -> Optional[Dict[str, Any]]:
    """Menu numbers are 1-based positions in the catalogue."""
    items = menu_items(menu)
    if 1 <= number <= len(items):
        return items[number - 1]
    return None


def item_options(item: Dict[str, Any]) -> List[Dict[str, Any]]:
    opts = item.get("options") or []
    return [o for o in opts if isinstance(o, dict)] if isinstance(opts, list) else []


def option_by_number(item: Dict[str, Any], number: int) -> Optional[Dict[str, Any]]:
    opts = item_options(item)
    if 1 <= number <= len(opts):
        return opts[number - 1]
    return None


def item_price(item: Dict[str, Any], option: Optional[Dict[str, Any]] = None) -> float:
    if option is not None and option.get("price") is not None:
        return float(option.get("price") or 0.0)
    return float(item.get("price", 0.0) or 0.0)


def _unit_suffix(item: Dict[str, Any]) -> str:
    unit = str(item.get("unit") or "").strip()
    return f" per {unit}" if unit else ""


def render_price_list(menu: Dict[str, Any]) -> str:
    """
    Numbered price list, e.g.

      9. Peanut butter breath - R120.00 per gram
      10. Cannisters
         1. Blue dream - R350.00
    """
    cur = currency_symbol(menu)
    name = str((menu.get("meta") or {}).get("name") or "Price list")

    lines: List[str] = [f"{name} price list:", ""]
    for n, item in enumerate(menu_items(menu), start=1):
        label = str(item.get("name", "Item"))
        opts = item_options(item)
        if not opts:
            lines.append(f"{n}. {label} - {cur}{item_price(item):.2f}{_unit_suffix(item)}")
            continue
        lines.append(f"{n}. {label}")
        for m, opt in enumerate(opts, start=1):
            lines.append(
                f"   {m}. {opt.get('name', 'Option')} - {cur}{item_price(item, opt):.2f}{_unit_suffix(item)}"
            )
    return "\n".join(lines)
