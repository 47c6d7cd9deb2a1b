from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Resolve menus directory:
# 1) If MENUS_DIR env var is set, use it
# 2) Otherwise default to the catalogues shipped with the package
_THIS_FILE = Path(__file__).resolve()
PACKAGE_DIR = _THIS_FILE.parents[1]
DEFAULT_MENUS_DIR = PACKAGE_DIR / "data"

MENUS_DIR = Path(os.getenv("MENUS_DIR", str(DEFAULT_MENUS_DIR))).resolve()

_MENU_CACHE: Dict[str, Dict[str, Any]] = {}


def load_menu_by_slug(slug: str, menus_dir: Optional[Path] = None) -> Optional[Dict[str, Any]]:
    slug = (slug or "").strip().lower()
    if not slug:
        return None

    # 1) cache hit
    if slug in _MENU_CACHE:
        return _MENU_CACHE[slug]

    # 2) scan catalogues on disk
    root = menus_dir or MENUS_DIR
    if not root.exists():
        logger.warning("Menus directory %s does not exist", root)
        return None

    for path in root.rglob("menu.json"):
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Skipping unreadable catalogue %s: %s", path, e)
            continue

        mslug = ((data.get("meta") or {}).get("slug") or "").strip().lower()
        if mslug == slug:
            logger.info("Loaded catalogue %s from %s", slug, path)
            _MENU_CACHE[slug] = data
            return data

    logger.warning("No catalogue with slug %r under %s", slug, root)
    return None


def clear_cache() -> None:
    _MENU_CACHE.clear()
