from __future__ import annotations

import re
import unicodedata
from typing import Dict, List, Optional

from zenith.constants import (
    MEAL_SLOTS,
    SHOPPING_DELIMITERS,
    SHOPPING_LIST_FOOTER,
    SHOPPING_LIST_HEADER,
    SHOPPING_MIN_LENGTH,
)


def _sort_key(name: str):
    folded = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in folded if not unicodedata.combining(ch))
    return (base.casefold(), name)


def _meal_fragments(text) -> List[str]:
    if not isinstance(text, str) or not text:
        return []
    items = []
    for raw_item in re.split(SHOPPING_DELIMITERS, text):
        item = raw_item.strip().lower()
        if len(item) < SHOPPING_MIN_LENGTH:
            continue
        items.append(item[0].upper() + item[1:])
    return items


def build_shopping_list(meals, manual_items) -> List[Dict[str, object]]:
    """Consolidate the week's meal plan and the manual extras into one list.

    Meal-derived names are lower-cased and capitalized; manual entries keep
    their casing. The two are counted under their surface form, so "Leite"
    typed by hand and "leite" from a meal only merge when they format the same.
    """
    counts: Dict[str, int] = {}
    for meal in meals or []:
        for slot in MEAL_SLOTS:
            for item in _meal_fragments(meal.get(slot)):
                counts[item] = counts.get(item, 0) + 1

    for raw_item in manual_items or []:
        item = str(raw_item or "").strip()
        if item:
            counts[item] = counts.get(item, 0) + 1

    return [
        {"name": name, "count": count}
        for name, count in sorted(counts.items(), key=lambda pair: _sort_key(pair[0]))
    ]


def find_manual_item(manual_items, name: str) -> Optional[int]:
    target = (name or "").strip()
    for index, raw_item in enumerate(manual_items or []):
        if str(raw_item or "").strip() == target:
            return index
    return None


def format_shopping_list(items) -> str:
    if not items:
        return ""
    lines = [f"• {item['name']} ({item['count']}x)" for item in items]
    return f"{SHOPPING_LIST_HEADER}\n\n" + "\n".join(lines) + f"\n\n{SHOPPING_LIST_FOOTER}"
