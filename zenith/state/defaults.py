"""Canonical application document and load-time reconciliation.

Persisted documents may predate fields added later. Instead of versioned
migrations, every document read from a profile store or from local storage is
merged over :func:`default_state`, so readers can rely on every field being
present.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, Dict

from zenith.constants import (
    DAYS_IN_WEEK,
    DEFAULT_MUSIC_INSTRUMENTS,
    DEFAULT_NOTE_CATEGORIES,
    DEFAULT_USER_NAME,
    DEFAULT_WATER_GOAL,
    DEFAULT_WATER_REMINDERS,
    MEAL_FIELDS,
)

COLLECTION_KEYS = [
    "waterHistory",
    "waterReminders",
    "notes",
    "noteCategories",
    "tasks",
    "meals",
    "studySubjects",
    "studySessions",
    "questionLogs",
    "musicSessions",
    "musicInstruments",
    "manualShoppingItems",
]


def empty_meal(day: int) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"id": f"meal-{day}", "day": day}
    for field in MEAL_FIELDS:
        payload[field] = ""
    return payload


_DEFAULT_STATE: Dict[str, Any] = {
    "isLoggedIn": False,
    "user": {
        "name": DEFAULT_USER_NAME,
        "waterGoal": DEFAULT_WATER_GOAL,
        "avatarUrl": None,
    },
    "waterHistory": [],
    "waterReminders": DEFAULT_WATER_REMINDERS,
    "notes": [],
    "noteCategories": DEFAULT_NOTE_CATEGORIES,
    "tasks": [],
    "meals": [empty_meal(day) for day in range(DAYS_IN_WEEK)],
    "studySubjects": [],
    "studySessions": [],
    "questionLogs": [],
    "musicSessions": [],
    "musicInstruments": DEFAULT_MUSIC_INSTRUMENTS,
    "manualShoppingItems": [],
    "theme": "light",
}


def default_state(logged_in: bool = False) -> Dict[str, Any]:
    state = copy.deepcopy(_DEFAULT_STATE)
    state["isLoggedIn"] = bool(logged_in)
    return state


def merge_onto_defaults(defaults: Mapping, fetched: Mapping) -> Dict[str, Any]:
    """Return ``fetched`` layered over ``defaults``.

    Keys missing from ``fetched`` (or holding ``None``) take the default value.
    When both sides hold a mapping the merge recurses. A default mapping paired
    with a non-mapping fetched value keeps the default. Keys only present in
    ``fetched`` are kept as-is.
    """
    merged: Dict[str, Any] = {}
    for key, default_value in defaults.items():
        value = fetched.get(key)
        if value is None:
            merged[key] = copy.deepcopy(default_value)
        elif isinstance(default_value, Mapping):
            if isinstance(value, Mapping):
                merged[key] = merge_onto_defaults(default_value, value)
            else:
                merged[key] = copy.deepcopy(default_value)
        else:
            merged[key] = copy.deepcopy(value)
    for key, value in fetched.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
    return merged


def _normalize_meals(raw_meals) -> list:
    by_day = {}
    for position, item in enumerate(raw_meals or []):
        if not isinstance(item, Mapping):
            continue
        try:
            day = int(item.get("day", position))
        except (TypeError, ValueError):
            continue
        if not (0 <= day < DAYS_IN_WEEK) or day in by_day:
            continue
        meal = empty_meal(day)
        meal["id"] = str(item.get("id") or meal["id"])
        for field in MEAL_FIELDS:
            value = item.get(field)
            meal[field] = value if isinstance(value, str) else ""
        by_day[day] = meal
    return [by_day.get(day) or empty_meal(day) for day in range(DAYS_IN_WEEK)]


def reconcile_state(document, logged_in: bool = True) -> Dict[str, Any]:
    if not isinstance(document, Mapping):
        return default_state(logged_in=logged_in)
    state = merge_onto_defaults(_DEFAULT_STATE, document)
    for key in COLLECTION_KEYS:
        if not isinstance(state.get(key), list):
            state[key] = copy.deepcopy(_DEFAULT_STATE[key])
    state["meals"] = _normalize_meals(state["meals"])
    state["isLoggedIn"] = bool(logged_in)
    return state


def reset_preserving_theme(state: Mapping) -> Dict[str, Any]:
    fresh = default_state(logged_in=False)
    theme = state.get("theme") if isinstance(state, Mapping) else None
    if theme:
        fresh["theme"] = theme
    return fresh
