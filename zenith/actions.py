"""State transforms for :meth:`zenith.state.store.StateStore.apply`.

Each function takes the draft document first, mutates it and returns it.
Invalid input raises ``ValueError`` with a message fit for the user; the store
then keeps the previous snapshot.
"""

from __future__ import annotations

import time
from datetime import date
from uuid import uuid4

from zenith.constants import (
    DAYS_IN_WEEK,
    DEFAULT_PRIORITY,
    GENERAL_TOPIC,
    LOG_KINDS,
    MEAL_FIELDS,
    MSG_LAST_CATEGORY,
    MSG_LAST_INSTRUMENT,
    MSG_NOTE_TITLE_REQUIRED,
    PRIORITIES,
)
from zenith.metrics import water_amount
from zenith.shopping import find_manual_item


def _new_id():
    return uuid4().hex


def _now_ms():
    return int(time.time() * 1000)


def _today_key(today=None):
    if today is None:
        return date.today().isoformat()
    if isinstance(today, date):
        return today.isoformat()
    return str(today)


def _clean_text(value):
    return " ".join(str(value or "").split()).strip()


def _normalize_time_value(value):
    if value is None:
        return ""
    if hasattr(value, "strftime"):
        return value.strftime("%H:%M")
    value_str = str(value).strip()
    return value_str[:5]


def _normalize_priority(priority):
    value = str(priority or "").strip().lower()
    if value in PRIORITIES:
        return value
    return DEFAULT_PRIORITY


def weekday_index(day_iso):
    """Weekday of an ISO date with Sunday as 0."""
    return (date.fromisoformat(day_iso).weekday() + 1) % 7


def _positive_int(value, message):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(message)
    if number <= 0:
        raise ValueError(message)
    return number


def _find(items, item_id):
    for item in items:
        if item.get("id") == item_id:
            return item
    return None


# Water


def add_water(state, amount, today=None):
    amount = _positive_int(amount, "Quantidade de água inválida.")
    day_key = _today_key(today)
    history = state.setdefault("waterHistory", [])
    for record in history:
        if isinstance(record, dict) and record.get("date") == day_key:
            record["amount"] = water_amount(record.get("amount")) + amount
            return state
    history.append({"date": day_key, "amount": amount})
    return state


def reset_today_water(state, today=None):
    day_key = _today_key(today)
    for record in state.get("waterHistory", []):
        if isinstance(record, dict) and record.get("date") == day_key:
            record["amount"] = 0
    return state


def add_reminder(state, reminder_time, label):
    clean_time = _normalize_time_value(reminder_time)
    clean_label = _clean_text(label)
    if not clean_time or not clean_label:
        raise ValueError("Lembrete precisa de horário e descrição.")
    state.setdefault("waterReminders", []).append(
        {"id": _new_id(), "time": clean_time, "label": clean_label, "isActive": True}
    )
    state["waterReminders"].sort(key=lambda item: item.get("time", ""))
    return state


def toggle_reminder(state, reminder_id):
    reminder = _find(state.get("waterReminders", []), reminder_id)
    if reminder is not None:
        reminder["isActive"] = not reminder.get("isActive", False)
    return state


def delete_reminder(state, reminder_id):
    state["waterReminders"] = [r for r in state.get("waterReminders", []) if r.get("id") != reminder_id]
    return state


# Tasks


def add_task(state, title, task_time, task_date, priority=DEFAULT_PRIORITY):
    clean_title = (title or "").strip()
    if not clean_title:
        raise ValueError("A tarefa precisa de um título.")
    day_key = _today_key(task_date)
    try:
        day = weekday_index(day_key)
    except ValueError:
        raise ValueError("Data da tarefa inválida.")
    task = {
        "id": _new_id(),
        "title": clean_title,
        "time": _normalize_time_value(task_time),
        "date": day_key,
        "day": day,
        "priority": _normalize_priority(priority),
        "completed": False,
    }
    state["tasks"] = [task] + list(state.get("tasks", []))
    return state


def toggle_task(state, task_id):
    task = _find(state.get("tasks", []), task_id)
    if task is not None:
        task["completed"] = not task.get("completed", False)
    return state


def delete_task(state, task_id):
    state["tasks"] = [t for t in state.get("tasks", []) if t.get("id") != task_id]
    return state


# Notes


def _clean_links(links):
    clean = []
    for link in links or []:
        url = str(link.get("url") or "").strip()
        if not url:
            continue
        label = str(link.get("label") or "").strip() or url
        clean.append({"label": label, "url": url})
    return clean


def save_note(state, title, content="", category=None, image_url=None, links=None, note_id=None):
    clean_title = (title or "").strip()
    if not clean_title:
        raise ValueError(MSG_NOTE_TITLE_REQUIRED)
    categories = state.get("noteCategories", [])
    if category not in categories:
        category = categories[0] if categories else GENERAL_TOPIC
    notes = state.get("notes", [])
    existing = (_find(notes, note_id) if note_id else None) or {}
    note = {
        "id": existing.get("id") or _new_id(),
        "title": clean_title,
        "content": content or "",
        "category": category,
        "isPinned": bool(existing.get("isPinned", False)),
        "createdAt": existing.get("createdAt") or _now_ms(),
        "imageUrl": image_url or None,
        "links": _clean_links(links),
    }
    if existing:
        state["notes"] = [note if n.get("id") == note["id"] else n for n in notes]
    else:
        state["notes"] = [note] + list(notes)
    return state


def delete_note(state, note_id):
    state["notes"] = [n for n in state.get("notes", []) if n.get("id") != note_id]
    return state


def toggle_pin(state, note_id):
    note = _find(state.get("notes", []), note_id)
    if note is not None:
        note["isPinned"] = not note.get("isPinned", False)
    return state


def add_note_category(state, name):
    clean_name = (name or "").strip()
    categories = state.setdefault("noteCategories", [])
    if clean_name and clean_name not in categories:
        categories.append(clean_name)
    return state


def delete_note_category(state, name):
    categories = state.get("noteCategories", [])
    if name not in categories:
        return state
    if len(categories) <= 1:
        raise ValueError(MSG_LAST_CATEGORY)
    remaining = [c for c in categories if c != name]
    state["noteCategories"] = remaining
    for note in state.get("notes", []):
        if note.get("category") == name:
            note["category"] = remaining[0]
    return state


# Meals and shopping list


def update_meal(state, day, field, value):
    if field not in MEAL_FIELDS:
        raise ValueError(f"Campo de refeição inválido: {field}")
    if not isinstance(day, int) or not (0 <= day < DAYS_IN_WEEK):
        raise ValueError("Dia da semana inválido.")
    for meal in state.get("meals", []):
        if meal.get("day") == day:
            meal[field] = value or ""
    return state


def add_manual_item(state, name):
    clean_name = (name or "").strip()
    if clean_name:
        state.setdefault("manualShoppingItems", []).append(clean_name)
    return state


def remove_manual_item(state, index):
    items = list(state.get("manualShoppingItems", []))
    if 0 <= index < len(items):
        del items[index]
    state["manualShoppingItems"] = items
    return state


def remove_shopping_item(state, name):
    index = find_manual_item(state.get("manualShoppingItems", []), name)
    if index is None:
        raise ValueError("Somente itens adicionados manualmente podem ser removidos.")
    return remove_manual_item(state, index)


# Study


def add_subject(state, name):
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValueError("A matéria precisa de um nome.")
    subject = {"id": _new_id(), "name": clean_name, "topics": [], "totalHours": 0}
    state.setdefault("studySubjects", []).append(subject)
    return state


def delete_subject(state, subject_id):
    state["studySubjects"] = [s for s in state.get("studySubjects", []) if s.get("id") != subject_id]
    state["studySessions"] = [s for s in state.get("studySessions", []) if s.get("subjectId") != subject_id]
    state["questionLogs"] = [q for q in state.get("questionLogs", []) if q.get("subjectId") != subject_id]
    return state


def add_topic(state, subject_id, name):
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValueError("O tópico precisa de um nome.")
    subject = _find(state.get("studySubjects", []), subject_id)
    if subject is None:
        raise ValueError("Matéria não encontrada.")
    subject.setdefault("topics", []).append({"id": _new_id(), "name": clean_name, "progress": 0})
    return state


def delete_topic(state, subject_id, topic_id):
    subject = _find(state.get("studySubjects", []), subject_id)
    if subject is not None:
        subject["topics"] = [t for t in subject.get("topics", []) if t.get("id") != topic_id]
    return state


def _subject_and_topic(state, subject_id, topic_id):
    subject = _find(state.get("studySubjects", []), subject_id)
    if subject is None:
        raise ValueError("Matéria não encontrada.")
    topic = _find(subject.get("topics", []), topic_id) if topic_id else None
    return subject, (topic.get("name") if topic else GENERAL_TOPIC)


def record_study_session(state, subject_id, topic_id, seconds):
    seconds = _positive_int(seconds, "Sessão de estudo sem duração.")
    subject, topic_name = _subject_and_topic(state, subject_id, topic_id)
    subject["totalHours"] = round(float(subject.get("totalHours", 0) or 0) + seconds / 3600, 2)
    session = {
        "id": _new_id(),
        "subjectId": subject_id,
        "subjectName": subject.get("name", ""),
        "topicName": topic_name,
        "durationMinutes": max(1, round(seconds / 60)),
        "date": _now_ms(),
    }
    state["studySessions"] = [session] + list(state.get("studySessions", []))
    return state


def register_questions(state, subject_id, topic_id, count):
    count = _positive_int(count, "Informe a quantidade de questões.")
    subject, topic_name = _subject_and_topic(state, subject_id, topic_id)
    log = {
        "id": _new_id(),
        "subjectId": subject_id,
        "subjectName": subject.get("name", ""),
        "topicName": topic_name,
        "count": count,
        "date": _now_ms(),
    }
    state["questionLogs"] = [log] + list(state.get("questionLogs", []))
    return state


def delete_study_log(state, log_id, kind):
    if kind not in LOG_KINDS:
        raise ValueError(f"Tipo de registro inválido: {kind}")
    key = "studySessions" if kind == "session" else "questionLogs"
    state[key] = [item for item in state.get(key, []) if item.get("id") != log_id]
    return state


# Music


def add_music_session(state, instrument, duration, notes=""):
    duration = _positive_int(duration, "Informe a duração da prática.")
    instruments = state.get("musicInstruments", [])
    if instrument not in instruments:
        raise ValueError("Instrumento não encontrado.")
    session = {
        "id": _new_id(),
        "instrument": instrument,
        "duration": duration,
        "date": _now_ms(),
        "notes": notes or "",
    }
    state["musicSessions"] = [session] + list(state.get("musicSessions", []))
    return state


def delete_music_session(state, session_id):
    state["musicSessions"] = [s for s in state.get("musicSessions", []) if s.get("id") != session_id]
    return state


def add_instrument(state, name):
    clean_name = (name or "").strip()
    instruments = state.setdefault("musicInstruments", [])
    if clean_name and clean_name not in instruments:
        instruments.append(clean_name)
    return state


def delete_instrument(state, name):
    instruments = state.get("musicInstruments", [])
    if name not in instruments:
        return state
    if len(instruments) <= 1:
        raise ValueError(MSG_LAST_INSTRUMENT)
    state["musicInstruments"] = [i for i in instruments if i != name]
    return state


# Settings


def toggle_theme(state):
    state["theme"] = "dark" if state.get("theme") == "light" else "light"
    return state


def set_user_name(state, name):
    state.setdefault("user", {})["name"] = name if name is not None else ""
    return state


def set_water_goal(state, goal_ml):
    state.setdefault("user", {})["waterGoal"] = _positive_int(goal_ml, "A meta de água deve ser positiva.")
    return state


def set_avatar(state, avatar_url):
    state.setdefault("user", {})["avatarUrl"] = avatar_url or None
    return state
