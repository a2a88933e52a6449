from __future__ import annotations

from collections.abc import Mapping
from datetime import date, timedelta

from zenith.constants import (
    ALL_NOTES_FILTER,
    DAYS_IN_WEEK,
    DEFAULT_WATER_GOAL,
    GENERAL_TOPIC,
    STUDY_METRICS,
)


def _day_key(value) -> str:
    if value is None:
        return date.today().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def water_amount(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _amount_by_date(water_history):
    amounts = {}
    for record in water_history or []:
        if not isinstance(record, Mapping):
            continue
        day_key = str(record.get("date") or "")
        if not day_key:
            continue
        amounts[day_key] = amounts.get(day_key, 0) + water_amount(record.get("amount"))
    return amounts


def hydration_streak(water_history, water_goal, today=None):
    today_key = _day_key(today)
    amounts = _amount_by_date(water_history)
    current = date.fromisoformat(today_key)
    count = 0
    if amounts.get(today_key, 0) >= water_goal:
        count += 1
    while True:
        current -= timedelta(days=1)
        day_key = current.isoformat()
        if day_key not in amounts:
            break
        if amounts[day_key] < water_goal:
            break
        count += 1
    return count


def hydration_stats(water_history, water_goal, today=None):
    today_key = _day_key(today)
    goal = int(water_goal or 0)
    if goal <= 0:
        goal = DEFAULT_WATER_GOAL
    amounts = _amount_by_date(water_history)
    today_amount = amounts.get(today_key, 0)
    total_ml = sum(amounts.values())
    average = (total_ml / len(amounts)) / 1000 if amounts else 0.0
    return {
        "today_amount": today_amount,
        "progress": min(today_amount / goal * 100, 100.0),
        "average_liters": round(average, 1),
        "streak": hydration_streak(water_history, goal, today_key) if amounts else 0,
        "total_liters": round(total_ml / 1000, 1),
    }


def task_progress(tasks, today=None):
    today_key = _day_key(today)
    todays = [task for task in tasks or [] if task.get("date") == today_key]
    if not todays:
        return 0
    completed = sum(1 for task in todays if task.get("completed"))
    return round(completed / len(todays) * 100)


def tasks_for_day(tasks, day):
    day_key = _day_key(day)
    return sorted(
        (task for task in tasks or [] if task.get("date") == day_key),
        key=lambda task: str(task.get("time") or ""),
    )


def tasks_by_weekday(tasks):
    grouped = {day: [] for day in range(DAYS_IN_WEEK)}
    for task in tasks or []:
        try:
            day = int(task.get("day"))
        except (TypeError, ValueError):
            continue
        if day in grouped:
            grouped[day].append(task)
    return grouped


def _log_value(item, metric):
    if metric == "hours":
        return (item.get("durationMinutes", 0) or 0) / 60
    return item.get("count", 0) or 0


def study_analytics(subjects, sessions, question_logs, metric="hours", subject_id=None):
    """Chart buckets for the study screen.

    Without ``subject_id`` there is one bucket per subject. With it, one per
    topic of that subject plus a ``Geral`` bucket for logs whose topic is no
    longer among the subject's topics. Empty buckets are dropped.
    """
    if metric not in STUDY_METRICS:
        raise ValueError(f"Unknown study metric: {metric}")
    subjects = subjects or []
    sessions = sessions or []
    question_logs = question_logs or []

    if subject_id is None:
        buckets = []
        for subject in subjects:
            if metric == "hours":
                value = round(float(subject.get("totalHours", 0) or 0), 1)
            else:
                value = sum(
                    _log_value(log, metric)
                    for log in question_logs
                    if log.get("subjectId") == subject.get("id")
                )
            buckets.append({"name": subject.get("name", ""), "value": value})
        return [bucket for bucket in buckets if bucket["value"] > 0]

    subject = next((item for item in subjects if item.get("id") == subject_id), None)
    if subject is None:
        return []

    source = sessions if metric == "hours" else question_logs
    logs = [item for item in source if item.get("subjectId") == subject_id]
    topic_names = [topic.get("name") for topic in subject.get("topics", [])]

    buckets = []
    for topic_name in topic_names:
        value = sum(_log_value(item, metric) for item in logs if item.get("topicName") == topic_name)
        buckets.append({"name": topic_name, "value": round(value, 1)})

    general = sum(_log_value(item, metric) for item in logs if item.get("topicName") not in topic_names)
    if general > 0:
        buckets.append({"name": GENERAL_TOPIC, "value": round(general, 1)})
    return [bucket for bucket in buckets if bucket["value"] > 0]


def music_practice_summary(sessions):
    total_minutes = sum(int(item.get("duration", 0) or 0) for item in sessions or [])
    hours, minutes = divmod(total_minutes, 60)
    if hours == 0:
        label = f"{minutes} MIN"
    elif minutes:
        label = f"{hours}H {minutes}M"
    else:
        label = f"{hours}H"
    return {"total_minutes": total_minutes, "hours": hours, "minutes": minutes, "label": label}


def filter_notes(notes, category=None, search=""):
    needle = (search or "").lower()
    matches = []
    for note in notes or []:
        title = (note.get("title") or "").lower()
        content = (note.get("content") or "").lower()
        if needle and needle not in title and needle not in content:
            continue
        if category not in (None, ALL_NOTES_FILTER) and note.get("category") != category:
            continue
        matches.append(note)
    return sorted(
        matches,
        key=lambda note: (not note.get("isPinned"), -(note.get("createdAt") or 0)),
    )


def dashboard_summary(state, today=None):
    today_key = _day_key(today)
    water_today = _amount_by_date(state.get("waterHistory")).get(today_key, 0)
    return {
        "task_progress": task_progress(state.get("tasks"), today_key),
        "water_amount": water_today,
        "study_hours": sum(float(s.get("totalHours", 0) or 0) for s in state.get("studySubjects", [])),
        "music_sessions": len(state.get("musicSessions", [])),
    }
