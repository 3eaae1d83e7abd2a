"""
Export extracted days to JSON, CSV, and ICS.
"""
from __future__ import annotations

import csv
import hashlib
import json
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List

import icalendar

from .models import Day

CSV_FIELDS = [
    "date",
    "weekday",
    "period_number",
    "subject",
    "class_id",
    "classroom",
    "teacher",
]


def _parse_day_date(date_str: str) -> date:
    """Parse the page's DD/MM/YYYY date."""
    return datetime.strptime(date_str.strip(), "%d/%m/%Y").date()


def export_json(days: Iterable[Day], out_path: str | Path) -> None:
    """Export days to JSON (one object per day, periods tagged by kind)."""
    data = [day.model_dump(mode="json") for day in days]
    Path(out_path).write_text(
        json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8"
    )


def export_csv(days: Iterable[Day], out_path: str | Path) -> None:
    """Export days to CSV, one row per period (empty periods included)."""
    rows: List[dict] = []
    for day in days:
        for p in day.periods:
            rows.append({
                "date": day.date,
                "weekday": day.weekday,
                "period_number": p.period_number,
                "subject": p.subject,
                "class_id": p.class_id,
                "classroom": p.classroom,
                "teacher": p.teacher,
            })
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        w.writeheader()
        w.writerows(rows)


def export_ics(days: Iterable[Day], out_path: str | Path) -> None:
    """
    Export days to iCalendar (.ics).

    The daily page has no period times, so each scheduled period becomes an
    all-day event on its day, titled "P<n> <subject>".
    """
    cal = icalendar.Calendar()
    cal.add("prodid", "-//Sentral Timetable//EN")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("x-wr-calname", "School Timetable")

    for day in days:
        day_date = _parse_day_date(day.date)
        for p in day.scheduled:
            summary = f"P{p.period_number} {p.subject}"

            event = icalendar.Event()

            uid_string = f"{day.date}-{p.period_number}-{p.subject}"
            uid_hash = hashlib.md5(uid_string.encode("utf-8")).hexdigest()
            event.add("uid", f"{uid_hash}@sentral-timetable")

            event.add("summary", summary)
            event.add("description", f"Class: {p.class_id}\nTeacher: {p.teacher}")
            event.add("location", p.classroom)
            event.add("dtstart", day_date)
            event.add("dtend", day_date + timedelta(days=1))
            event.add("dtstamp", datetime.now(timezone.utc))

            cal.add_component(event)

    Path(out_path).write_text(cal.to_ical().decode("utf-8"), encoding="utf-8")


def export(days: Iterable[Day], out_path: str | Path, fmt: str) -> None:
    """Export to the given format: json, csv, or ics."""
    fmt = fmt.lower()
    days = list(days)
    if fmt == "json":
        export_json(days, out_path)
    elif fmt == "csv":
        export_csv(days, out_path)
    elif fmt == "ics":
        export_ics(days, out_path)
    else:
        raise ValueError(f"Unsupported format: {fmt}. Use json, csv, or ics.")
