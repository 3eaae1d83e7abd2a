import csv
import json

import pytest

from sentral_timetable.export import export, export_csv, export_ics, export_json
from sentral_timetable.models import Day, EmptyPeriod, ScheduledPeriod


@pytest.fixture
def days():
    thursday = Day(
        date="14/03/2024",
        weekday="Thursday",
        periods=(
            ScheduledPeriod(
                period_number="1",
                subject="English",
                class_id="10ENG1",
                classroom="B12",
                teacher="Ms Smith",
            ),
            EmptyPeriod(period_number="2"),
            ScheduledPeriod(
                period_number="3",
                subject="Mathematics",
                class_id="10MAT2",
                classroom="A04",
                teacher="Mr Jones",
            ),
        ),
    )
    wednesday = Day(date="13/03/2024", weekday="Wednesday", periods=(EmptyPeriod(period_number="1"),))
    return [thursday, wednesday]


def test_export_json(tmp_path, days):
    out_path = tmp_path / "days.json"
    export_json(days, out_path)

    data = json.loads(out_path.read_text(encoding="utf-8"))
    assert [d["date"] for d in data] == ["14/03/2024", "13/03/2024"]
    periods = data[0]["periods"]
    assert periods[0]["kind"] == "scheduled"
    assert periods[0]["subject"] == "English"
    assert periods[1] == {"kind": "empty", "period_number": "2"}


def test_export_csv(tmp_path, days):
    out_path = tmp_path / "days.csv"
    export_csv(days, out_path)

    with open(out_path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 4
    assert rows[0]["subject"] == "English"
    assert rows[0]["classroom"] == "B12"
    # Empty periods are written with the placeholder subject and no details
    assert rows[1]["subject"] == "None"
    assert rows[1]["teacher"] == ""
    assert rows[3]["date"] == "13/03/2024"


def test_export_ics(tmp_path, days):
    out_path = tmp_path / "days.ics"
    export_ics(days, out_path)
    content = out_path.read_text(encoding="utf-8")

    assert "BEGIN:VCALENDAR" in content
    assert content.count("BEGIN:VEVENT") == 2
    assert "SUMMARY:P1 English" in content
    assert "SUMMARY:P3 Mathematics" in content
    assert "LOCATION:B12" in content

    # All-day events on the page date
    assert "DTSTART;VALUE=DATE:20240314" in content
    assert "DTEND;VALUE=DATE:20240315" in content

    assert "@sentral-timetable" in content


def test_export_ics_uid_is_stable(tmp_path, days):
    first = tmp_path / "a.ics"
    second = tmp_path / "b.ics"
    export_ics(days, first)
    export_ics(days, second)

    def uids(path):
        return [l for l in path.read_text(encoding="utf-8").splitlines() if l.startswith("UID:")]

    assert uids(first) == uids(second)


def test_export_unknown_format(tmp_path, days):
    with pytest.raises(ValueError, match="Unsupported format"):
        export(days, tmp_path / "days.xml", "xml")
