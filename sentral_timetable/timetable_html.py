"""
Parse a Sentral "daily" timetable page into a Day record.

Usage pattern:
- The portal client (or the user, via "Save As") gets the page at
  /portal/timetable/mytimetable/<id>/daily
- extract_day() finds the column for the wanted date and reads one period
  per row from it.

The real HTML structure:
- Date header cells: <th class="timetable-date">06/03/2024</th>. The page
  shows two 5-day blocks (this week and the other week of the two-week
  cycle) as one run of up to 10 date headers, in document order.
  Other timetable-date cells (weekday names) have no "/" and are ignored.
- Period rows: <tr> holding <th class="timetable-period">3</th> followed by
  one day cell per column of its block. The second block's period rows come
  after the first block's (12 rows per block on the observed template).
- Day cells: either class="inactive" (no class that period) or a cell with
  a nested block:
    <div class="timetable-class">
      ... subject, class code ... room ... teacher
    </div>
"""
from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Dict, Iterable, List, NamedTuple, Optional

from bs4 import BeautifulSoup, Tag  # type: ignore[import]

from .errors import DailyLinkNotFound, DateNotFound, MalformedRow, MissingClassBlock
from .logging import get_logger
from .models import Day, EmptyPeriod, Period, ScheduledPeriod

log = get_logger(__name__)


# ──────────────────────────────────────────────────────────────────
#  Page template constants
# ──────────────────────────────────────────────────────────────────

DATE_FORMAT = "%d/%m/%Y"

DATE_HEADER_SELECTOR = "th.timetable-date"
PERIOD_LABEL_CLASS = "timetable-period"
PERIOD_LABEL_SELECTOR = f"th.{PERIOD_LABEL_CLASS}"
CLASS_BLOCK_SELECTOR = "div.timetable-class"
INACTIVE_CLASS = "inactive"
DAILY_LINK_ICON_SELECTOR = "i.icon-certificate"

DAYS_PER_BLOCK = 5
ROWS_PER_BLOCK = 12

# Role classes for the fields of a class block, where the page has them.
FIELD_SELECTORS: Dict[str, str] = {
    "subject": ".timetable-subject",
    "class_id": ".timetable-class-code",
    "classroom": ".timetable-room",
    "teacher": ".timetable-teacher",
}

# Without role classes the fields sit at fixed positions among the block's
# text nodes, whitespace-only nodes included.
ORDINAL_FIELDS: Dict[str, int] = {
    "subject": 2,
    "class_id": 3,
    "classroom": 6,
    "teacher": 8,
}

_WEEKDAY_NAMES = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)

_TIMETABLE_ID_RE = re.compile(r"mytimetable/(\d+)")


class ColumnMatch(NamedTuple):
    index: int
    date: str
    weekday: str


# ──────────────────────────────────────────────────────────────────
#  Calendar column locator
# ──────────────────────────────────────────────────────────────────

def _date_headers(soup: BeautifulSoup) -> List[str]:
    """Header texts that look like dates, in document order."""
    headers: List[str] = []
    for th in soup.select(DATE_HEADER_SELECTOR):
        text = th.get_text(strip=True)
        if "/" in text:
            headers.append(text)
    return headers


def locate_column(
    soup: BeautifulSoup, offsets: Iterable[int], today: date
) -> ColumnMatch:
    """
    Find the date column for the first offset (in the given order) whose
    date is shown in the page header.

    :param soup: Parsed daily timetable page.
    :param offsets: Signed day offsets from ``today``, most preferred first,
        e.g. ``[1, 2, 3]`` for "the next school day".
    :param today: Reference date the offsets are relative to.
    :raises DateNotFound: if no candidate date is in the header row.
    """
    headers = _date_headers(soup)
    tried: List[str] = []

    for offset in offsets:
        candidate = today + timedelta(days=offset)
        date_str = candidate.strftime(DATE_FORMAT)
        tried.append(date_str)
        if date_str in headers:
            match = ColumnMatch(
                index=headers.index(date_str),
                date=date_str,
                weekday=_WEEKDAY_NAMES[candidate.weekday()],
            )
            log.debug("column_located", offset=offset, column=match.index, date=date_str)
            return match

    log.info("date_not_found", tried=tried, headers=headers)
    raise DateNotFound(tried)


# ──────────────────────────────────────────────────────────────────
#  Period row extractor
# ──────────────────────────────────────────────────────────────────

def _period_rows(soup: BeautifulSoup) -> List[Tag]:
    return [tr for tr in soup.find_all("tr") if tr.select_one(PERIOD_LABEL_SELECTOR)]


def _period_label(row: Tag) -> str:
    th = row.select_one(PERIOD_LABEL_SELECTOR)
    if th is None:
        raise MalformedRow("Timetable row has no period number cell")
    return th.get_text(" ", strip=True)


def _day_cells(row: Tag) -> List[Tag]:
    """Direct child cells of a period row, minus the period label cell."""
    return [
        cell
        for cell in row.find_all(True, recursive=False)
        if PERIOD_LABEL_CLASS not in (cell.get("class") or [])
    ]


def _fields_by_role(block: Tag) -> Optional[Dict[str, str]]:
    fields: Dict[str, str] = {}
    for name, selector in FIELD_SELECTORS.items():
        el = block.select_one(selector)
        if el is None:
            return None
        fields[name] = el.get_text(" ", strip=True)
    return fields


def _fields_by_position(block: Tag, period_number: str) -> Dict[str, str]:
    strings = list(block.strings)
    needed = max(ORDINAL_FIELDS.values()) + 1
    if len(strings) < needed:
        raise MissingClassBlock(
            f"Period {period_number}: class block has {len(strings)} text "
            f"fragments, expected at least {needed}"
        )
    return {name: strings[pos].strip() for name, pos in ORDINAL_FIELDS.items()}


def _scheduled_period(cell: Tag, period_number: str) -> ScheduledPeriod:
    block = cell.select_one(CLASS_BLOCK_SELECTOR)
    if block is None:
        raise MissingClassBlock(
            f"Period {period_number}: day cell has no {CLASS_BLOCK_SELECTOR} block"
        )
    fields = _fields_by_role(block)
    if fields is None:
        fields = _fields_by_position(block, period_number)
    return ScheduledPeriod(period_number=period_number, **fields)


def extract_periods(
    soup: BeautifulSoup,
    column_index: int,
    *,
    days_per_block: int = DAYS_PER_BLOCK,
    rows_per_block: int = ROWS_PER_BLOCK,
) -> List[Period]:
    """
    Read one period per row from the given date column.

    A column in the second block (index >= days_per_block) belongs to the
    second run of period rows: the first ``rows_per_block`` rows are
    dropped and the index is rebased into the block.

    :raises MalformedRow: if a row has no cell at the column, or there are
        fewer rows than one block when rebasing.
    :raises MissingClassBlock: if an active cell has no readable class block.
    """
    rows = _period_rows(soup)

    if column_index >= days_per_block:
        if len(rows) < rows_per_block:
            raise MalformedRow(
                f"Column {column_index} is in the second block but the page has "
                f"only {len(rows)} period rows (first block alone is {rows_per_block})"
            )
        rows = rows[rows_per_block:]
        column_index -= days_per_block

    periods: List[Period] = []
    for row in rows:
        label = _period_label(row)
        cells = _day_cells(row)
        if column_index >= len(cells):
            raise MalformedRow(
                f"Period {label}: no day cell at column {column_index} "
                f"(row has {len(cells)})"
            )

        cell = cells[column_index]
        if INACTIVE_CLASS in (cell.get("class") or []):
            periods.append(EmptyPeriod(period_number=label))
            continue

        periods.append(_scheduled_period(cell, label))

    log.debug(
        "periods_extracted",
        column=column_index,
        rows=len(rows),
        scheduled=sum(1 for p in periods if not p.is_empty),
    )
    return periods


# ──────────────────────────────────────────────────────────────────
#  Public API
# ──────────────────────────────────────────────────────────────────

def extract_day(
    html: str,
    offsets: Iterable[int],
    today: date,
    *,
    days_per_block: int = DAYS_PER_BLOCK,
    rows_per_block: int = ROWS_PER_BLOCK,
) -> Day:
    """
    Extract the first day in ``offsets`` order that the page shows.

    :param html: Raw HTML of the daily timetable page.
    :param offsets: Day offsets from ``today`` to try, most preferred first.
    :param today: Reference date.
    :returns: Day with the header date, its weekday name and its periods.
    :raises ExtractionError: DateNotFound, MalformedRow or MissingClassBlock.
    """
    soup = BeautifulSoup(html, "html.parser")
    match = locate_column(soup, offsets, today)
    periods = extract_periods(
        soup,
        match.index,
        days_per_block=days_per_block,
        rows_per_block=rows_per_block,
    )
    day = Day(date=match.date, weekday=match.weekday, periods=tuple(periods))
    log.info("day_extracted", date=day.date, weekday=day.weekday, periods=len(day.periods))
    return day


def find_daily_timetable_id(html: str) -> int:
    """
    Get the numeric timetable id from the "My Timetable" landing page.

    The daily view is linked by an <a> wrapping <i class="icon-certificate">,
    e.g. href="/portal/timetable/mytimetable/1234/daily".
    """
    soup = BeautifulSoup(html, "html.parser")
    icon = soup.select_one(DAILY_LINK_ICON_SELECTOR)
    link = icon.parent if icon is not None else None
    href = link.get("href", "") if link is not None else ""

    m = _TIMETABLE_ID_RE.search(href or "")
    if not m:
        raise DailyLinkNotFound(
            "Could not find the daily timetable link on the timetable page."
        )
    return int(m.group(1))
