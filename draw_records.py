# draw_records.py
# Historical draw records and the store that keeps them ordered by date.

import logging
import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

TWO_DIGIT_RE = re.compile(r"^\d{2}$")
ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
DMY_DATE_RE = re.compile(r"^(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{2}|\d{4})$")

DateLike = Union[date, datetime, str]


class RecordFormatError(ValueError):
    """Malformed date or two-digit value at the single-entry boundary."""


def parse_date_token(token: str) -> Optional[date]:
    """ISO ``YYYY-MM-DD`` or day-month-year with ``/ . -`` separators; 2-digit years become 20xx."""
    s = token.strip()
    m = ISO_DATE_RE.match(s)
    if m:
        y, mo, d = map(int, m.groups())
    else:
        m = DMY_DATE_RE.match(s)
        if not m:
            return None
        d, mo = int(m.group(1)), int(m.group(2))
        y_txt = m.group(3)
        y = int("20" + y_txt) if len(y_txt) == 2 else int(y_txt)
    try:
        return date(y, mo, d)
    except ValueError:
        return None


def to_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_date_token(str(value))
    if parsed is None:
        raise RecordFormatError(f"invalid date: {value!r}")
    return parsed


def day_name(value: DateLike) -> str:
    """Fixed weekday label used both when storing a record and when scoring."""
    return DAY_NAMES[to_date(value).weekday()]


def next_draw_date(value: DateLike) -> date:
    d = to_date(value) + timedelta(days=1)
    while d.weekday() >= 5:
        d += timedelta(days=1)
    return d


def is_two_digit(value) -> bool:
    return isinstance(value, str) and bool(TWO_DIGIT_RE.match(value))


def validate_entry(when: DateLike, am: str, pm: str) -> Tuple[date, str, str]:
    d = to_date(when)
    am = "" if am is None else str(am).strip()
    pm = "" if pm is None else str(pm).strip()
    if not is_two_digit(am):
        raise RecordFormatError(f"morning result must be two digits 00-99, got {am!r}")
    if not is_two_digit(pm):
        raise RecordFormatError(f"evening result must be two digits 00-99, got {pm!r}")
    return d, am, pm


def new_record_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Record:
    date: date
    am: str
    pm: str
    id: str = field(default_factory=new_record_id)
    market_index: Optional[str] = None
    market_value: Optional[str] = None

    @property
    def day_of_week(self) -> str:
        return day_name(self.date)

    @property
    def outcomes(self) -> Tuple[str, str]:
        return self.am, self.pm

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "am": self.am,
            "pm": self.pm,
            "day_of_week": self.day_of_week,
            "market_index": self.market_index,
            "market_value": self.market_value,
        }


def sort_records(records: Iterable[Record]) -> Tuple[Record, ...]:
    return tuple(sorted(records, key=lambda r: r.date, reverse=True))


def collapse_dates(records: Iterable[Record]) -> List[Record]:
    """One record per date; a later entry for the same date replaces the earlier one."""
    by_date = {}
    dropped = 0
    for rec in records:
        if rec.date in by_date:
            dropped += 1
        by_date[rec.date] = rec
    if dropped:
        logger.warning("Collapsed %d duplicate date rows (last one wins)", dropped)
    return list(by_date.values())


SEED_RECORDS = (
    ("2026-01-23", "43", "91"),
    ("2026-01-22", "42", "44"),
    ("2026-01-21", "71", "68"),
    ("2026-01-20", "31", "76"),
    ("2026-01-19", "45", "05"),
    ("2026-01-16", "72", "03"),
    ("2026-01-15", "04", "96"),
    ("2026-01-14", "28", "07"),
)


class RecordStore:
    """
    Ordered collection of draws, newest first, at most one record per date.

    The whole collection is replaced on every mutation and handed to the
    injected slot (``load() -> list | None`` / ``save(list)``) when one is given.
    """

    def __init__(self, slot=None):
        self._slot = slot
        self._records: Tuple[Record, ...] = ()
        if slot is not None:
            loaded = slot.load()
            if loaded:
                self._records = sort_records(collapse_dates(loaded))

    @property
    def records(self) -> Tuple[Record, ...]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def _commit(self, records: Iterable[Record]) -> None:
        self._records = sort_records(records)
        if self._slot is not None:
            self._slot.save(list(self._records))

    def add_or_replace(self, when: DateLike, am: str, pm: str,
                       market_index: Optional[str] = None,
                       market_value: Optional[str] = None) -> Record:
        # format checks belong to the caller (validate_entry / bulk import)
        return self.add_many([(when, am, pm, market_index, market_value)])[0]

    def add_many(self, entries: Iterable[tuple]) -> List[Record]:
        """
        Upsert ``(date, am, pm[, market_index, market_value])`` entries with a
        single save. Later entries for the same date win; ids are kept on replace.
        """
        by_date = {r.date: r for r in self._records}
        out = []
        for when, am, pm, *market in entries:
            market_index, market_value = (list(market) + [None, None])[:2]
            d = to_date(when)
            rec = by_date.get(d)
            if rec is not None:
                updated = replace(rec, am=am, pm=pm,
                                  market_index=market_index, market_value=market_value)
            else:
                updated = Record(date=d, am=am, pm=pm,
                                 market_index=market_index, market_value=market_value)
            by_date[d] = updated
            out.append(updated)
        if out:
            self._commit(by_date.values())
        return out

    def delete(self, record_id: str) -> None:
        remaining = [r for r in self._records if r.id != record_id]
        if len(remaining) != len(self._records):
            logger.debug("Deleted record %s", record_id)
        self._commit(remaining)

    def clear(self) -> None:
        self._commit([])

    def latest(self) -> Optional[Record]:
        return self._records[0] if self._records else None

    def get(self, when: DateLike) -> Optional[Record]:
        d = to_date(when)
        for rec in self._records:
            if rec.date == d:
                return rec
        return None

    def history_before(self, when: DateLike) -> List[Record]:
        d = to_date(when)
        return [r for r in self._records if r.date < d]

    def bulk_import(self, text: str) -> Tuple[int, int]:
        from bulk_import import import_text
        report = import_text(self, text)
        return report.imported, report.errors

    def seed_if_empty(self) -> int:
        if self._records:
            return 0
        for d, am, pm in SEED_RECORDS:
            self.add_or_replace(d, am, pm)
        logger.info("Seeded %d reference records", len(SEED_RECORDS))
        return len(SEED_RECORDS)
