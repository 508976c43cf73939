# bulk_import.py
# Tolerant scanner for history pasted from mixed-format reports.
#
# Lines are classified in priority order:
#   date  ->  time  ->  labeled market value + number line  ->  2-digit result  ->  error
# Drafts are keyed by date; only drafts with both sessions filled are committed.

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from draw_records import parse_date_token, ISO_DATE_RE, DMY_DATE_RE, TWO_DIGIT_RE

logger = logging.getLogger(__name__)

NON_ASCII_RE = re.compile(r"[^\x00-\x7F]")
TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?\s*([AaPp]\.?[Mm]\.?)?$")
LABELED_NUMBER_RE = re.compile(r"^[A-Za-z][A-Za-z .]*?\s*[:=\-]?\s*([\d,]+\.\d+)$")
NUMBER_LINE_RE = re.compile(r"^[\d,]+\.\d+$")

# session times that mark the morning draw
MORNING_MARKERS = ("11:00", "12:00", "12:01", "00:00")


@dataclass
class Draft:
    date: date
    am: Optional[str] = None
    pm: Optional[str] = None
    market_index: Optional[str] = None
    market_value: Optional[str] = None

    @property
    def complete(self) -> bool:
        return bool(self.am) and bool(self.pm)


@dataclass
class ImportReport:
    imported: int = 0
    errors: int = 0
    messages: List[str] = field(default_factory=list)
    drafts: List[Draft] = field(default_factory=list)

    def error(self, message: str) -> None:
        self.errors += 1
        self.messages.append(message)
        logger.debug(message)

    def __iter__(self):
        # (imported, errors) unpacking
        yield self.imported
        yield self.errors


def clean_lines(text: str) -> List[str]:
    s = NON_ASCII_RE.sub("", text or "")
    s = s.replace("\r\n", "\n").replace("\r", "\n")
    return [ln.strip() for ln in s.split("\n") if ln.strip()]


def is_date_line(line: str) -> bool:
    return bool(ISO_DATE_RE.match(line) or DMY_DATE_RE.match(line))


def is_time_line(line: str) -> bool:
    return bool(TIME_RE.match(line))


def is_morning(time_token: str) -> bool:
    m = TIME_RE.match(time_token)
    if not m:
        return False
    hhmm = f"{int(m.group(1)):02d}:{m.group(2)}"
    if hhmm in MORNING_MARKERS:
        return True
    suffix = (m.group(3) or "").replace(".", "").upper()
    return suffix == "AM"


def parse_import_text(text: str) -> ImportReport:
    """Scan ``text`` into drafts without touching any store."""
    report = ImportReport()
    drafts: Dict[date, Draft] = {}
    lines = clean_lines(text)

    current: Optional[Draft] = None
    last_time: Optional[str] = None
    pending_index: Optional[str] = None
    pending_value: Optional[str] = None

    i = 0
    while i < len(lines):
        line = lines[i]
        lineno = i + 1
        i += 1

        if is_date_line(line):
            parsed = parse_date_token(line)
            last_time = None
            pending_index = pending_value = None
            if parsed is None:
                current = None
                report.error(f"Line {lineno}: {line!r} - invalid date")
                continue
            current = drafts.setdefault(parsed, Draft(date=parsed))
            continue

        if is_time_line(line):
            last_time = line
            continue

        m = LABELED_NUMBER_RE.match(line)
        if m and i < len(lines) and NUMBER_LINE_RE.match(lines[i]):
            pending_index = m.group(1)
            pending_value = lines[i]
            i += 1
            continue

        if TWO_DIGIT_RE.match(line):
            if current is None:
                report.error(f"Line {lineno}: {line!r} - result found before any date")
                continue
            if last_time is not None:
                if is_morning(last_time):
                    current.am = line
                else:
                    current.pm = line
            elif not current.am:
                current.am = line
            elif not current.pm:
                current.pm = line
            else:
                current.pm = line
            if pending_index is not None:
                current.market_index = pending_index
                current.market_value = pending_value
                pending_index = pending_value = None
            continue

        report.error(f"Line {lineno}: {line!r} - unrecognized line")

    for d, draft in drafts.items():
        if draft.complete:
            report.drafts.append(draft)
        else:
            report.error(f"Date {d.isoformat()}: morning or evening result missing")
    return report


def import_text(store, text: str) -> ImportReport:
    """Parse ``text`` and commit every complete draft in one ``store.add_many`` call."""
    report = parse_import_text(text)
    committed = store.add_many((d.date, d.am, d.pm, d.market_index, d.market_value)
                               for d in report.drafts)
    report.imported = len(committed)
    logger.info("Bulk import: %d imported, %d errors", report.imported, report.errors)
    return report
