# persistence.py
# Injected load/save slots for records, weights and the API credential.
# Every slot follows the same contract: load() -> value | None, save(value) -> None.

import json
import logging
import os
from typing import Any, List, Optional

import pandas as pd

from draw_records import Record, to_date, is_two_digit

logger = logging.getLogger(__name__)

RECORD_COLUMNS = ["id", "date", "am", "pm", "day_of_week", "market_index", "market_value"]


class InMemorySlot:
    def __init__(self, value: Any = None):
        self.value = value
        self.saves = 0

    def load(self):
        return self.value

    def save(self, value) -> None:
        self.value = value
        self.saves += 1


def _ensure_parent(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def _opt(v) -> Optional[str]:
    if v is None or (isinstance(v, float) and pd.isna(v)):
        return None
    s = str(v).strip()
    return s or None


def _result(v) -> str:
    # spreadsheets drop the leading zero of "05"
    s = _opt(v) or ""
    return s.zfill(2) if s.isdigit() and len(s) == 1 else s


class CsvRecordsSlot:
    """Records as a CSV table (utf-8-sig, one row per date)."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[List[Record]]:
        if not os.path.exists(self.path):
            return None
        try:
            df = pd.read_csv(self.path, encoding="utf-8-sig", dtype=str, keep_default_na=False)
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logger.error("Records file %s is corrupted, starting empty: %s", self.path, e)
            return None

        records = []
        for _, row in df.iterrows():
            try:
                d = to_date(row["date"])
            except (KeyError, ValueError):
                logger.warning("Skipping row with bad date: %r", dict(row))
                continue
            am, pm = _result(row.get("am")), _result(row.get("pm"))
            if not (is_two_digit(am) and is_two_digit(pm)):
                logger.warning("Skipping %s: bad results %r/%r", d, am, pm)
                continue
            kwargs = {}
            if _opt(row.get("id")):
                kwargs["id"] = _opt(row.get("id"))
            records.append(Record(date=d, am=am, pm=pm,
                                  market_index=_opt(row.get("market_index")),
                                  market_value=_opt(row.get("market_value")),
                                  **kwargs))
        return records

    def save(self, records: List[Record]) -> None:
        _ensure_parent(self.path)
        df = pd.DataFrame([r.to_dict() for r in records], columns=RECORD_COLUMNS)
        df.to_csv(self.path, index=False, encoding="utf-8-sig")


class JsonSlot:
    """Any JSON-serialisable value, e.g. the weight vector as a dict."""

    def __init__(self, path: str):
        self.path = path

    def load(self):
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Could not read %s, ignoring it: %s", self.path, e)
            return None

    def save(self, value) -> None:
        _ensure_parent(self.path)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(value, f, ensure_ascii=False, indent=2)


class CredentialSlot:
    """API key: environment value first, then a plain-text file."""

    def __init__(self, path: Optional[str] = None, env_value: str = ""):
        self.path = path
        self.env_value = env_value

    def load(self) -> Optional[str]:
        if self.env_value:
            return self.env_value
        if self.path and os.path.exists(self.path):
            with open(self.path, "r", encoding="utf-8") as f:
                key = f.read().strip()
            return key or None
        return None

    def save(self, value: str) -> None:
        if not self.path:
            raise ValueError("credential slot has no file path")
        _ensure_parent(self.path)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(value.strip())
