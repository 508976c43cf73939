from datetime import date

import pytest

from draw_records import (Record, RecordFormatError, RecordStore, SEED_RECORDS, day_name,
                          next_draw_date, parse_date_token, sort_records, validate_entry)
from persistence import InMemorySlot


class TestDates:
    """Date parsing and weekday helpers."""

    def test_parse_iso_and_day_first(self):
        assert parse_date_token("2026-01-23") == date(2026, 1, 23)
        assert parse_date_token("23/01/2026") == date(2026, 1, 23)
        assert parse_date_token("23.1.26") == date(2026, 1, 23)

    def test_parse_rejects_impossible_dates(self):
        assert parse_date_token("2026-02-30") is None
        assert parse_date_token("yesterday") is None

    def test_day_name_is_fixed_english(self):
        assert day_name("2026-01-23") == "Friday"
        assert day_name(date(2026, 1, 19)) == "Monday"

    def test_next_draw_date_skips_weekend(self):
        assert next_draw_date("2026-01-23") == date(2026, 1, 26)
        assert next_draw_date("2026-01-21") == date(2026, 1, 22)
        assert next_draw_date("2026-01-24") == date(2026, 1, 26)


class TestValidateEntry:
    def test_accepts_two_digit_strings(self):
        assert validate_entry("2026-01-26", " 05", "99 ") == (date(2026, 1, 26), "05", "99")

    @pytest.mark.parametrize("am,pm", [("5", "10"), ("100", "10"), ("ab", "10"), ("10", "")])
    def test_rejects_bad_results(self, am, pm):
        with pytest.raises(RecordFormatError):
            validate_entry("2026-01-26", am, pm)

    def test_rejects_bad_date(self):
        with pytest.raises(RecordFormatError):
            validate_entry("26th of Jan", "10", "20")


class TestRecordStore:
    """Ordering, one-record-per-date and slot persistence."""

    def test_records_sorted_newest_first(self):
        store = RecordStore()
        store.add_or_replace("2026-01-20", "31", "76")
        store.add_or_replace("2026-01-23", "43", "91")
        store.add_or_replace("2026-01-21", "71", "68")
        assert [r.date.day for r in store.records] == [23, 21, 20]
        assert store.latest().am == "43"

    def test_add_or_replace_is_idempotent(self):
        store = RecordStore()
        store.add_or_replace("2026-01-23", "43", "91")
        store.add_or_replace("2026-01-23", "43", "91")
        assert len(store) == 1

    def test_replace_keeps_identity(self):
        store = RecordStore()
        first = store.add_or_replace("2026-01-23", "43", "91")
        second = store.add_or_replace("2026-01-23", "12", "34")
        assert len(store) == 1
        assert second.id == first.id
        assert store.get("2026-01-23").outcomes == ("12", "34")

    def test_delete_missing_id_is_noop(self):
        store = RecordStore()
        store.add_or_replace("2026-01-23", "43", "91")
        store.delete("no-such-id")
        assert len(store) == 1

    def test_delete_and_clear(self):
        store = RecordStore()
        rec = store.add_or_replace("2026-01-23", "43", "91")
        store.add_or_replace("2026-01-22", "42", "44")
        store.delete(rec.id)
        assert [r.am for r in store] == ["42"]
        store.clear()
        assert len(store) == 0
        assert store.latest() is None

    def test_every_mutation_saves_whole_collection(self):
        slot = InMemorySlot()
        store = RecordStore(slot)
        store.add_or_replace("2026-01-23", "43", "91")
        store.add_or_replace("2026-01-22", "42", "44")
        store.clear()
        assert slot.saves == 3
        assert slot.value == []

    def test_loads_from_slot(self):
        slot = InMemorySlot([Record(date(2026, 1, 20), "31", "76"),
                             Record(date(2026, 1, 22), "42", "44")])
        store = RecordStore(slot)
        assert store.latest().date == date(2026, 1, 22)

    def test_history_before(self, seed_history):
        store = RecordStore(InMemorySlot(seed_history))
        before = store.history_before("2026-01-21")
        assert [r.date.day for r in before] == [20, 19, 16, 15, 14]

    def test_seed_if_empty(self):
        store = RecordStore()
        assert store.seed_if_empty() == len(SEED_RECORDS)
        assert store.seed_if_empty() == 0
        assert store.latest().outcomes == ("43", "91")


def test_sort_records_returns_tuple(seed_history):
    out = sort_records(reversed(seed_history))
    assert isinstance(out, tuple)
    assert out[0].date > out[-1].date


def test_record_to_dict_carries_weekday():
    rec = Record(date(2026, 1, 23), "43", "91", id="abc")
    d = rec.to_dict()
    assert d["day_of_week"] == "Friday"
    assert d["id"] == "abc"
    assert d["market_index"] is None


class TestBatchedUpserts:
    def test_add_many_saves_once(self):
        slot = InMemorySlot()
        store = RecordStore(slot)
        kept = store.add_or_replace("2026-01-22", "00", "00")
        out = store.add_many([("2026-01-23", "43", "91", "1,314.39", "50,901.86"),
                              ("2026-01-22", "42", "44")])
        assert slot.saves == 2
        assert len(out) == 2
        assert store.get("2026-01-22").id == kept.id
        assert store.get("2026-01-22").outcomes == ("42", "44")
        assert store.latest().market_index == "1,314.39"

    def test_later_entry_for_same_date_wins(self):
        store = RecordStore()
        store.add_many([("2026-01-23", "43", "91"), ("2026-01-23", "11", "22")])
        assert len(store) == 1
        assert store.latest().outcomes == ("11", "22")

    def test_empty_batch_does_not_save(self):
        slot = InMemorySlot()
        RecordStore(slot).add_many([])
        assert slot.saves == 0

    def test_duplicate_dates_in_slot_collapse(self):
        slot = InMemorySlot([Record(date(2026, 1, 23), "43", "91", id="a"),
                             Record(date(2026, 1, 23), "11", "22", id="b")])
        store = RecordStore(slot)
        assert len(store) == 1
        assert store.latest().id == "b"
