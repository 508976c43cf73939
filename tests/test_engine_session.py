import pytest

from draw_records import RecordFormatError
from engine_config import AppSettings
from engine_session import EngineSession
from weight_vector import WeightVector


@pytest.fixture
def session():
    s = EngineSession.in_memory()
    s.store.seed_if_empty()
    return s


class TestRecordResult:
    """Commit, then adapt weights against the prior history."""

    def test_adapts_and_persists_once(self, session):
        before = session.weights
        record = session.record_result("2026-01-26", "12", "87")
        assert record.day_of_week == "Monday"
        assert len(session.store) == 9
        assert session.weights is not before
        assert session.weights.total() == pytest.approx(1.0)
        assert session.weight_slot.saves == 1
        assert session.weight_slot.value == session.weights.to_dict()

    def test_no_adapt_flag(self, session):
        before = session.weights
        session.record_result("2026-01-26", "12", "87", adapt=False)
        assert session.weights is before
        assert session.weight_slot.saves == 0

    def test_bad_entry_leaves_store_untouched(self, session):
        with pytest.raises(RecordFormatError):
            session.record_result("2026-01-26", "1", "87")
        assert len(session.store) == 8


class TestSessionPredictions:
    def test_predict_uses_session_weights(self, session):
        custom = WeightVector.from_dict({"recency": 0.5}, floor=0.01, ceiling=0.5)
        session.set_weights(custom)
        result = session.predict(seed=1)
        assert result.meta["weights"] == custom.to_dict()
        assert len(result.high_confidence) == 4

    def test_reset_weights(self, session):
        session.set_weights(WeightVector.from_dict({"gap": 0.5}))
        assert session.reset_weights().to_dict() == WeightVector.default().to_dict()

    def test_simulate(self, session):
        result = session.simulate("43", "")
        assert result.high_confidence[0].num == "91"

    def test_extra_expert_gets_weight(self):
        s = EngineSession.in_memory(experts=["recency", "gap", "seasonal"])
        assert set(s.weights.keys()) == {"recency", "gap", "seasonal"}
        assert s.weights.total() == pytest.approx(1.0)


def test_from_settings_round_trip(tmp_path):
    settings = AppSettings(data_dir=str(tmp_path), api_key="")
    s = EngineSession.from_settings(settings)
    s.store.seed_if_empty()
    s.record_result("2026-01-26", "12", "87")

    again = EngineSession.from_settings(settings)
    assert len(again.store) == 9
    for name, value in s.weights.to_dict().items():
        assert again.weights[name] == pytest.approx(value, abs=1e-5)
    assert again.api_key() is None


class TestReentry:
    """Re-entering a stored day is not a new observation."""

    def test_identical_reentry_keeps_weights(self, session):
        session.record_result("2026-01-26", "12", "87")
        after_first = session.weights
        session.record_result("2026-01-26", "12", "87", market_index="1,314.39",
                              market_value="50,901.86")
        assert session.weights is after_first
        assert session.weight_slot.saves == 1
        assert session.store.get("2026-01-26").market_index == "1,314.39"

    def test_correction_adapts_on_new_values(self, session):
        session.record_result("2026-01-26", "50", "50")
        first = session.weights
        session.record_result("2026-01-26", "12", "87")
        assert session.weights is not first
        assert session.store.get("2026-01-26").outcomes == ("12", "87")
        assert len(session.store) == 9
