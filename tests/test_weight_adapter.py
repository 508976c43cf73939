from datetime import date

import pytest

from engine_config import DEFAULT_CONFIG
from expert_scorers import CANDIDATES, build_registry
from weight_adapter import adapt, auto_tune_weights, expert_verdicts
from draw_records import Record
from weight_vector import WeightVector

MONDAY = date(2026, 1, 26)


class TestAdapt:
    """Reward/penalty updates after an observed outcome."""

    def test_unchanged_when_no_expert_predicted(self, quiet_history):
        w = WeightVector.default()
        out = adapt("50", quiet_history, w, target_date=MONDAY)
        assert out is w
        assert out.to_dict() == w.to_dict()

    def test_rewards_predicting_experts(self, quiet_history):
        w = WeightVector.default()
        verdicts = expert_verdicts("12", quiet_history, build_registry(), DEFAULT_CONFIG, MONDAY)
        assert verdicts == {"recency": True, "relationship": True, "trend": True,
                            "breakTotal": False, "digitFrequency": True,
                            "dayOfWeek": False, "gap": False}

        out = adapt("12", quiet_history, w, target_date=MONDAY)
        assert out.total() == pytest.approx(1.0)
        assert out["recency"] == pytest.approx(0.20 + 0.05 / 4)
        assert out["trend"] == pytest.approx(0.15 + 0.05 / 4)
        assert out["gap"] == pytest.approx(0.10 - 0.05 / 3)
        assert out["breakTotal"] == pytest.approx(out["dayOfWeek"])

    def test_stays_normalized_under_repeated_updates(self, long_history):
        cfg = DEFAULT_CONFIG.with_overrides(learning_rate=0.3)
        w = WeightVector.default()
        history = long_history[40:]
        for num in CANDIDATES[::3]:
            w = adapt(num, history, w, cfg, target_date=MONDAY)
            assert w.total() == pytest.approx(1.0)
            assert all(v >= 0 for v in w.values.values())
            assert max(w.values.values()) <= 0.5 / (0.5 + 6 * 0.01) + 1e-9

    def test_auto_tune_uses_only_older_records(self, quiet_history):
        w = WeightVector.default()
        first_day = Record(date(2026, 1, 19), "12", "50")
        # nothing is older than the first record
        assert auto_tune_weights(first_day, quiet_history, w) is w

    def test_auto_tune_adapts_both_sessions(self, quiet_history):
        w = WeightVector.default()
        new = Record(MONDAY, "12", "50")
        out = auto_tune_weights(new, quiet_history, w)
        assert out.to_dict() == adapt("12", quiet_history, w, target_date=MONDAY).to_dict()
