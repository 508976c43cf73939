import pytest

from backtest import monthly_accuracy, run_backtest


class TestBacktest:
    def test_walk_forward_counts(self, long_history):
        report = run_backtest(long_history, days=20, seed=1)
        assert report.total == 20
        assert 0 <= report.hits <= 20
        assert report.accuracy == pytest.approx(round(report.hits / 20 * 100, 1))
        assert int(report.monthly["total"].sum()) == 20
        assert all(len(r["picks"].split()) == 10 for r in report.rows)

    def test_days_without_enough_prior_history_are_skipped(self, five_day_history):
        report = run_backtest(five_day_history, days=100)
        assert report.total == 0
        assert report.accuracy == 0.0
        assert report.monthly.empty

    def test_adaptive_updates_weights(self, long_history):
        report = run_backtest(long_history, days=15, adaptive=True, seed=1)
        assert report.weights.total() == pytest.approx(1.0)
        assert report.weights.to_dict() != run_backtest(long_history, days=15).weights.to_dict()


def test_monthly_accuracy():
    rows = [{"date": "2026-01-30", "hit": 1}, {"date": "2026-01-29", "hit": 0},
            {"date": "2026-02-02", "hit": 1}]
    df = monthly_accuracy(rows)
    assert df["month"].tolist() == ["2026-01", "2026-02"]
    assert df["accuracy"].tolist() == [50.0, 100.0]
