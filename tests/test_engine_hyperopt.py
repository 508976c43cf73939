import optuna

from engine_config import DEFAULT_CONFIG, load_config
from engine_hyperopt import suggest_params, tune_engine_config


def test_suggest_params_are_engine_fields():
    trial = optuna.trial.FixedTrial({"exclusion_window": 5, "exclusion_threshold": 3,
                                     "learning_rate": 0.1, "top_k": 15, "gap_baseline": 60})
    params = suggest_params(trial)
    cfg = DEFAULT_CONFIG.with_overrides(**params)
    assert cfg.exclusion_window == 5
    assert cfg.gap_baseline == 60


def test_tune_writes_config(long_history, tmp_path):
    out = str(tmp_path / "engine_config.json")
    config, best = tune_engine_config(long_history[:20], n_trials=2, days=3, seed=0, out_path=out)
    assert set(best) == {"exclusion_window", "exclusion_threshold", "learning_rate",
                         "top_k", "gap_baseline"}
    assert config.top_k == best["top_k"]
    assert load_config(out).exclusion_window == best["exclusion_window"]
