import optuna
import json
import logging

from backtest import run_backtest
from engine_config import DEFAULT_CONFIG, save_config
from weight_vector import WeightVector

logger = logging.getLogger(__name__)


def suggest_params(trial):
    return {
        "exclusion_window": trial.suggest_int("exclusion_window", 3, 10),
        "exclusion_threshold": trial.suggest_int("exclusion_threshold", 2, 3),
        "learning_rate": trial.suggest_float("learning_rate", 0.01, 0.15),
        "top_k": trial.suggest_int("top_k", 10, 40),
        "gap_baseline": trial.suggest_int("gap_baseline", 40, 160),
    }


def make_objective(history, days=60, base_config=DEFAULT_CONFIG, weights=None, seed=42):
    def objective(trial):
        config = base_config.with_overrides(**suggest_params(trial))
        report = run_backtest(history, weights, days=days, config=config,
                              adaptive=True, seed=seed)
        trial.set_user_attr("hits", report.hits)
        trial.set_user_attr("total", report.total)
        return report.accuracy
    return objective


def tune_engine_config(history, n_trials=25, days=60, seed=42, base_config=DEFAULT_CONFIG,
                       weights=None, out_path=None):
    """Search engine constants by adaptive backtest accuracy; returns (config, best_params)."""
    weights = weights or WeightVector.default()
    study = optuna.create_study(direction="maximize",
                                sampler=optuna.samplers.TPESampler(seed=seed))
    study.optimize(make_objective(history, days, base_config, weights, seed), n_trials=n_trials)
    logger.info("Best params: %s (accuracy %.1f%%)",
                json.dumps(study.best_params), study.best_value)
    best = base_config.with_overrides(**study.best_params)
    if out_path:
        save_config(best, out_path)
        logger.info("Saved tuned engine config to %s", out_path)
    return best, study.best_params
