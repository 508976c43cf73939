# engine_config.py
# Tunable constants for the scoring engine plus application paths/credential.

import json
import logging
import os
from dataclasses import dataclass, asdict, fields, replace
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    # history / exclusion
    min_history: int = 5
    exclusion_window: int = 7
    exclusion_threshold: int = 2

    # experts
    recency_window: int = 15
    recency_multiplier: float = 1.5
    day_of_week_window: int = 20
    day_of_week_multiplier: float = 1.2
    seasonal_multiplier: float = 2.0
    trend_window: int = 5
    trend_min_records: int = 3
    trend_threshold: int = 2
    break_window: int = 5
    break_threshold: int = 2
    digit_window: int = 10
    digit_top: int = 3
    digit_min_count: int = 2
    digit_bonus: float = 3.0
    gap_baseline: int = 100
    gap_rate: float = 0.05
    gap_cap: float = 10.0
    power_bonus: float = 4.0
    nakhat_bonus: float = 5.0
    neighbor_bonus: float = 10.0

    # Monte Carlo refinement
    top_k: int = 20
    simulations: int = 1000
    mc_min_history: int = 50
    mc_scale: float = 50.0
    confidence_cap: int = 99
    boost_threshold: float = 95.0
    boost_score: float = 50.0

    # result shape
    high_count: int = 4
    medium_count: int = 6
    double_streak: int = 8

    # weight adaptation
    learning_rate: float = 0.05
    weight_floor: float = 0.01
    weight_ceiling: float = 0.5
    predict_threshold: float = 0.0

    def with_overrides(self, **params) -> "EngineConfig":
        known = {f.name for f in fields(self)}
        unknown = sorted(set(params) - known)
        if unknown:
            logger.warning("Ignoring unknown engine parameters: %s", ", ".join(unknown))
        return replace(self, **{k: v for k, v in params.items() if k in known})

    def to_dict(self) -> dict:
        return asdict(self)


DEFAULT_CONFIG = EngineConfig()


def load_config(path: Optional[str]) -> EngineConfig:
    """Merge a JSON object of overrides (e.g. optuna best params) onto the defaults."""
    if not path or not os.path.exists(path):
        return DEFAULT_CONFIG
    try:
        with open(path, "r", encoding="utf-8") as f:
            params = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Could not read engine config %s, using defaults: %s", path, e)
        return DEFAULT_CONFIG
    if not isinstance(params, dict):
        logger.warning("Engine config %s is not a JSON object, using defaults", path)
        return DEFAULT_CONFIG
    return DEFAULT_CONFIG.with_overrides(**params)


def save_config(config: EngineConfig, path: str, only_changed: bool = True) -> None:
    data = config.to_dict()
    if only_changed:
        defaults = DEFAULT_CONFIG.to_dict()
        data = {k: v for k, v in data.items() if defaults[k] != v}
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


@dataclass
class AppSettings:
    data_dir: str = "data"
    api_key: str = ""

    @property
    def records_path(self) -> str:
        return os.path.join(self.data_dir, "records.csv")

    @property
    def weights_path(self) -> str:
        return os.path.join(self.data_dir, "weights.json")

    @property
    def config_path(self) -> str:
        return os.path.join(self.data_dir, "engine_config.json")

    @property
    def credential_path(self) -> str:
        return os.path.join(self.data_dir, "api_key.txt")

    @classmethod
    def from_env(cls, data_dir: Optional[str] = None) -> "AppSettings":
        load_dotenv()
        return cls(
            data_dir=data_dir or os.environ.get("TWOD_DATA_DIR", "data"),
            api_key=os.environ.get("GEMINI_API_KEY", ""),
        )
