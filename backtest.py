"""
backtest.py
-----------
Walk-forward evaluation: each of the last ``days`` records is predicted from the
records strictly older than it. A day is a hit when its morning or evening
result lands in the high/medium picks.

Usage:
    report = run_backtest(store.records, weights, days=100)
    print(report.accuracy)
    print(report.monthly)
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from draw_records import Record, sort_records
from engine_config import EngineConfig, DEFAULT_CONFIG
from expert_scorers import build_registry
from prediction_engine import predict
from weight_adapter import auto_tune_weights
from weight_vector import WeightVector

logger = logging.getLogger(__name__)

MONTHLY_COLUMNS = ["month", "hits", "total", "accuracy"]


@dataclass
class BacktestReport:
    hits: int
    total: int
    accuracy: float
    monthly: pd.DataFrame
    weights: Optional[WeightVector] = None
    rows: List[dict] = field(default_factory=list)


def monthly_accuracy(rows: List[dict]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame(columns=MONTHLY_COLUMNS)
    df = pd.DataFrame(rows)
    df["month"] = pd.to_datetime(df["date"]).dt.strftime("%Y-%m")
    out = df.groupby("month", sort=True)["hit"].agg(hits="sum", total="count").reset_index()
    out["hits"] = out["hits"].astype(int)
    out["accuracy"] = (out["hits"] / out["total"] * 100).round(1)
    return out[MONTHLY_COLUMNS]


def run_backtest(history: Sequence[Record], weights: Optional[WeightVector] = None,
                 days: int = 100, config: EngineConfig = DEFAULT_CONFIG,
                 adaptive: bool = False, seed: Optional[int] = 42,
                 registry=None) -> BacktestReport:
    history = sort_records(history)
    registry = registry or build_registry(weights.keys() if weights is not None else None)
    weights = weights or WeightVector.default(registry.keys())
    rng = np.random.default_rng(seed)

    chronological = list(reversed(history))
    start = max(0, len(chronological) - days)
    rows = []
    for i in range(start, len(chronological)):
        target = chronological[i]
        prior = chronological[:i][::-1]
        if len(prior) < config.min_history:
            continue
        result = predict(prior, weights, config, target_date=target.date,
                         registry=registry, rng=rng)
        picks = set(result.top_numbers())
        hit = target.am in picks or target.pm in picks
        rows.append({"date": target.date.isoformat(), "am": target.am, "pm": target.pm,
                     "hit": int(hit), "picks": " ".join(result.top_numbers())})
        if adaptive:
            weights = auto_tune_weights(target, prior, weights, config, registry)

    hits = sum(r["hit"] for r in rows)
    total = len(rows)
    accuracy = round(hits / total * 100, 1) if total else 0.0
    logger.info("Backtest: %d/%d days hit (%.1f%%)", hits, total, accuracy)
    return BacktestReport(hits=hits, total=total, accuracy=accuracy,
                          monthly=monthly_accuracy(rows), weights=weights, rows=rows)
