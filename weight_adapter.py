# weight_adapter.py
# Online self-tuning: credit the experts that would have scored a realized outcome.

import logging
from datetime import date
from typing import Dict, Optional, Sequence

from draw_records import Record, next_draw_date, sort_records, to_date
from engine_config import EngineConfig, DEFAULT_CONFIG
from expert_scorers import ExpertContext, build_registry
from weight_vector import WeightVector

logger = logging.getLogger(__name__)


def expert_verdicts(outcome: str, history: Sequence[Record], registry,
                    config: EngineConfig = DEFAULT_CONFIG,
                    target_date: Optional[date] = None) -> Dict[str, bool]:
    """Which experts scored ``outcome`` above the threshold using only ``history``."""
    history = sort_records(history)
    if target_date is None and history:
        target_date = next_draw_date(history[0].date)
    ctx = ExpertContext(target_date=to_date(target_date) if target_date else None, config=config)
    return {name: expert.score(outcome, history, ctx).score > config.predict_threshold
            for name, expert in registry.items()}


def adapt(outcome: str, history_before: Sequence[Record], weights: WeightVector,
          config: EngineConfig = DEFAULT_CONFIG, registry=None,
          target_date: Optional[date] = None) -> WeightVector:
    """
    Reward the experts that "predicted" ``outcome`` and penalize the rest.

    The learning rate is split evenly inside each group so reward mass equals
    penalty mass. When no expert predicted it the weights are returned as-is.
    The result is clamped to [weight_floor, weight_ceiling] and renormalized.
    """
    if registry is None:
        registry = build_registry(weights.keys())
    verdicts = expert_verdicts(outcome, history_before, registry, config, target_date)
    total = len(verdicts)
    correct = sum(verdicts.values())
    if correct == 0:
        logger.debug("No expert predicted %s; weights unchanged", outcome)
        return weights

    reward = config.learning_rate / correct
    penalty = config.learning_rate / (total - correct) if total > correct else 0.0
    updated = dict(weights.values)
    for name, hit in verdicts.items():
        updated[name] = updated.get(name, 0.0) + (reward if hit else -penalty)

    new_weights = WeightVector(updated).clamped(config.weight_floor, config.weight_ceiling)
    logger.debug("Adapted on %s (%d/%d experts correct): %s",
                 outcome, correct, total, new_weights.to_dict())
    return new_weights


def auto_tune_weights(new_record: Record, history: Sequence[Record], weights: WeightVector,
                      config: EngineConfig = DEFAULT_CONFIG, registry=None) -> WeightVector:
    """One adaptation per session: morning then evening, both against the prior history."""
    prior = [r for r in history if r.date < new_record.date]
    if not prior:
        return weights
    for outcome in new_record.outcomes:
        weights = adapt(outcome, prior, weights, config, registry, target_date=new_record.date)
    return weights
