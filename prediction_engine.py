# prediction_engine.py
# Weighted ensemble over the 100 two-digit candidates with Monte Carlo refinement.

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from draw_records import Record, is_two_digit, next_draw_date, sort_records, to_date
from engine_config import EngineConfig, DEFAULT_CONFIG
from expert_scorers import (CANDIDATES, ExpertContext, build_registry, count_hits,
                            is_double)
from weight_vector import WeightVector

logger = logging.getLogger(__name__)


@dataclass
class ScoredNumber:
    num: str
    score: float
    confidence: int = 0
    tags: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)
    breakdown: Dict[str, float] = field(default_factory=dict)
    is_excluded: bool = False

    def to_dict(self) -> dict:
        return {
            "num": self.num,
            "score": round(self.score, 4),
            "confidence": self.confidence,
            "tags": list(self.tags),
            "reasons": list(self.reasons),
        }


@dataclass
class PredictionResult:
    high_confidence: List[ScoredNumber]
    medium_confidence: List[ScoredNumber]
    excluded: List[str]
    strongest_head: str
    strongest_tail: str
    insights: List[str]
    is_double_risk: bool
    meta: Dict[str, Any]
    ranked: List[ScoredNumber] = field(default_factory=list)
    fused_picks: List[str] = field(default_factory=list)
    external: Any = None

    @classmethod
    def insufficient(cls, weights: WeightVector, config: EngineConfig,
                     analyzed: int = 0) -> "PredictionResult":
        return cls(
            high_confidence=[], medium_confidence=[], excluded=[],
            strongest_head="-", strongest_tail="-",
            insights=[f"Not enough data to predict (need at least {config.min_history} records, have {analyzed})"],
            is_double_risk=False,
            meta={"analyzed_count": analyzed, "weights": weights.to_dict(), "simulations_run": 0},
        )

    @property
    def is_empty(self) -> bool:
        return not self.high_confidence and not self.medium_confidence

    def top_numbers(self) -> List[str]:
        return [c.num for c in self.high_confidence + self.medium_confidence]

    def to_dict(self) -> dict:
        return {
            "high_confidence": [c.to_dict() for c in self.high_confidence],
            "medium_confidence": [c.to_dict() for c in self.medium_confidence],
            "excluded": list(self.excluded),
            "strongest_head": self.strongest_head,
            "strongest_tail": self.strongest_tail,
            "insights": list(self.insights),
            "is_double_risk": self.is_double_risk,
            "fused_picks": list(self.fused_picks),
            "meta": dict(self.meta),
        }


def frequent_numbers(records: Sequence[Record], threshold: int) -> set:
    counts: Dict[str, int] = {}
    for r in records:
        counts[r.am] = counts.get(r.am, 0) + 1
        counts[r.pm] = counts.get(r.pm, 0) + 1
    return {n for n, c in counts.items() if c >= threshold}


def check_double_risk(history: Sequence[Record], streak: int) -> bool:
    gap = 0
    for r in history:
        if is_double(r.am) or is_double(r.pm):
            break
        gap += 1
    return gap > streak


def monte_carlo_confidence(am: np.ndarray, pm: np.ndarray, num: str,
                           rng: np.random.Generator, config: EngineConfig) -> float:
    """
    Bootstrap hit rate of ``num`` over resampled history, scaled by ``mc_scale``
    and capped at ``confidence_cap``. Heuristic smoothing, not a probability.
    """
    n = len(am)
    if n < config.mc_min_history:
        return 50.0
    idx = rng.integers(0, n, size=config.simulations)
    wins = int(np.count_nonzero((am[idx] == num) | (pm[idx] == num)))
    pct = wins / config.simulations * 100.0 * config.mc_scale
    return float(min(config.confidence_cap, max(0.0, pct)))


def _resolve(weights: Optional[WeightVector], registry, config: EngineConfig):
    if registry is None:
        registry = build_registry(weights.keys() if weights is not None else None)
    if weights is None:
        weights = WeightVector.default(registry.keys())
    return weights, registry


def _rng(rng: Optional[np.random.Generator], seed: Optional[int]) -> np.random.Generator:
    if rng is not None:
        return rng
    return np.random.default_rng(seed)


def score_candidate(num: str, history: Sequence[Record], weights: WeightVector,
                    registry, ctx: ExpertContext) -> ScoredNumber:
    raw = 0.0
    reasons: List[str] = []
    tags: List[str] = []
    breakdown = {}
    for name, expert in registry.items():
        res = expert.score(num, history, ctx)
        breakdown[name] = res.score
        raw += res.score * weights.get(name, 0.0)
        reasons.extend(res.reasons)
        tags.extend(res.tags)
    return ScoredNumber(num=num, score=raw, tags=list(dict.fromkeys(tags)),
                        reasons=list(dict.fromkeys(reasons)), breakdown=breakdown)


def predict(history: Sequence[Record], weights: Optional[WeightVector] = None,
            config: EngineConfig = DEFAULT_CONFIG, target_date: Optional[date] = None,
            registry=None, market=None, rng: Optional[np.random.Generator] = None,
            seed: Optional[int] = None) -> PredictionResult:
    weights, registry = _resolve(weights, registry, config)
    history = sort_records(history)
    if len(history) < config.min_history:
        return PredictionResult.insufficient(weights, config, len(history))

    if market is not None and getattr(market, "is_stale", None) and market.is_stale():
        logger.warning("Market quote from %s is stale, ignoring it", market.fetched_at)
        market = None

    target = to_date(target_date) if target_date is not None else next_draw_date(history[0].date)
    ctx = ExpertContext(target_date=target, config=config, market=market)

    # 1. numbers that just repeated are suppressed
    frequent = frequent_numbers(history[:config.exclusion_window], config.exclusion_threshold)
    excluded = [n for n in CANDIDATES if n in frequent]

    # 2. weighted ensemble
    candidates = [score_candidate(n, history, weights, registry, ctx)
                  for n in CANDIDATES if n not in frequent]

    # 3-4. Monte Carlo refinement of the top-K
    candidates.sort(key=lambda c: c.score, reverse=True)
    gen = _rng(rng, seed)
    am = np.array([r.am for r in history])
    pm = np.array([r.pm for r in history])
    for cand in candidates[:config.top_k]:
        sim = monte_carlo_confidence(am, pm, cand.num, gen, config)
        cand.confidence = int(round(sim))
        if sim > config.boost_threshold:
            cand.tags.insert(0, "Sim 95%+")
            cand.reasons.insert(0, "Confirmed by bootstrap simulation (95%+)")
            cand.score += config.boost_score

    # 5. final ranking
    candidates.sort(key=lambda c: c.score, reverse=True)
    high = candidates[:config.high_count]
    medium = candidates[config.high_count:config.high_count + config.medium_count]
    head, tail = (candidates[0].num[0], candidates[0].num[1]) if candidates else ("-", "-")

    is_double_risk = check_double_risk(history, config.double_streak)
    insights = [
        f"Experts: {', '.join(registry)}",
        f"Simulation: {config.simulations} trials per top-{config.top_k} candidate",
        f"Excluded {len(excluded)} numbers repeated in the last {config.exclusion_window} draws",
    ]
    if is_double_risk:
        insights.append(f"No double for more than {config.double_streak} days; doubles are due")
    if "market" in registry and market is None and not (history[0].market_index and history[0].market_value):
        insights.append("Market data unavailable; market expert contributed nothing")

    return PredictionResult(
        high_confidence=high,
        medium_confidence=medium,
        excluded=excluded,
        strongest_head=head,
        strongest_tail=tail,
        insights=insights,
        is_double_risk=is_double_risk,
        meta={
            "analyzed_count": len(history),
            "weights": weights.to_dict(),
            "simulations_run": config.simulations,
            "target_date": target.isoformat(),
            "experts": list(registry),
        },
        ranked=candidates,
    )


def predict_pm_given_am(am: str, history: Sequence[Record],
                        weights: Optional[WeightVector] = None,
                        config: EngineConfig = DEFAULT_CONFIG) -> PredictionResult:
    """Evening forecast from what followed the same morning result in the past."""
    weights = weights or WeightVector.default()
    history = sort_records(history)
    matches = [r for r in history if r.am == am]
    followed: Dict[str, int] = {}
    for r in matches:
        followed[r.pm] = followed.get(r.pm, 0) + 1
    recent = history[:config.recency_window]

    candidates = []
    for num in CANDIDATES:
        score = 0.0
        reasons, tags = [], []
        n = followed.get(num, 0)
        if n:
            score += n * 15
            reasons.append(f"Came in the evening {n}x after morning {am}")
            tags.append("History")
        score += count_hits(recent, num) * 0.5
        if score > 0:
            candidates.append(ScoredNumber(num=num, score=score, tags=tags, reasons=reasons))

    candidates.sort(key=lambda c: c.score, reverse=True)
    for c in candidates:
        c.confidence = min(config.confidence_cap, int(round(c.score * 5)))
    head, tail = (candidates[0].num[0], candidates[0].num[1]) if candidates else ("-", "-")
    return PredictionResult(
        high_confidence=candidates[:config.high_count],
        medium_confidence=candidates[config.high_count:config.high_count + config.medium_count],
        excluded=[],
        strongest_head=head,
        strongest_tail=tail,
        insights=[f"Based on {len(matches)} past days with morning {am}",
                  "Pattern matching on morning/evening pairs"],
        is_double_risk=False,
        meta={"analyzed_count": len(matches), "weights": weights.to_dict(), "simulations_run": 0},
        ranked=candidates,
    )


def run_scenario(am: str, pm: str, history: Sequence[Record],
                 weights: Optional[WeightVector] = None,
                 config: EngineConfig = DEFAULT_CONFIG, **kwargs) -> PredictionResult:
    """What-if: morning only -> evening forecast; otherwise forecast the day after a hypothetical draw."""
    am = (am or "").strip()
    pm = (pm or "").strip()
    if is_two_digit(am) and not is_two_digit(pm):
        return predict_pm_given_am(am, history, weights, config)
    history = sort_records(history)
    when = next_draw_date(history[0].date) if history else date.today()
    scenario = Record(date=when, am=am if is_two_digit(am) else "00",
                      pm=pm if is_two_digit(pm) else "00", id="scenario")
    return predict([scenario, *history], weights, config, **kwargs)


def fuse_picks(local: Sequence[str], external: Sequence[str], cap: int = 10) -> List[str]:
    """Intersection first (local order), then external-only, then local-only."""
    ext = [p for p in external if is_two_digit(p)]
    ext_set = set(ext)
    local_set = set(local)
    ordered = [p for p in local if p in ext_set]
    ordered += [p for p in ext if p not in local_set]
    ordered += [p for p in local if p not in ext_set]
    return list(dict.fromkeys(ordered))[:cap]


def predict_with_external(history: Sequence[Record], source: Optional[Callable] = None,
                          weights: Optional[WeightVector] = None,
                          config: EngineConfig = DEFAULT_CONFIG, **kwargs) -> PredictionResult:
    """Local prediction fused with an optional generative-model source."""
    result = predict(history, weights, config, **kwargs)
    if result.is_empty:
        return result
    external = None
    if source is not None:
        external = source(sort_records(history))
    local = [c.num for c in result.ranked[:10]]
    if external is None:
        result.meta["external"] = "unavailable"
        result.insights.append("External model unavailable; using local experts only")
        result.fused_picks = local
        return result
    result.external = external
    result.meta["external"] = "ok"
    result.fused_picks = fuse_picks(local, external.top_picks)
    if external.analysis_summary:
        result.insights.append(f"External model: {external.analysis_summary}")
    return result
