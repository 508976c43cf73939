# expert_scorers.py
# Independent heuristics scoring one candidate ("00".."99") against a history slice.
# History is always newest-first. Experts never see each other's output; they are
# combined only through the weight vector.

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence

from draw_records import Record, day_name
from engine_config import EngineConfig, DEFAULT_CONFIG

CANDIDATES = [f"{i:02d}" for i in range(100)]

# digit substitution tables, each a bijection over 0-9
POWER = {"0": "5", "1": "6", "2": "7", "3": "8", "4": "9",
         "5": "0", "6": "1", "7": "2", "8": "3", "9": "4"}
NAKHAT = {"0": "6", "1": "8", "2": "4", "3": "5", "4": "2",
          "5": "3", "6": "0", "7": "9", "8": "1", "9": "7"}


class ExpertScore(NamedTuple):
    score: float
    reasons: List[str]
    tags: List[str]


def _zero() -> ExpertScore:
    return ExpertScore(0.0, [], [])


@dataclass
class ExpertContext:
    target_date: Optional[date] = None
    config: EngineConfig = DEFAULT_CONFIG
    market: Any = None  # MarketQuote-like: .index / .value strings
    cache: Dict[str, Any] = field(default_factory=dict)

    def memo(self, key: str, build: Callable[[], Any]) -> Any:
        if key not in self.cache:
            self.cache[key] = build()
        return self.cache[key]


def is_neighbor_pair(num: Optional[str]) -> bool:
    """Digits differ by exactly one, 9 and 0 wrap around."""
    if not num or len(num) != 2 or not num.isdigit():
        return False
    a, b = int(num[0]), int(num[1])
    return abs(a - b) == 1 or {a, b} == {0, 9}


def is_double(num: str) -> bool:
    return len(num) == 2 and num[0] == num[1]


def break_of(num: str) -> int:
    return (int(num[0]) + int(num[1])) % 10


def count_hits(records: Iterable[Record], num: str) -> int:
    return sum((r.am == num) + (r.pm == num) for r in records)


def session_sequence(history: Sequence[Record]) -> List[str]:
    """Outcomes as individual draws, most recent first (pm before am within a day)."""
    seq = []
    for r in history:
        seq.append(r.pm)
        seq.append(r.am)
    return seq


# --- experts -------------------------------------------------------------

def score_recency(num: str, history: Sequence[Record], ctx: ExpertContext) -> ExpertScore:
    cfg = ctx.config
    score = 0.0
    hits = 0
    for rank, r in enumerate(history[:cfg.recency_window]):
        h = (r.am == num) + (r.pm == num)
        if h:
            hits += h
            score += h / (rank + 1)
    score *= cfg.recency_multiplier
    if score > cfg.recency_multiplier * 0.5:
        return ExpertScore(score, [f"Recently strong ({hits}x in last {cfg.recency_window} draws)"], ["Recent"])
    return ExpertScore(score, [], [])


def score_day_of_week(num: str, history: Sequence[Record], ctx: ExpertContext) -> ExpertScore:
    cfg = ctx.config
    if ctx.target_date is None:
        return _zero()
    target = day_name(ctx.target_date)
    matches = ctx.memo(
        "day_matches",
        lambda: [r for r in history if r.day_of_week == target][:cfg.day_of_week_window],
    )
    count = count_hits(matches, num)
    score = count * cfg.day_of_week_multiplier
    if count >= 2:
        return ExpertScore(score, [f"Frequent on {target} ({count}x)"], ["Weekday"])
    return ExpertScore(score, [], [])


def score_seasonal(num: str, history: Sequence[Record], ctx: ExpertContext) -> ExpertScore:
    if ctx.target_date is None:
        return _zero()
    month = ctx.target_date.month
    matches = ctx.memo("month_matches", lambda: [r for r in history if r.date.month == month])
    score = count_hits(matches, num) * ctx.config.seasonal_multiplier
    if score > 2:
        return ExpertScore(score, ["Same-month pattern"], ["Seasonal"])
    return ExpertScore(score, [], [])


def score_relationship(num: str, history: Sequence[Record], ctx: ExpertContext) -> ExpertScore:
    cfg = ctx.config
    if not history:
        return _zero()
    prev = history[0]
    head, tail = num[0], num[1]
    score = 0.0
    for d in set(prev.am + prev.pm):
        if POWER[d] == head:
            score += cfg.power_bonus
        if POWER[d] == tail:
            score += cfg.power_bonus
        if NAKHAT[d] == head:
            score += cfg.nakhat_bonus
        if NAKHAT[d] == tail:
            score += cfg.nakhat_bonus

    reasons, tags = [], []
    if score > cfg.power_bonus + cfg.nakhat_bonus - 1:
        reasons.append("Nakhat/power link to previous draw")
        tags.append("Nakhat/Power")
    elif score > cfg.power_bonus:
        reasons.append("Power link to previous draw")
        tags.append("Power")

    if is_neighbor_pair(num) and (is_neighbor_pair(prev.am) or is_neighbor_pair(prev.pm)):
        score += cfg.neighbor_bonus
        reasons.append("Neighbor pair follows neighbor pair")
        tags.append("Neighbor")
    return ExpertScore(score, reasons, tags)


def _head_tail_counts(history: Sequence[Record], window: int):
    heads, tails = Counter(), Counter()
    for r in history[:window]:
        for v in (r.am, r.pm):
            heads[v[0]] += 1
            tails[v[1]] += 1
    return heads, tails


def score_trend(num: str, history: Sequence[Record], ctx: ExpertContext) -> ExpertScore:
    cfg = ctx.config
    if len(history[:cfg.trend_window]) < cfg.trend_min_records:
        return _zero()
    heads, tails = ctx.memo("head_tail", lambda: _head_tail_counts(history, cfg.trend_window))
    score = 0.0
    reasons, tags = [], []
    head_n = heads.get(num[0], 0)
    tail_n = tails.get(num[1], 0)
    if head_n >= cfg.trend_threshold:
        score += head_n * 2
        reasons.append(f"Head {num[0]} trending ({head_n}x)")
        tags.append("Head trend")
    if tail_n >= cfg.trend_threshold:
        score += tail_n * 2
        reasons.append(f"Tail {num[1]} trending ({tail_n}x)")
        tags.append("Tail trend")
    return ExpertScore(score, reasons, tags)


def _break_counts(history: Sequence[Record], window: int) -> Counter:
    breaks = Counter()
    for r in history[:window]:
        for v in (r.am, r.pm):
            breaks[break_of(v)] += 1
    return breaks


def score_break_total(num: str, history: Sequence[Record], ctx: ExpertContext) -> ExpertScore:
    cfg = ctx.config
    breaks = ctx.memo("breaks", lambda: _break_counts(history, cfg.break_window))
    b = break_of(num)
    count = breaks.get(b, 0)
    if count >= cfg.break_threshold:
        total = int(num[0]) + int(num[1])
        return ExpertScore(count * 2.0, [f"Break {b} recurring ({count}x), total {total}"], ["Break"])
    return _zero()


def _top_digits(history: Sequence[Record], cfg: EngineConfig) -> List[str]:
    counts = Counter()
    for r in history[:cfg.digit_window]:
        counts.update(r.am + r.pm)
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [d for d, c in ranked if c >= cfg.digit_min_count][:cfg.digit_top]


def score_digit_frequency(num: str, history: Sequence[Record], ctx: ExpertContext) -> ExpertScore:
    cfg = ctx.config
    top = ctx.memo("top_digits", lambda: _top_digits(history, cfg))
    matches = (num[0] in top) + (num[1] in top)
    if not matches:
        return _zero()
    return ExpertScore(matches * cfg.digit_bonus,
                       [f"Built from hot digits {', '.join(top)}"], ["Hot digit"])


def _last_seen(history: Sequence[Record]) -> Dict[str, int]:
    seen = {}
    for i, v in enumerate(session_sequence(history)):
        seen.setdefault(v, i)
    return seen


def score_gap(num: str, history: Sequence[Record], ctx: ExpertContext) -> ExpertScore:
    cfg = ctx.config
    seen = ctx.memo("last_seen", lambda: _last_seen(history))
    gap = seen.get(num, 2 * len(history))
    excess = gap - cfg.gap_baseline
    if excess <= 0:
        return _zero()
    score = min(cfg.gap_cap, excess * cfg.gap_rate)
    return ExpertScore(score, [f"Overdue: not drawn for {gap} draws"], ["Overdue"])


def _fraction_digits(x: float) -> str:
    return f"{x:.2f}".split(".")[1].rjust(2, "0")


def _to_float(s) -> Optional[float]:
    try:
        return float(str(s).replace(",", ""))
    except (TypeError, ValueError):
        return None


def market_numbers(index, value) -> Optional[tuple]:
    """(diff-tail, sum-tail) two-digit numbers from an index/value pair, or None."""
    a, b = _to_float(index), _to_float(value)
    if a is None or b is None:
        return None
    return _fraction_digits(abs(a - b)), _fraction_digits(a + b)


def score_market(num: str, history: Sequence[Record], ctx: ExpertContext) -> ExpertScore:
    source = ctx.market
    if source is None and history:
        source = history[0]
        pair = market_numbers(source.market_index, source.market_value)
    elif source is not None:
        pair = market_numbers(source.index, source.value)
    else:
        pair = None
    if pair is None:
        return _zero()
    diff_tail, sum_tail = pair
    if num == diff_tail:
        return ExpertScore(10.0, ["Market index/value difference"], ["Market"])
    if num == sum_tail:
        return ExpertScore(8.0, ["Market index/value sum"], ["Market"])
    return _zero()


# --- expert table --------------------------------------------------------

@dataclass(frozen=True)
class Expert:
    name: str
    score: Callable[[str, Sequence[Record], ExpertContext], ExpertScore]
    description: str = ""


EXPERT_TABLE: Dict[str, Expert] = {
    "recency": Expert("recency", score_recency, "inverse-rank recent frequency"),
    "relationship": Expert("relationship", score_relationship, "power/nakhat/neighbor links"),
    "trend": Expert("trend", score_trend, "recurring head/tail digits"),
    "breakTotal": Expert("breakTotal", score_break_total, "recurring digit-sum break"),
    "digitFrequency": Expert("digitFrequency", score_digit_frequency, "hot individual digits"),
    "dayOfWeek": Expert("dayOfWeek", score_day_of_week, "same-weekday frequency"),
    "gap": Expert("gap", score_gap, "overdue numbers"),
    "seasonal": Expert("seasonal", score_seasonal, "same-month frequency"),
    "market": Expert("market", score_market, "market index/value digits"),
}

DEFAULT_EXPERTS = ("recency", "relationship", "trend", "breakTotal",
                   "digitFrequency", "dayOfWeek", "gap")


def register_expert(name: str, score_fn, description: str = "") -> Expert:
    expert = Expert(name, score_fn, description)
    EXPERT_TABLE[name] = expert
    return expert


def build_registry(names: Optional[Iterable[str]] = None) -> Dict[str, Expert]:
    names = list(names) if names is not None else list(DEFAULT_EXPERTS)
    missing = [n for n in names if n not in EXPERT_TABLE]
    if missing:
        raise KeyError(f"unknown experts: {', '.join(missing)}")
    return {n: EXPERT_TABLE[n] for n in names}
