# bias_scan.py
# Chi-square checks of outcomes/digits against a uniform draw.
import numpy as np, pandas as pd
from collections import Counter
from scipy.stats import chisquare

from draw_records import sort_records
from expert_scorers import CANDIDATES

DIGITS = [str(d) for d in range(10)]


def _outcomes(records):
    return [v for r in sort_records(records) for v in (r.am, r.pm)]


def _chi2(obs: np.ndarray):
    if obs.sum() == 0:
        return {"chi2": 0.0, "pvalue": 1.0, "freq": obs, "zscore": np.zeros_like(obs)}
    exp = np.full(obs.size, obs.sum() / obs.size)
    chi_stat, p = chisquare(obs, exp)
    z = (obs - exp) / np.sqrt(exp + 1e-9)
    return {"chi2": float(chi_stat), "pvalue": float(p), "freq": obs, "zscore": z}


def outcome_uniformity(records):
    cnt = Counter(_outcomes(records))
    obs = np.array([cnt.get(n, 0) for n in CANDIDATES], dtype=float)
    return _chi2(obs)


def digit_uniformity(records):
    outs = _outcomes(records)
    heads = Counter(v[0] for v in outs)
    tails = Counter(v[1] for v in outs)
    return {
        "head": _chi2(np.array([heads.get(d, 0) for d in DIGITS], dtype=float)),
        "tail": _chi2(np.array([tails.get(d, 0) for d in DIGITS], dtype=float)),
    }


def window_chi2(records, window=100):
    # sliding window over draw days, oldest first
    chronological = list(reversed(sort_records(records)))
    res = []
    for end in range(window, len(chronological) + 1):
        win = chronological[end - window:end]
        r = outcome_uniformity(win)
        res.append((win[-1].date.isoformat(), r["chi2"], r["pvalue"]))
    return pd.DataFrame(res, columns=["end_date", "chi2", "pvalue"])


def most_deviant(records, k=5):
    """Outcomes with the largest |z| against the uniform expectation."""
    r = outcome_uniformity(records)
    order = np.argsort(-np.abs(r["zscore"]))[:k]
    return [(CANDIDATES[i], int(r["freq"][i]), float(r["zscore"][i])) for i in order]
