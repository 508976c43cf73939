#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
twod_cli.py
-----------
Command line for the record store and the adaptive prediction engine.

Examples:
    twod seed
    twod add 2026-01-26 12 87
    twod import pasted.txt
    twod predict --external
    twod simulate --am 43
    twod backtest --days 100 --adaptive
    twod train --save
    twod tune --trials 25
"""
import argparse
import json
import logging
import sys

from draw_records import RecordFormatError
from engine_config import AppSettings

logger = logging.getLogger("twod")


def _print_result(result, as_json=False):
    if as_json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return
    print("=== High confidence ===")
    for c in result.high_confidence:
        why = f"  ({c.reasons[0]})" if c.reasons else ""
        print(f"  {c.num}  score={c.score:.2f}  conf={c.confidence}%{why}")
    print("=== Medium confidence ===")
    print("  " + " ".join(c.num for c in result.medium_confidence))
    if result.fused_picks:
        print("=== Fused picks ===")
        print("  " + " ".join(result.fused_picks))
    print(f"Strongest head: {result.strongest_head}  tail: {result.strongest_tail}")
    print(f"Double risk: {'yes' if result.is_double_risk else 'no'}")
    if result.excluded:
        print(f"Excluded: {' '.join(result.excluded)}")
    for line in result.insights:
        print(f"- {line}")


def cmd_seed(session, args):
    n = session.store.seed_if_empty()
    print(f"[INFO] {n} records seeded" if n else "[INFO] store is not empty, nothing seeded")


def cmd_add(session, args):
    record = session.record_result(args.date, args.am, args.pm, args.market_index,
                                   args.market_value, adapt=not args.no_adapt)
    print(f"[INFO] saved {record.date} {record.day_of_week}: AM={record.am} PM={record.pm}")


def cmd_import(session, args):
    with open(args.file, "r", encoding="utf-8", errors="ignore") as f:
        text = f.read()
    imported, errors = session.store.bulk_import(text)
    print(f"[INFO] imported={imported} errors={errors}")


def cmd_delete(session, args):
    session.store.delete(args.id)


def cmd_clear(session, args):
    if not args.yes:
        print("[WARN] refusing to clear without --yes")
        return 1
    session.store.clear()
    if args.weights:
        session.reset_weights()


def cmd_latest(session, args):
    rec = session.store.latest()
    print(json.dumps(rec.to_dict() if rec else None, ensure_ascii=False, indent=2))


def cmd_list(session, args):
    for rec in session.store.records[:args.limit]:
        print(f"{rec.date} {rec.day_of_week[:3]}  {rec.am} {rec.pm}  {rec.id}")


def cmd_predict(session, args):
    market = None
    if args.market:
        from market_feed import fetch_market_quote
        market = fetch_market_quote()
        if "market" not in session.registry:
            logger.warning("market expert is not enabled (--experts); the quote is ignored")
    if args.external:
        from gemini_source import GeminiSource
        result = session.predict_with_external(GeminiSource(session.api_key()),
                                               market=market, seed=args.seed)
    else:
        result = session.predict(market=market, seed=args.seed)
    _print_result(result, args.json)


def cmd_simulate(session, args):
    _print_result(session.simulate(args.am, args.pm, seed=args.seed), args.json)


def cmd_backtest(session, args):
    from backtest import run_backtest
    report = run_backtest(session.store.records, session.weights, days=args.days,
                          config=session.config, adaptive=args.adaptive, seed=args.seed,
                          registry=session.registry)
    print(f"[INFO] accuracy {report.accuracy}% ({report.hits}/{report.total})")
    if not report.monthly.empty:
        print(report.monthly.to_string(index=False))


def cmd_bias(session, args):
    from bias_scan import outcome_uniformity, digit_uniformity, most_deviant
    out = outcome_uniformity(session.store.records)
    digits = digit_uniformity(session.store.records)
    print(f"outcomes: chi2={out['chi2']:.2f} p={out['pvalue']:.4f}")
    print(f"head digits: chi2={digits['head']['chi2']:.2f} p={digits['head']['pvalue']:.4f}")
    print(f"tail digits: chi2={digits['tail']['chi2']:.2f} p={digits['tail']['pvalue']:.4f}")
    for num, freq, z in most_deviant(session.store.records):
        print(f"  {num}: {freq}x z={z:+.2f}")


def cmd_train(session, args):
    from run_self_improving_training import run_self_improving_training
    weights = run_self_improving_training(session.store.records, session.config,
                                          list(session.registry), cycles=args.cycles,
                                          seed=args.seed)
    if args.save:
        session.set_weights(weights)
    print(json.dumps(weights.to_dict(), indent=2))


def cmd_tune(session, args):
    from engine_hyperopt import tune_engine_config
    out = args.out or args.settings.config_path
    _, best = tune_engine_config(session.store.records, n_trials=args.trials, days=args.days,
                                 seed=args.seed, base_config=session.config,
                                 weights=session.weights, out_path=out)
    print(json.dumps(best, indent=2))


def build_parser():
    ap = argparse.ArgumentParser(prog="twod", description="Adaptive 2D draw prediction engine")
    ap.add_argument("--data-dir", default=None, help="directory for records/weights (default $TWOD_DATA_DIR or ./data)")
    ap.add_argument("--config", default=None, help="engine config JSON (default <data-dir>/engine_config.json)")
    ap.add_argument("--experts", default=None,
                    help="comma-separated expert names, e.g. recency,trend,gap,market")
    ap.add_argument("-v", "--verbose", action="store_true")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("seed", help="load the reference records into an empty store").set_defaults(func=cmd_seed)

    p = sub.add_parser("add", help="add or replace a day's results and adapt weights")
    p.add_argument("date")
    p.add_argument("am")
    p.add_argument("pm")
    p.add_argument("--market-index", default=None)
    p.add_argument("--market-value", default=None)
    p.add_argument("--no-adapt", action="store_true")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("import", help="bulk import pasted text")
    p.add_argument("file")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("delete", help="delete a record by id")
    p.add_argument("id")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("clear", help="delete all records")
    p.add_argument("--yes", action="store_true")
    p.add_argument("--weights", action="store_true", help="also reset weights to defaults")
    p.set_defaults(func=cmd_clear)

    sub.add_parser("latest", help="show the most recent record").set_defaults(func=cmd_latest)

    p = sub.add_parser("list", help="list records, newest first")
    p.add_argument("--limit", type=int, default=20)
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("predict", help="predict the next draw")
    p.add_argument("--external", action="store_true", help="fuse with the Gemini source")
    p.add_argument("--market", action="store_true", help="fetch a live market quote")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_predict)

    p = sub.add_parser("simulate", help="what-if prediction from hypothetical results")
    p.add_argument("--am", default="")
    p.add_argument("--pm", default="")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_simulate)

    p = sub.add_parser("backtest", help="walk-forward accuracy")
    p.add_argument("--days", type=int, default=100)
    p.add_argument("--adaptive", action="store_true")
    p.add_argument("--seed", type=int, default=42)
    p.set_defaults(func=cmd_backtest)

    sub.add_parser("bias", help="chi-square uniformity scan").set_defaults(func=cmd_bias)

    p = sub.add_parser("train", help="replay history to train weights")
    p.add_argument("--cycles", type=int, default=1)
    p.add_argument("--seed", type=int, default=42)
    p.add_argument("--save", action="store_true", help="persist the trained weights")
    p.set_defaults(func=cmd_train)

    p = sub.add_parser("tune", help="optuna search over engine constants")
    p.add_argument("--trials", type=int, default=25)
    p.add_argument("--days", type=int, default=60)
    p.add_argument("--seed", type=int, default=42)
    p.add_argument("--out", default=None)
    p.set_defaults(func=cmd_tune)
    return ap


def main(argv=None):
    from engine_config import load_config
    from engine_session import EngineSession
    from expert_scorers import DEFAULT_EXPERTS
    from log_setup import configure_logging

    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    args.settings = AppSettings.from_env(args.data_dir)
    config = load_config(args.config or args.settings.config_path)
    experts = args.experts.split(",") if args.experts else DEFAULT_EXPERTS
    try:
        session = EngineSession.from_settings(args.settings, config, experts)
    except KeyError as e:
        logger.error("%s", e)
        return 2
    try:
        return args.func(session, args) or 0
    except RecordFormatError as e:
        logger.error("%s", e)
        return 2
    except OSError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
