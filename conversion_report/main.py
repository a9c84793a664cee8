#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Web Conversion Report: LDA vs Random Forest
===========================================
- Cleaning: 0/1 flags -> categoricals, sessions with age >= 100 dropped
- EDA: schema, class balance, Pearson correlation, Cramér's V, data-quality notes
- Stratified 80/20 train/validation split (seed=42)
- LDA and Random Forest (mtry grid), 5-fold stratified CV on accuracy
- Validation confusion matrices: accuracy, sensitivity, specificity, kappa
- Bucketing experiment: age / page-view bins vs the unbucketed baseline

USAGE (basic):
  conversion-report --data conversion_data.csv

USAGE (synthetic data, quick run):
  conversion-report --demo --n-trees 50 --no-plots --outdir results
"""

import argparse
import logging
import sys
from pathlib import Path

import matplotlib
import pandas as pd

from conversion_report import config
from conversion_report.errors import ConversionReportError
from conversion_report.stages.sample import load_sessions, make_synthetic_sessions, stratified_split, partition, summarize_split
from conversion_report.stages.modify import clean_sessions
from conversion_report.stages.explore import describe_sessions, write_eda_report
from conversion_report.models.train import save_model
from conversion_report.assess.assess import choose_model, plot_confusion_matrix
from conversion_report.experiment import run_variant, run_bucketing_experiment
from conversion_report.utils import ensure_dir, write_json


# ------------------------
# Steps
# ------------------------
def load_and_clean(data_path, demo=False, seed=config.SEED):
    print("\n[Step 2] Load & Clean")
    df_raw = make_synthetic_sessions(seed=seed) if demo else load_sessions(data_path)
    df = clean_sessions(df_raw)
    print(f"Rows: {len(df_raw)} raw -> {len(df)} after dropping missing ages and ages >= {config.MAX_PLAUSIBLE_AGE}")
    return df_raw, df


def explore(df: pd.DataFrame, df_raw: pd.DataFrame, outdir: Path, do_plots: bool):
    print("\n[Step 3] Descriptive Statistics")
    summary = describe_sessions(df, raw=df_raw)
    write_eda_report(df, summary, outdir, do_plots)
    print(f"Dimensions: {summary['n_rows']} rows x {summary['n_cols']} columns")
    print(summary["schema"].to_string(index=False))
    print("\nClass balance:"); print(summary["class_balance"])
    print("\nPearson correlation:"); print(summary["corr"].round(3))
    pairs = summary["redundant_pairs"]
    print("Redundant pairs (|r| >= {}):".format(config.CORR_THRESHOLD),
          ", ".join(f"{p['a']}~{p['b']} r={p['r']:.2f}" for p in pairs) if pairs else "None")
    print("\nData-quality notes:"); print(summary["notes"].to_string(index=False))
    return summary


def split_data(df: pd.DataFrame, outdir: Path, train_frac, seed):
    print("\n[Step 4] Stratified Split")
    split = stratified_split(df, train_frac=train_frac, seed=seed)
    train, valid = partition(df, split)
    split_info = pd.DataFrame([
        {"split": "all",   **summarize_split(df[config.TARGET])},
        {"split": "train", **summarize_split(train[config.TARGET])},
        {"split": "valid", **summarize_split(valid[config.TARGET])},
    ])
    split_info.to_csv(outdir/"split_summary.csv", index=False)
    print(split_info)
    return split


def train_and_assess(df, split, outdir: Path, do_plots: bool, methods, train_frac, seed, cv_folds, n_trees):
    print("\n[Step 5] Train (cross-validated)")
    baseline = run_variant("baseline", df, methods=methods, train_frac=train_frac, seed=seed,
                           cv_folds=cv_folds, n_trees=n_trees, split=split)
    for method, model in baseline.models.items():
        model.cv_results.to_csv(outdir/f"cv_results_baseline_{method}.csv", index=False)
        save_model(model, outdir/f"baseline_{method}.joblib")
        print(f" - {method}: cv accuracy={model.cv_accuracy:.4f} params={model.best_params} "
              f"time={model.elapsed_seconds:.1f}s")

    print("\n[Step 6] Validation Assessment")
    res = pd.DataFrame([ev._asdict() for ev in baseline.evaluations.values()])
    res.to_csv(outdir/"validation_metrics.csv", index=False)
    print(res[["method", "accuracy", "sensitivity", "specificity", "kappa", "TP", "FP", "FN", "TN"]])
    if do_plots:
        for method, ev in baseline.evaluations.items():
            plot_confusion_matrix(ev, outdir/f"fig_confusion_{method}.png")
    chosen = choose_model(baseline.evaluations.values())
    print(f"Chosen model: {chosen.method} (accuracy within {config.ACCURACY_TOLERANCE:.0%} of best, "
          f"then highest sensitivity={chosen.sensitivity:.3f})")
    return baseline, chosen


def bucketing(df, baseline, outdir: Path, methods, train_frac, seed, cv_folds, n_trees):
    print("\n[Step 7] Bucketing Experiment")
    variants, comparison = run_bucketing_experiment(
        df, bucket_sets=config.BUCKET_SETS, baseline=baseline, methods=methods,
        train_frac=train_frac, seed=seed, cv_folds=cv_folds, n_trees=n_trees)
    for v in variants[1:]:
        for method, model in v.models.items():
            model.cv_results.to_csv(outdir/f"cv_results_{v.name}_{method}.csv", index=False)
    comparison.to_csv(outdir/"bucketing_comparison.csv", index=False)
    print(comparison[["variant", "method", "accuracy", "sensitivity", "sensitivity_delta",
                      "elapsed_seconds", "time_ratio"]].round(4))
    return comparison


def run_analysis(data_path=None, outdir="outputs", demo=False, do_plots=True, methods=config.METHODS,
                 train_frac=config.TRAIN_FRAC, seed=config.SEED, cv_folds=config.CV_FOLDS,
                 n_trees=config.RF_N_TREES, skip_bucketing=False):
    outdir = ensure_dir(Path(outdir))
    print("[Step 1] Business Understanding")
    print(" - Goal: predict purchase conversion from country, age, new_user, source, total_pages_visited.")
    print(" - Models: LDA vs Random Forest; ties on accuracy go to sensitivity (missed buyers cost most).")

    df_raw, df = load_and_clean(data_path, demo=demo, seed=seed)
    summary = explore(df, df_raw, outdir, do_plots)
    split = split_data(df, outdir, train_frac, seed)
    baseline, chosen = train_and_assess(df, split, outdir, do_plots, methods, train_frac, seed, cv_folds, n_trees)
    comparison = None
    if not skip_bucketing:
        comparison = bucketing(df, baseline, outdir, methods, train_frac, seed, cv_folds, n_trees)

    run_summary = {
        "data": "synthetic" if demo else str(data_path),
        "rows_raw": int(len(df_raw)), "rows_clean": int(len(df)),
        "seed": seed, "train_frac": train_frac, "cv_folds": cv_folds, "n_trees": n_trees,
        "class_balance": summary["class_balance"]["count"].astype(int).to_dict(),
        "redundant_pairs": summary["redundant_pairs"],
        "validation": {m: ev._asdict() for m, ev in baseline.evaluations.items()},
        "training_seconds": {m: mdl.elapsed_seconds for m, mdl in baseline.models.items()},
        "chosen_model": chosen.method,
        "bucketing": comparison.to_dict(orient="records") if comparison is not None else None,
    }
    write_json(outdir/"run_summary.json", run_summary)
    print("\nDone. Inspect outputs at:", outdir.resolve())
    return run_summary


# ------------------------
# Main
# ------------------------
def build_parser():
    parser = argparse.ArgumentParser(description="Web conversion report: LDA vs Random Forest")
    parser.add_argument("--data", type=str, help="Path to the conversion CSV")
    parser.add_argument("--demo", action="store_true", help="Use a synthetic dataset instead of --data")
    parser.add_argument("--outdir", type=str, default="outputs", help="Directory to write tables, figures & models")
    parser.add_argument("--seed", type=int, default=config.SEED)
    parser.add_argument("--train-frac", type=float, default=config.TRAIN_FRAC)
    parser.add_argument("--cv-folds", type=int, default=config.CV_FOLDS)
    parser.add_argument("--n-trees", type=int, default=config.RF_N_TREES, help="Random forest size")
    parser.add_argument("--methods", nargs="+", choices=config.METHODS, default=list(config.METHODS))
    parser.add_argument("--no-plots", action="store_true", help="Disable plotting (faster)")
    parser.add_argument("--skip-bucketing", action="store_true", help="Skip the bucketing experiment")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log diagnostics at DEBUG level")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.demo and not args.data:
        parser.error("--data is required unless --demo is given")
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    matplotlib.use("Agg")
    try:
        run_analysis(data_path=args.data, outdir=args.outdir, demo=args.demo, do_plots=not args.no_plots,
                     methods=tuple(args.methods), train_frac=args.train_frac, seed=args.seed,
                     cv_folds=args.cv_folds, n_trees=args.n_trees, skip_bucketing=args.skip_bucketing)
    except ConversionReportError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
