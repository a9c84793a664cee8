"""Baseline vs. bucketed-feature runs of split -> train -> evaluate.

Each variant gets its own frame, split, models and evaluations; bucketing
works on a copy so the baseline table is never touched.
"""
import logging
from collections import namedtuple

import pandas as pd

from conversion_report.config import (SEED, TARGET, TRAIN_FRAC, CV_FOLDS, RF_N_TREES, METHODS, BUCKET_SETS)
from conversion_report.stages.sample import stratified_split, partition
from conversion_report.stages.modify import bucketize
from conversion_report.models.train import train_model
from conversion_report.assess.assess import evaluate_model

log = logging.getLogger(__name__)

VariantResult = namedtuple("VariantResult", ["name", "split", "models", "evaluations"])


def variant_name(buckets):
    return "bucketed_" + "+".join(col for col, _ in buckets)


def run_variant(name, df: pd.DataFrame, methods=METHODS, features=None, target=TARGET,
                train_frac=TRAIN_FRAC, seed=SEED, cv_folds=CV_FOLDS, n_trees=RF_N_TREES, split=None) -> VariantResult:
    if split is None:
        split = stratified_split(df, target=target, train_frac=train_frac, seed=seed)
    train, valid = partition(df, split)
    models, evaluations = {}, {}
    for method in methods:
        log.info("[%s] training %s on %d rows", name, method, len(train))
        models[method] = train_model(train, method, features=features, target=target,
                                     cv_folds=cv_folds, seed=seed, n_trees=n_trees)
        evaluations[method] = evaluate_model(models[method], valid, target=target)
    return VariantResult(name, split, models, evaluations)


def compare_variants(variants):
    """One row per (variant, method); deltas are against the first variant's same method."""
    base = variants[0]
    rows = []
    for v in variants:
        for method, ev in v.evaluations.items():
            elapsed = v.models[method].elapsed_seconds
            b_ev, b_model = base.evaluations.get(method), base.models.get(method)
            rows.append({
                "variant": v.name, "method": method,
                "accuracy": ev.accuracy, "sensitivity": ev.sensitivity,
                "specificity": ev.specificity, "kappa": ev.kappa,
                "cv_accuracy": v.models[method].cv_accuracy,
                "elapsed_seconds": elapsed,
                "sensitivity_delta": ev.sensitivity - b_ev.sensitivity if b_ev else float("nan"),
                "time_ratio": elapsed / b_model.elapsed_seconds if b_model and b_model.elapsed_seconds > 0 else float("nan"),
            })
    return pd.DataFrame(rows)


def run_bucketing_experiment(df: pd.DataFrame, bucket_sets=BUCKET_SETS, baseline=None, **kwargs):
    """Run the baseline (unless given) plus one variant per bucket set.

    ``bucket_sets`` is a list of ``[(column, breakpoints), ...]`` lists; any
    keyword accepted by ``run_variant`` is passed through to every run.
    """
    if baseline is None:
        baseline = run_variant("baseline", df, **kwargs)
    variants = [baseline]
    for buckets in bucket_sets:
        variants.append(run_variant(variant_name(buckets), bucketize(df, buckets), **kwargs))
    return variants, compare_variants(variants)
