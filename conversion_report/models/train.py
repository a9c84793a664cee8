import logging
import time
from collections import namedtuple
from pathlib import Path

import joblib
import numpy as np
import pandas as pd
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.ensemble import RandomForestClassifier
from sklearn.model_selection import GridSearchCV, StratifiedKFold
from sklearn.pipeline import Pipeline

from conversion_report.config import (SEED, TARGET, CV_FOLDS, SCORING, RF_N_TREES, MTRY_GRID_LENGTH)
from conversion_report.errors import ModelFitError
from conversion_report.features.pipeline import (build_preprocessor, feature_columns,
                                                 feature_levels, n_encoded_features)

log = logging.getLogger(__name__)

TrainedModel = namedtuple("TrainedModel", ["method", "estimator", "features", "best_params",
                                           "cv_accuracy", "cv_results", "elapsed_seconds"])


def mtry_grid(n_features, length=MTRY_GRID_LENGTH):
    """Evenly spaced feature-subsample sizes from 2 up to ``n_features``."""
    if n_features <= 2:
        return [max(1, n_features)]
    return sorted(set(int(v) for v in np.floor(np.linspace(2, n_features, length))))


def make_estimator(method, n_features, n_trees=RF_N_TREES, seed=SEED):
    """Classifier and its search grid for ``method`` ("lda" or "rf")."""
    if method == "lda":
        return LinearDiscriminantAnalysis(), {"clf__solver": ["svd"]}
    if method == "rf":
        rf = RandomForestClassifier(n_estimators=n_trees, n_jobs=-1, random_state=seed)
        return rf, {"clf__max_features": mtry_grid(n_features)}
    raise ValueError(f"unknown method {method!r}; expected 'lda' or 'rf'")


def train_model(train: pd.DataFrame, method, features=None, target=TARGET, cv_folds=CV_FOLDS,
                seed=SEED, n_trees=RF_N_TREES, scoring=SCORING) -> TrainedModel:
    """Grid-search ``method`` with stratified k-fold CV and refit the best configuration."""
    num_cols, cat_cols = feature_columns(train, features)
    levels = feature_levels(train, cat_cols)
    clf, grid = make_estimator(method, n_encoded_features(num_cols, levels), n_trees, seed)
    pipe = Pipeline([("prep", build_preprocessor(num_cols, cat_cols, levels)), ("clf", clf)])
    cv = StratifiedKFold(n_splits=cv_folds, shuffle=True, random_state=seed)
    search = GridSearchCV(pipe, param_grid=grid, scoring=scoring, cv=cv, refit=True, error_score="raise")
    X, y = train[num_cols + cat_cols], train[target]
    t0 = time.perf_counter()
    try:
        search.fit(X, y)
    except Exception as exc:
        raise ModelFitError(f"{method} failed to fit: {exc}") from exc
    elapsed = time.perf_counter() - t0
    log.info("%s: cv %s=%.4f params=%s in %.1fs", method, scoring, search.best_score_, search.best_params_, elapsed)
    cols = [c for c in search.cv_results_ if c.startswith("param_") or c in ("mean_test_score", "std_test_score", "mean_fit_time")]
    return TrainedModel(method=method, estimator=search.best_estimator_, features=num_cols + cat_cols,
                        best_params=search.best_params_, cv_accuracy=float(search.best_score_),
                        cv_results=pd.DataFrame(search.cv_results_)[cols], elapsed_seconds=float(elapsed))


def save_model(model: TrainedModel, path: Path):
    joblib.dump(model.estimator, path)
    return path
