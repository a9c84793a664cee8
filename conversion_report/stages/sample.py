import logging
from collections import namedtuple
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from conversion_report.config import (SEED, TARGET, TRAIN_FRAC, POSITIVE_LABEL,
                                      REQUIRED_COLUMNS, NUMERIC_INPUT_COLUMNS)
from conversion_report.errors import DataLoadError, SchemaError

log = logging.getLogger(__name__)

Split = namedtuple("Split", ["train_idx", "valid_idx"])


def load_sessions(path) -> pd.DataFrame:
    path = Path(path)
    try:
        df = pd.read_csv(path)
    except (FileNotFoundError, IsADirectoryError, PermissionError) as exc:
        raise DataLoadError(f"cannot read {path}: {exc}") from exc
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise DataLoadError(f"cannot parse {path} as CSV: {exc}") from exc
    validate_schema(df)
    log.info("loaded %d rows x %d columns from %s", len(df), df.shape[1], path)
    return df


def validate_schema(df: pd.DataFrame):
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise SchemaError(f"missing required columns: {missing}")
    non_numeric = [c for c in NUMERIC_INPUT_COLUMNS if not pd.api.types.is_numeric_dtype(df[c])]
    if non_numeric:
        raise SchemaError(f"expected numeric values in columns: {non_numeric}")


def make_synthetic_sessions(n=1000, pos_rate=0.03, seed=SEED) -> pd.DataFrame:
    """Deterministic stand-in for the conversion file.

    Exactly ``round(n * pos_rate)`` sessions convert; the converters are the
    sessions with the highest noisy engagement score, so page views and
    returning visitors carry signal the models can pick up.
    """
    rng = np.random.default_rng(seed)
    country = rng.choice(["US", "China", "UK", "Germany"], n, p=[0.56, 0.24, 0.15, 0.05])
    age = np.round(rng.normal(30.5, 8.3, n)).clip(17, 79).astype(int)
    new_user = rng.binomial(1, 0.68, n)
    source = rng.choice(["Seo", "Ads", "Direct"], n, p=[0.49, 0.28, 0.23])
    pages = (rng.poisson(4.6, n) + 1).clip(1, 29)
    score = pages + rng.normal(0, 1.5, n) + 1.5 * (new_user == 0) - 1.0 * (country == "China")
    converted = np.zeros(n, dtype=int)
    converted[np.argsort(-score, kind="stable")[:int(round(n * pos_rate))]] = 1
    return pd.DataFrame({"country": country, "age": age, "new_user": new_user, "source": source,
                         "total_pages_visited": pages, "converted": converted})


def stratified_split(df: pd.DataFrame, target=TARGET, train_frac=TRAIN_FRAC, seed=SEED) -> Split:
    if not 0 < train_frac < 1:
        raise SchemaError(f"train_frac must be in (0, 1), got {train_frac}")
    idx = np.arange(len(df))
    try:
        tr, va = train_test_split(idx, train_size=train_frac, stratify=df[target], random_state=seed)
    except ValueError as exc:
        raise SchemaError(f"cannot stratify on {target!r}: {exc}") from exc
    return Split(np.sort(tr), np.sort(va))


def partition(df: pd.DataFrame, split: Split):
    return (df.iloc[split.train_idx].reset_index(drop=True),
            df.iloc[split.valid_idx].reset_index(drop=True))


def summarize_split(yarr, positive=POSITIVE_LABEL):
    vc = pd.Series(yarr).astype(str).value_counts()
    n = int(vc.sum()); pos = int(vc.get(str(positive), 0))
    return {"n": n, "pos": pos, "neg": n - pos, "pos_rate": float(pos / max(1, n))}
