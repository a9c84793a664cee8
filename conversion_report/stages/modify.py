import logging

import numpy as np
import pandas as pd

from conversion_report.config import (AGE, NEW_USER, TARGET, MAX_PLAUSIBLE_AGE,
                                      NEW_USER_LEVELS, TARGET_LEVELS)
from conversion_report.errors import SchemaError

log = logging.getLogger(__name__)


def _recast(s: pd.Series, levels: dict) -> pd.Categorical:
    bad = s[~s.isin(list(levels))]
    if len(bad):
        raise SchemaError(f"column {s.name!r} expects values {sorted(levels)}, found {sorted(bad.astype(str).unique())[:5]}")
    return pd.Categorical(s.map(levels), categories=list(levels.values()))


def clean_sessions(df: pd.DataFrame, max_age=MAX_PLAUSIBLE_AGE) -> pd.DataFrame:
    """Recast the 0/1 flags to categoricals, then drop sessions with implausible ages.

    The age cut is a fixed threshold; sentinel values and genuine outliers are
    treated the same way.
    """
    out = df.copy()
    out[NEW_USER] = _recast(out[NEW_USER], NEW_USER_LEVELS)
    out[TARGET] = _recast(out[TARGET], TARGET_LEVELS)
    missing = out[AGE].isna()
    too_old = out[AGE] >= max_age
    if missing.any():
        log.info("dropping %d rows with no age", int(missing.sum()))
    if too_old.any():
        log.info("dropping %d rows with age >= %s (ages: %s)", int(too_old.sum()), max_age,
                 sorted(out.loc[too_old, AGE].unique().tolist()))
    out = out[~missing & ~too_old].reset_index(drop=True)
    if len(out) < 2 or out[TARGET].nunique() < 2:
        raise SchemaError(f"cleaning left {len(out)} rows with target levels "
                          f"{sorted(out[TARGET].astype(str).unique())}; need at least 2 rows and both classes")
    return out


# ------------------------
# Bucketing
# ------------------------
def bucket_labels(breaks):
    """Labels for right-closed integer bins: (16, 21] -> '17-21', (5, 6] -> '6', (39, inf] -> '40+'."""
    labels = []
    for lo, hi in zip(breaks[:-1], breaks[1:]):
        first = int(lo) + 1
        if np.isinf(hi):
            labels.append(f"{first}+")
        elif int(hi) == first:
            labels.append(str(first))
        else:
            labels.append(f"{first}-{int(hi)}")
    return labels


def bucketize(df: pd.DataFrame, buckets) -> pd.DataFrame:
    """Replace each ``(column, breakpoints)`` column with an ordered bin label.

    Values equal to the lowest breakpoint land in the first bin; anything below
    it is an error rather than a silent NaN.
    """
    out = df.copy()
    for col, breaks in buckets:
        if len(breaks) < 2 or any(hi <= lo for lo, hi in zip(breaks[:-1], breaks[1:])):
            raise SchemaError(f"breakpoints for {col!r} must be strictly increasing, got {breaks}")
        if any(not np.isinf(b) and b != int(b) for b in breaks):
            raise SchemaError(f"breakpoints for {col!r} must be whole numbers, got {breaks}")
        binned = pd.cut(out[col], bins=breaks, labels=bucket_labels(breaks),
                        right=True, include_lowest=True, ordered=True)
        stray = binned.isna() & out[col].notna()
        if stray.any():
            raise SchemaError(f"{int(stray.sum())} values of {col!r} fall outside breakpoints {breaks}")
        out[col] = binned
    return out
