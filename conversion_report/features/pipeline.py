import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from conversion_report.config import NUMERIC_FEATURES, CATEGORICAL_FEATURES


def feature_columns(df: pd.DataFrame, features=None):
    """Split ``features`` into (numeric, categorical) by the frame's dtypes.

    Bucketed columns arrive as ordered categoricals, so they move to the
    categorical side without the caller having to say so.
    """
    features = list(features) if features is not None else NUMERIC_FEATURES + CATEGORICAL_FEATURES
    num_cols = [c for c in features if pd.api.types.is_numeric_dtype(df[c])]
    cat_cols = [c for c in features if c not in num_cols]
    return num_cols, cat_cols


def feature_levels(df: pd.DataFrame, cat_cols):
    # pinned on the full training partition so every CV fold encodes the same columns
    return [sorted(df[c].dropna().astype(str).unique()) for c in cat_cols]


def n_encoded_features(num_cols, levels):
    return len(num_cols) + sum(len(lv) - 1 for lv in levels)


def build_preprocessor(num_cols, cat_cols, levels=None):
    ohe = OneHotEncoder(categories=levels if levels is not None else "auto", drop="first",
                        handle_unknown="ignore", sparse_output=False)
    return ColumnTransformer([
        ("num", StandardScaler(), list(num_cols)),
        ("cat", ohe, list(cat_cols)),
    ], remainder="drop", sparse_threshold=0.0)
