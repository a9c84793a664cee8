import logging
from pathlib import Path

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from scipy import stats

from conversion_report.config import (AGE, NEW_USER, TARGET, POSITIVE_LABEL,
                                      CATEGORICAL_FEATURES, CORR_THRESHOLD, MAX_PLAUSIBLE_AGE)
from conversion_report.utils import savefig_safe

log = logging.getLogger(__name__)


def cramers_v(x, y):
    ct = pd.crosstab(x, y)
    if ct.shape[0] < 2 or ct.shape[1] < 2:
        return float("nan")
    chi2 = stats.chi2_contingency(ct)[0]; n = ct.values.sum(); phi2 = chi2 / n; r, k = ct.shape
    phi2corr = max(0, phi2 - (k-1)*(r-1)/(n-1)); rcorr = r - (r-1)**2/(n-1); kcorr = k - (k-1)**2/(n-1)
    return float(np.sqrt(phi2corr / max(1e-9, min((kcorr-1), (rcorr-1)))))


def numeric_summary(df: pd.DataFrame, num_cols):
    rows = []
    for c in num_cols:
        s = df[c]
        q1, q3 = s.quantile(0.25), s.quantile(0.75)
        iqr = q3 - q1
        outliers = int(((s < q1-1.5*iqr) | (s > q3+1.5*iqr)).sum())
        rows.append((c, float(s.min()), float(s.max()), float(s.mean()), float(s.median()), float(s.std()), outliers))
    return pd.DataFrame(rows, columns=["feature", "min", "max", "mean", "median", "std", "approx_outliers(IQR)"])


def redundant_pairs(df: pd.DataFrame, num_cols, threshold=CORR_THRESHOLD):
    """Numeric column pairs whose Pearson |r| reaches ``threshold``."""
    pairs = []
    for i, a in enumerate(num_cols):
        for b in num_cols[i+1:]:
            r, p = stats.pearsonr(df[a], df[b])
            if abs(r) >= threshold:
                pairs.append({"a": a, "b": b, "r": float(r), "p_value": float(p)})
    return pairs


def data_quality_notes(df: pd.DataFrame, raw=None, max_age=MAX_PLAUSIBLE_AGE):
    # age counts come from the pre-cleaning table when given; cleaning removes those rows
    src = df if raw is None else raw
    new_with_age = int(((df[NEW_USER] == "new") & df[AGE].notna()).sum())
    return pd.DataFrame([
        {"check": "new_user_with_age",
         "count": new_with_age,
         "note": "age is populated for first-time visitors who have not signed up; left as-is"},
        {"check": "age_threshold",
         "count": int((src[AGE] >= max_age).sum()),
         "note": f"rows with age >= {max_age} are removed by cleaning; outliers and entry errors are not told apart"},
        {"check": "age_missing",
         "count": int(src[AGE].isna().sum()),
         "note": "rows without an age are removed by cleaning"},
    ])


def describe_sessions(df: pd.DataFrame, raw=None, target=TARGET, cat_cols=CATEGORICAL_FEATURES, corr_threshold=CORR_THRESHOLD):
    """Read-only descriptive statistics of a cleaned session table."""
    num_cols = [c for c in df.select_dtypes(include=["number"]).columns if c != target]
    schema = pd.DataFrame(
        [(c, str(df[c].dtype), int(df[c].nunique(dropna=True)), int(df[c].isna().sum()),
          round(100*df[c].isna().mean(), 2)) for c in df.columns],
        columns=["column", "dtype", "unique_values", "missing", "missing_%"])
    vc = df[target].value_counts(sort=False)
    balance = pd.DataFrame({"count": vc, "proportion": vc / max(1, vc.sum())})
    is_pos = df[target] == POSITIVE_LABEL
    rate_rows, cramer_rows = [], []
    for c in cat_cols:
        grp = is_pos.groupby(df[c], observed=True).agg(["mean", "count"])
        for level, r in grp.iterrows():
            rate_rows.append((c, str(level), float(r["mean"]), int(r["count"])))
        cramer_rows.append((c, cramers_v(df[c].astype(str), df[target]), int(df[c].nunique())))
    summary = {
        "n_rows": int(len(df)),
        "n_cols": int(df.shape[1]),
        "schema": schema,
        "missing": df.isna().sum(),
        "class_balance": balance,
        "numeric_summary": numeric_summary(df, num_cols),
        "corr": df[num_cols].corr(method="pearson"),
        "redundant_pairs": redundant_pairs(df, num_cols, corr_threshold),
        "cat_positive_rates": pd.DataFrame(rate_rows, columns=["feature", "level", "positive_rate", "count"]),
        "cramers_v": pd.DataFrame(cramer_rows, columns=["categorical_feature", "cramers_v", "n_levels"])
                       .sort_values("cramers_v", ascending=False).reset_index(drop=True),
        "notes": data_quality_notes(df, raw=raw),
    }
    if summary["notes"].loc[0, "count"]:
        log.warning("%d new users carry an age value; reported as a data-quality caveat", summary["notes"].loc[0, "count"])
    return summary


def write_eda_report(df: pd.DataFrame, summary, outdir: Path, do_plots=True, target=TARGET):
    summary["schema"].to_csv(outdir/"eda_schema.csv", index=False)
    summary["numeric_summary"].to_csv(outdir/"eda_numeric_summary.csv", index=False)
    summary["class_balance"].to_csv(outdir/"eda_class_balance.csv", index_label=target)
    summary["corr"].to_csv(outdir/"eda_corr_pearson.csv")
    summary["cat_positive_rates"].to_csv(outdir/"eda_cat_positive_rates.csv", index=False)
    summary["cramers_v"].to_csv(outdir/"eda_cat_cramers_v.csv", index=False)
    summary["notes"].to_csv(outdir/"data_quality_notes.csv", index=False)
    if not do_plots:
        return
    bal = summary["class_balance"]
    plt.figure(); plt.bar([str(i) for i in bal.index], bal["count"])
    plt.title(f"Target distribution: {target}"); plt.xlabel("Class"); plt.ylabel("Count")
    savefig_safe(outdir/"fig_target_distribution.png")
    for c in summary["corr"].columns:
        plt.figure(); plt.hist(df[c].dropna(), bins=30)
        plt.title(f"Histogram: {c}"); plt.xlabel(c); plt.ylabel("Frequency")
        savefig_safe(outdir/f"fig_hist_{c}.png")
    corr = summary["corr"]
    plt.figure(); plt.imshow(corr, vmin=-1, vmax=1); plt.title("Pearson Correlation"); plt.colorbar()
    plt.xticks(range(len(corr)), corr.columns, rotation=45); plt.yticks(range(len(corr)), corr.columns)
    savefig_safe(outdir/"fig_corr_heatmap.png")
