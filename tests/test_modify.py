import math

import pandas as pd
import pytest

from conversion_report.config import AGE_BREAKS, PAGE_VIEW_BREAKS
from conversion_report.errors import SchemaError
from conversion_report.stages.modify import clean_sessions, bucketize, bucket_labels
from conversion_report.stages.sample import load_sessions


def test_clean_drops_implausible_ages(csv_path):
    df = clean_sessions(load_sessions(csv_path))
    assert len(df) == 1000
    assert (df["age"] < 100).all()


def test_clean_recasts_flags_to_categoricals(sessions, raw_sessions):
    assert isinstance(sessions["new_user"].dtype, pd.CategoricalDtype)
    assert isinstance(sessions["converted"].dtype, pd.CategoricalDtype)
    assert list(sessions["converted"].cat.categories) == ["no", "yes"]
    assert list(sessions["new_user"].cat.categories) == ["returning", "new"]
    assert (sessions["converted"] == "yes").sum() == raw_sessions["converted"].sum()
    assert (sessions["new_user"] == "new").sum() == raw_sessions["new_user"].sum()


def test_clean_does_not_mutate_input(raw_sessions):
    before = raw_sessions.copy()
    clean_sessions(raw_sessions)
    pd.testing.assert_frame_equal(raw_sessions, before)


def test_clean_rejects_unexpected_flag_values(raw_sessions):
    bad = raw_sessions.copy(); bad.loc[3, "converted"] = 2
    with pytest.raises(SchemaError, match="converted"):
        clean_sessions(bad)


def test_bucket_labels():
    assert bucket_labels(AGE_BREAKS) == ["17-21", "22-24", "25-29", "30-34", "35-39", "40+"]
    assert bucket_labels(PAGE_VIEW_BREAKS) == ["1", "2", "3", "4", "5", "6", "7-8", "9+"]


def test_bucketize_examples():
    df = pd.DataFrame({"age": [17, 20, 21, 22, 39, 40, 79], "total_pages_visited": [1, 6, 7, 8, 9, 20, 2]})
    out = bucketize(df, [("age", AGE_BREAKS), ("total_pages_visited", PAGE_VIEW_BREAKS)])
    assert list(out["age"].astype(str)) == ["17-21", "17-21", "17-21", "22-24", "35-39", "40+", "40+"]
    assert list(out["total_pages_visited"].astype(str)) == ["1", "6", "7-8", "7-8", "9+", "9+", "2"]
    assert out["age"].cat.ordered


def test_bucket_labels_match_source_values(sessions):
    out = bucketize(sessions, [("age", AGE_BREAKS), ("total_pages_visited", PAGE_VIEW_BREAKS)])
    for col, breaks in [("age", AGE_BREAKS), ("total_pages_visited", PAGE_VIEW_BREAKS)]:
        bounds = dict(zip(bucket_labels(breaks), zip(breaks[:-1], breaks[1:])))
        for value, label in zip(sessions[col], out[col]):
            lo, hi = bounds[label]
            assert lo < value <= hi or value == breaks[0]
            assert math.isinf(hi) or value <= hi


def test_bucketize_leaves_input_alone(sessions):
    bucketize(sessions, [("age", AGE_BREAKS)])
    assert pd.api.types.is_numeric_dtype(sessions["age"])


def test_bucketize_lowest_breakpoint_lands_in_first_bin():
    out = bucketize(pd.DataFrame({"total_pages_visited": [0]}), [("total_pages_visited", PAGE_VIEW_BREAKS)])
    assert out["total_pages_visited"].astype(str).tolist() == ["1"]


def test_bucketize_rejects_values_below_range():
    with pytest.raises(SchemaError, match="outside"):
        bucketize(pd.DataFrame({"age": [15, 30]}), [("age", AGE_BREAKS)])


def test_bucketize_rejects_unsorted_breaks():
    with pytest.raises(SchemaError, match="increasing"):
        bucketize(pd.DataFrame({"age": [30]}), [("age", [16, 30, 30, 40])])


def test_clean_drops_missing_ages_and_says_so(raw_sessions, caplog):
    df = raw_sessions.astype({"age": float})
    df.loc[[0, 1], "age"] = float("nan")
    with caplog.at_level("INFO", logger="conversion_report.stages.modify"):
        out = clean_sessions(df)
    assert len(out) == len(df) - 2
    assert "2 rows with no age" in caplog.text
    assert "age >=" not in caplog.text


def test_clean_rejects_table_left_without_both_classes(raw_sessions):
    with pytest.raises(SchemaError, match="both classes"):
        clean_sessions(raw_sessions.assign(age=123))
    with pytest.raises(SchemaError):
        clean_sessions(raw_sessions[raw_sessions["converted"] == 0])


def test_bucketize_rejects_fractional_breaks():
    with pytest.raises(SchemaError, match="whole numbers"):
        bucketize(pd.DataFrame({"age": [20, 30]}), [("age", [16, 21.5, 21.9, math.inf])])
