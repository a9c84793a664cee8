import matplotlib
import pandas as pd
import pytest

matplotlib.use("Agg")

from conversion_report.stages.sample import make_synthetic_sessions
from conversion_report.stages.modify import clean_sessions


@pytest.fixture
def raw_sessions():
    return make_synthetic_sessions(n=1000, pos_rate=0.03, seed=42)


@pytest.fixture
def sessions(raw_sessions):
    return clean_sessions(raw_sessions)


@pytest.fixture
def small_sessions():
    # enough positives for 3-fold CV without waiting on a full run
    return clean_sessions(make_synthetic_sessions(n=400, pos_rate=0.1, seed=7))


@pytest.fixture
def csv_path(tmp_path, raw_sessions):
    outliers = pd.DataFrame({"country": ["US", "UK"], "age": [111, 123], "new_user": [1, 0],
                             "source": ["Seo", "Ads"], "total_pages_visited": [3, 5], "converted": [0, 0]})
    path = tmp_path/"conversion_data.csv"
    pd.concat([raw_sessions, outliers], ignore_index=True).to_csv(path, index=False)
    return path
