import json

import pytest

from conversion_report.main import main, build_parser


def test_demo_run_writes_report(tmp_path, capsys):
    rc = main(["--demo", "--no-plots", "--n-trees", "10", "--cv-folds", "3", "--outdir", str(tmp_path)])
    assert rc == 0
    out = capsys.readouterr().out
    for step in range(1, 8):
        assert f"[Step {step}]" in out
    for name in ["split_summary.csv", "validation_metrics.csv", "bucketing_comparison.csv",
                 "cv_results_baseline_rf.csv", "baseline_lda.joblib", "run_summary.json"]:
        assert (tmp_path/name).exists(), name
    summary = json.loads((tmp_path/"run_summary.json").read_text())
    assert summary["rows_clean"] == 1000
    assert summary["chosen_model"] in ("lda", "rf")
    assert set(summary["validation"]) == {"lda", "rf"}


def test_run_from_csv_skipping_bucketing(tmp_path, csv_path):
    outdir = tmp_path/"out"
    rc = main(["--data", str(csv_path), "--methods", "lda", "--no-plots", "--skip-bucketing",
               "--cv-folds", "3", "--outdir", str(outdir)])
    assert rc == 0
    summary = json.loads((outdir/"run_summary.json").read_text())
    assert summary["rows_raw"] == 1002 and summary["rows_clean"] == 1000
    assert summary["bucketing"] is None
    assert not (outdir/"bucketing_comparison.csv").exists()


def test_missing_file_exits_with_error(tmp_path, capsys):
    rc = main(["--data", str(tmp_path/"missing.csv"), "--outdir", str(tmp_path)])
    assert rc == 1
    assert "error:" in capsys.readouterr().err


def test_data_or_demo_required():
    with pytest.raises(SystemExit):
        main([])


def test_parser_defaults():
    args = build_parser().parse_args(["--demo"])
    assert args.seed == 42 and args.train_frac == 0.8 and args.cv_folds == 5 and args.methods == ["lda", "rf"]


def test_nothing_left_after_cleaning_exits_with_error(tmp_path, capsys):
    p = tmp_path/"one_row.csv"
    p.write_text("country,age,new_user,source,total_pages_visited,converted\nUS,123,1,Seo,3,0\n")
    rc = main(["--data", str(p), "--no-plots", "--outdir", str(tmp_path/"out")])
    assert rc == 1
    assert "error:" in capsys.readouterr().err


def test_importing_utils_leaves_backend_alone(monkeypatch):
    import importlib
    import matplotlib
    from conversion_report import utils
    calls = []
    monkeypatch.setattr(matplotlib, "use", lambda *a, **k: calls.append(a))
    importlib.reload(utils)
    assert calls == []
