"""Shared fixtures for the clinsurvey test suite."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest
import yaml


@pytest.fixture
def survey_df():
    """Synthetic survey sample with coded demographics and correlated scores."""
    rng = np.random.default_rng(42)
    n = 120

    phq9 = rng.integers(0, 28, n).astype(float)
    gad7 = np.clip(np.round(phq9 * 0.7 + rng.normal(0, 2, n)), 0, 21)
    mcs = 60 - phq9 * 1.2 + rng.normal(0, 4, n)
    age = rng.integers(18, 80, n).astype(float)

    df = pd.DataFrame({
        "subject_id": [f"S{i:03d}" for i in range(n)],
        "age": age,
        "gender": rng.choice([1, 2], n),
        "injury_severity": rng.choice([1, 2, 3], n),
        "phq9_total": phq9,
        "gad7_total": gad7,
        "sf36_mcs": mcs,
        "rpq_total": rng.integers(0, 64, n).astype(float),
    })
    df["smoker"] = df["age"] > 50
    df.loc[[3, 17, 40], "phq9_total"] = np.nan
    return df


@pytest.fixture
def abc_matrices():
    """Three-variable r/p matrices with known values."""
    names = ["A", "B", "C"]
    r = pd.DataFrame(
        [[1.0, 0.80, 0.10],
         [0.80, 1.0, -0.50],
         [0.10, -0.50, 1.0]],
        index=names, columns=names,
    )
    p = pd.DataFrame(
        [[np.nan, 0.002, 0.60],
         [0.002, np.nan, 0.04],
         [0.60, 0.04, np.nan]],
        index=names, columns=names,
    )
    return r, p


@pytest.fixture
def report_config_file(tmp_path, survey_df):
    """Survey written to CSV plus a matching report config YAML."""
    data_path = tmp_path / "survey.csv"
    survey_df.to_csv(data_path, index=False)

    config = {
        "data": {
            "path": str(data_path),
            "id_column": "subject_id",
            "value_codes": {
                "gender": {1: "Male", 2: "Female"},
                "injury_severity": {1: "Mild", 2: "Moderate", 3: "Severe"},
            },
            "labels": {
                "phq9_total": "Depression (PHQ-9)",
                "gad7_total": "Anxiety (GAD-7)",
                "sf36_mcs": "Mental health (SF-36 MCS)",
            },
        },
        "descriptive": {
            "variables": ["age", "gender", "smoker", "phq9_total", "gad7_total"],
            "by": "injury_severity",
        },
        "correlation_variables": ["age", "phq9_total", "gad7_total", "sf36_mcs", "not_a_column"],
        "correlation": {"method": "spearman"},
        "plots": {
            "dpi": 50,
            "self_contained": False,
            "scatter": [{"x": "phq9_total", "y": "sf36_mcs", "color": "injury_severity"}],
            "bubble": [{"x": "gad7_total", "y": "phq9_total", "size": "rpq_total"}],
        },
        "output": {"results_dir": str(tmp_path / "results")},
        "site": {
            "site_dir": str(tmp_path / "site"),
            "title": "Test Report",
            "base_url": "https://example.org/report",
            "self_contained_widgets": False,
        },
    }
    config_path = tmp_path / "report.yaml"
    config_path.write_text(yaml.safe_dump(config))
    return config_path
