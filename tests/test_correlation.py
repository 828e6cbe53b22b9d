"""Tests for correlation matrix annotation."""

import numpy as np
import pandas as pd
import pytest

from clinsurvey.analysis.discovery import (
    CorrelationAnnotator,
    CorrelationConfig,
    annotate_correlations,
    correlation_matrices,
    significance_marker,
)
from clinsurvey.analysis.discovery.correlation import (
    ANNOTATION_COLUMNS,
    SENTINEL_P,
    annotation_matrix,
    fisher_ci,
    hover_text,
    interpret_strength,
    self_pair_mask,
    triangle_pairs,
    validate_thresholds,
    variable_order,
)


class TestSignificanceMarker:
    """Tests for p-value to star mapping."""

    @pytest.mark.parametrize(
        "p, expected",
        [
            (0.0005, "***"),
            (0.001, "***"),
            (0.0011, "**"),
            (0.01, "**"),
            (0.03, "*"),
            (0.05, "*"),
            (0.0501, ""),
            (0.9, ""),
        ],
    )
    def test_thresholds_are_inclusive(self, p, expected):
        assert significance_marker(p) == expected

    def test_undefined_p_is_not_applicable(self):
        assert significance_marker(np.nan) == "n/a"
        assert significance_marker(None) == "n/a"

    def test_custom_thresholds_any_order(self):
        thresholds = [(0.1, "."), (0.05, "*")]
        assert significance_marker(0.04, thresholds) == "*"
        assert significance_marker(0.07, thresholds) == "."


class TestValidateThresholds:
    """Tests for threshold normalization."""

    def test_sorted_strictest_first(self):
        result = validate_thresholds([[0.05, "*"], [0.001, "***"], ["0.01", "**"]])
        assert result == [(0.001, "***"), (0.01, "**"), (0.05, "*")]

    def test_cutoff_out_of_range(self):
        with pytest.raises(ValueError, match="cutoff"):
            validate_thresholds([(1.5, "*")])

    def test_duplicate_cutoffs(self):
        with pytest.raises(ValueError, match="Duplicate"):
            validate_thresholds([(0.05, "*"), (0.05, "+")])

    def test_malformed_pair(self):
        with pytest.raises(ValueError):
            validate_thresholds([(0.05,)])


class TestCorrelationConfig:
    """Tests for configuration validation."""

    def test_defaults(self):
        config = CorrelationConfig()
        assert config.method == "pearson"
        assert config.triangle == "lower"
        assert config.include_diagonal is False
        assert config.undefined_p == "not_applicable"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"method": "kendall"},
            {"triangle": "both"},
            {"undefined_p": "zero"},
            {"correction": "sidak"},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            CorrelationConfig(**kwargs)


class TestTrianglePairs:
    """Tests for triangular pair selection."""

    def test_lower_without_diagonal(self):
        assert triangle_pairs(["A", "B", "C"]) == [("B", "A"), ("C", "A"), ("C", "B")]

    def test_upper_without_diagonal(self):
        assert triangle_pairs(["A", "B", "C"], triangle="upper") == [
            ("A", "B"), ("A", "C"), ("B", "C"),
        ]

    def test_lower_with_diagonal(self):
        pairs = triangle_pairs(["A", "B", "C"], include_diagonal=True)
        assert pairs == [("A", "A"), ("B", "A"), ("C", "A"), ("B", "B"), ("C", "B"), ("C", "C")]

    @pytest.mark.parametrize("n", [2, 3, 5, 8])
    def test_pair_counts(self, n):
        names = [f"v{i}" for i in range(n)]
        without = triangle_pairs(names)
        with_diag = triangle_pairs(names, include_diagonal=True)
        assert len(without) == n * (n - 1) // 2
        assert len(with_diag) == n * (n + 1) // 2
        # No pair appears in both orientations
        unordered = {frozenset(pair) for pair in without}
        assert len(unordered) == len(without)


class TestAnnotateCorrelations:
    """Tests for the long-form annotation table."""

    def test_three_variable_example(self, abc_matrices):
        r, p = abc_matrices
        table = annotate_correlations(r, p)

        assert list(table.columns) == ANNOTATION_COLUMNS
        assert len(table) == 3
        assert list(zip(table["row_var"], table["col_var"])) == [("B", "A"), ("C", "A"), ("C", "B")]
        assert list(table["marker"]) == ["**", "", "*"]
        assert table["r"].tolist() == pytest.approx([0.80, 0.10, -0.50])

    def test_upper_triangle_order(self, abc_matrices):
        r, p = abc_matrices
        table = annotate_correlations(r, p, CorrelationConfig(triangle="upper"))
        assert list(zip(table["row_var"], table["col_var"])) == [("A", "B"), ("A", "C"), ("B", "C")]
        assert list(table["marker"]) == ["**", "", "*"]

    def test_self_pair_under_sentinel_policy(self, abc_matrices):
        r, p = abc_matrices
        config = CorrelationConfig(include_diagonal=True, undefined_p="sentinel")
        table = annotate_correlations(r, p, config)

        diagonal = table[table["row_var"] == table["col_var"]]
        assert len(table) == 6
        assert len(diagonal) == 3
        assert (diagonal["r"] == 1.0).all()
        assert (diagonal["p"] == SENTINEL_P).all()
        assert (diagonal["marker"] == "***").all()

    def test_self_pair_not_applicable_by_default(self, abc_matrices):
        r, p = abc_matrices
        table = annotate_correlations(r, p, CorrelationConfig(include_diagonal=True))

        diagonal = table[table["row_var"] == table["col_var"]]
        assert diagonal["p"].isna().all()
        assert (diagonal["marker"] == "n/a").all()

    def test_undefined_off_diagonal_pair(self, abc_matrices):
        r, p = abc_matrices
        r.loc["A", "C"] = r.loc["C", "A"] = np.nan
        p.loc["A", "C"] = p.loc["C", "A"] = np.nan

        default = annotate_correlations(r, p)
        assert default.loc[1, "marker"] == "n/a"
        assert default.loc[1, "strength"] == "n/a"

        legacy = annotate_correlations(r, p, CorrelationConfig(undefined_p="sentinel"))
        assert legacy.loc[1, "p"] == SENTINEL_P
        assert legacy.loc[1, "marker"] == "***"

    def test_hover_text(self, abc_matrices):
        r, p = abc_matrices
        table = annotate_correlations(r, p)
        assert table.loc[0, "hover"] == "B vs A<br>r = 0.80<br>p = 0.002 **"
        assert table.loc[1, "hover"] == "C vs A<br>r = 0.10<br>p = 0.6"

    def test_labels_do_not_change_values(self, abc_matrices):
        r, p = abc_matrices
        plain = annotate_correlations(r, p)
        labeled = annotate_correlations(r, p, labels={"A": "Age", "B": "Depression"})

        assert list(labeled["row_var"]) == ["Depression", "C", "C"]
        assert list(labeled["col_var"]) == ["Age", "Age", "Depression"]
        pd.testing.assert_series_equal(plain["r"], labeled["r"])
        pd.testing.assert_series_equal(plain["p"], labeled["p"])
        assert list(plain["marker"]) == list(labeled["marker"])
        assert labeled.attrs["variables"] == ["Age", "Depression", "C"]

    def test_colliding_labels_rejected(self, abc_matrices):
        r, p = abc_matrices
        with pytest.raises(ValueError, match="Score"):
            annotate_correlations(r, p, labels={"A": "Score", "B": "Score"})

    def test_label_equal_to_other_variable_name_rejected(self, abc_matrices):
        r, p = abc_matrices
        with pytest.raises(ValueError, match="unique"):
            annotate_correlations(r, p, labels={"A": "C"})

    def test_confidence_interval_columns(self, abc_matrices):
        r, p = abc_matrices
        n = pd.DataFrame(50, index=r.index, columns=r.columns)
        table = annotate_correlations(r, p, CorrelationConfig(include_diagonal=True), n_matrix=n)

        off_diag = table[table["row_var"] != table["col_var"]]
        assert (off_diag["ci_lower"] < off_diag["r"]).all()
        assert (off_diag["r"] < off_diag["ci_upper"]).all()
        low, high = fisher_ci(0.80, 50)
        assert off_diag.iloc[0]["ci_lower"] == pytest.approx(low)
        assert off_diag.iloc[0]["ci_upper"] == pytest.approx(high)
        diagonal = table[table["row_var"] == table["col_var"]]
        assert diagonal["ci_lower"].isna().all()

    def test_confidence_interval_without_sample_sizes(self, abc_matrices):
        r, p = abc_matrices
        table = annotate_correlations(r, p)
        assert table["ci_lower"].isna().all()
        assert table["ci_upper"].isna().all()

    def test_bonferroni_correction(self, abc_matrices):
        r, p = abc_matrices
        config = CorrelationConfig(correction="bonferroni", use_adjusted=True)
        table = annotate_correlations(r, p, config)

        assert table["p_adjusted"].tolist() == pytest.approx([0.006, 1.0, 0.12])
        assert list(table["marker"]) == ["**", "", ""]
        # Raw p-values are kept alongside
        assert table["p"].tolist() == pytest.approx([0.002, 0.60, 0.04])

    def test_correction_without_use_adjusted_keeps_raw_markers(self, abc_matrices):
        r, p = abc_matrices
        table = annotate_correlations(r, p, CorrelationConfig(correction="fdr_bh"))
        assert list(table["marker"]) == ["**", "", "*"]
        assert (table["p_adjusted"] >= table["p"]).all()

    def test_mismatched_matrices(self, abc_matrices):
        r, p = abc_matrices
        with pytest.raises(ValueError):
            annotate_correlations(r, p.loc[["A", "B"], ["A", "B"]])
        with pytest.raises(ValueError):
            annotate_correlations(r.loc[["B", "A", "C"]], p)


class TestAnnotationMatrix:
    """Tests for pivoting annotations back into a grid."""

    def test_lower_triangle_is_trimmed(self, abc_matrices):
        r, p = abc_matrices
        table = annotate_correlations(r, p)
        grid = annotation_matrix(table, "r")

        assert list(grid.index) == ["B", "C"]
        assert list(grid.columns) == ["A", "B"]
        assert grid.loc["B", "A"] == pytest.approx(0.80)
        assert grid.loc["C", "B"] == pytest.approx(-0.50)
        assert np.isnan(grid.loc["B", "B"])

    def test_untrimmed_grid(self, abc_matrices):
        r, p = abc_matrices
        table = annotate_correlations(r, p)
        grid = annotation_matrix(table, "marker", trim=False)
        assert grid.shape == (3, 3)
        assert grid.loc["C", "B"] == "*"

    def test_variable_order_fallback(self, abc_matrices):
        r, p = abc_matrices
        table = annotate_correlations(r, p)
        table.attrs = {}
        assert variable_order(table) == ["A", "B", "C"]


class TestSelfPairMask:
    """Tests for self-pair detection."""

    def test_flags_follow_labels(self, abc_matrices):
        r, p = abc_matrices
        table = annotate_correlations(
            r, p, CorrelationConfig(include_diagonal=True), labels={"A": "Age"}
        )
        mask = self_pair_mask(table)
        assert mask.tolist() == [True, False, False, True, False, True]

    def test_filtered_table_falls_back_to_labels(self, abc_matrices):
        r, p = abc_matrices
        table = annotate_correlations(r, p, CorrelationConfig(include_diagonal=True))
        subset = table[table["marker"] != ""]
        assert self_pair_mask(subset).tolist() == (subset["row_var"] == subset["col_var"]).tolist()


class TestCorrelationMatrices:
    """Tests for pairwise correlation computation."""

    def test_symmetric_with_unit_diagonal(self, survey_df):
        columns = ["age", "phq9_total", "gad7_total", "sf36_mcs"]
        r, p, n = correlation_matrices(survey_df, columns, method="spearman")

        np.testing.assert_allclose(r.to_numpy(), r.to_numpy().T)
        np.testing.assert_allclose(np.diag(r.to_numpy()), 1.0)
        assert np.isnan(np.diag(p.to_numpy())).all()
        assert ((r.to_numpy() >= -1) & (r.to_numpy() <= 1)).all()

    def test_pairwise_complete_counts(self, survey_df):
        _, _, n = correlation_matrices(survey_df, ["age", "phq9_total"])
        assert n.loc["age", "age"] == 120
        assert n.loc["phq9_total", "phq9_total"] == 117
        assert n.loc["age", "phq9_total"] == 117

    def test_strong_correlation_detected(self, survey_df):
        r, p, _ = correlation_matrices(survey_df, ["phq9_total", "sf36_mcs"])
        assert r.loc["phq9_total", "sf36_mcs"] < -0.8
        assert p.loc["phq9_total", "sf36_mcs"] < 0.001

    def test_constant_column_is_undefined(self, survey_df):
        df = survey_df.assign(constant=5.0)
        r, p, _ = correlation_matrices(df, ["age", "constant"])
        assert np.isnan(r.loc["age", "constant"])
        assert np.isnan(p.loc["age", "constant"])

    def test_too_few_observations(self):
        df = pd.DataFrame({"x": [1.0, 2.0, np.nan, np.nan], "y": [2.0, 1.0, 3.0, 4.0]})
        r, _, n = correlation_matrices(df, ["x", "y"], min_samples=3)
        assert n.loc["x", "y"] == 2
        assert np.isnan(r.loc["x", "y"])

    def test_missing_column(self, survey_df):
        with pytest.raises(KeyError):
            correlation_matrices(survey_df, ["age", "nope"])

    def test_single_column(self, survey_df):
        with pytest.raises(ValueError):
            correlation_matrices(survey_df, ["age"])

    def test_unknown_method(self, survey_df):
        with pytest.raises(ValueError):
            correlation_matrices(survey_df, ["age", "phq9_total"], method="kendall")


class TestCorrelationAnnotator:
    """Tests for the end-to-end annotator."""

    def test_fit_and_summary(self, survey_df):
        annotator = CorrelationAnnotator(CorrelationConfig(method="spearman"))
        table = annotator.fit(survey_df, ["age", "phq9_total", "gad7_total", "sf36_mcs"])

        assert len(table) == 6
        assert table["n"].notna().all()

        summary = annotator.summary()
        assert summary["n_pairs"] == 6
        assert summary["method"] == "spearman"
        assert summary["n_significant"] >= 3

    def test_significant_pairs_sorted_by_strength(self, survey_df):
        annotator = CorrelationAnnotator()
        annotator.fit(survey_df, ["age", "phq9_total", "gad7_total", "sf36_mcs"])
        pairs = annotator.significant_pairs()

        assert len(pairs) > 0
        strengths = pairs["r"].abs().tolist()
        assert strengths == sorted(strengths, reverse=True)

    def test_diagonal_excluded_with_labels(self, survey_df):
        config = CorrelationConfig(include_diagonal=True, undefined_p="sentinel")
        annotator = CorrelationAnnotator(config)
        annotator.fit(
            survey_df,
            ["phq9_total", "gad7_total", "sf36_mcs"],
            labels={"phq9_total": "Depression", "gad7_total": "Anxiety"},
        )

        assert annotator.summary()["n_pairs"] == 3
        pairs = annotator.significant_pairs()
        assert len(pairs) == 3
        assert (pairs["r"].abs() < 1).all()

    def test_colliding_labels_rejected(self, survey_df):
        annotator = CorrelationAnnotator()
        with pytest.raises(ValueError, match="Score"):
            annotator.fit(
                survey_df,
                ["phq9_total", "gad7_total", "sf36_mcs"],
                labels={"phq9_total": "Score", "gad7_total": "Score"},
            )

    def test_significant_pairs_before_fit(self):
        with pytest.raises(ValueError):
            CorrelationAnnotator().significant_pairs()


class TestHelpers:
    """Tests for small formatting helpers."""

    def test_interpret_strength(self):
        assert interpret_strength(0.05) == "negligible"
        assert interpret_strength(-0.2) == "small"
        assert interpret_strength(0.35) == "medium"
        assert interpret_strength(-0.9) == "large"

    def test_hover_text_small_p(self):
        assert hover_text("X", "Y", -0.123, 0.00001, "***") == "X vs Y<br>r = -0.12<br>p < 0.001 ***"

    def test_fisher_ci_contains_r(self):
        low, high = fisher_ci(0.5, 100)
        assert low < 0.5 < high

    def test_fisher_ci_small_n(self):
        assert all(np.isnan(v) for v in fisher_ci(0.5, 3))
