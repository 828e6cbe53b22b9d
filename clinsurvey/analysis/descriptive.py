"""
Descriptive Statistics Tables

Builds Table-1 style summaries for a survey sample:
- Per-variable distribution statistics (N, Mean, SD, Median, IQR, Min, Max,
  Skewness, Kurtosis)
- Publication summary with mean (SD) / median (Q1, Q3) for continuous
  variables and n (%) for categorical levels
- Optional stratification by a grouping column with group comparison tests
"""

from typing import Dict, List, Literal, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats as sp_stats
from loguru import logger


def is_categorical(series: pd.Series) -> bool:
    """Treat non-numeric and boolean columns as categorical."""
    return (
        isinstance(series.dtype, pd.CategoricalDtype)
        or pd.api.types.is_bool_dtype(series)
        or not pd.api.types.is_numeric_dtype(series)
    )


def format_pvalue(p: float) -> str:
    """Format a p-value for a publication table."""
    if p is None or np.isnan(p):
        return ""
    if p < 0.001:
        return "<0.001"
    return f"{p:.3f}"


def describe_continuous(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """
    Distribution statistics for continuous variables.

    Args:
        df: Dataset
        columns: Numeric columns to describe (absent columns are skipped)

    Returns:
        DataFrame with one row per variable
    """
    available = [c for c in columns if c in df.columns]
    skipped = [c for c in columns if c not in df.columns]
    if skipped:
        logger.warning(f"Skipping columns not in dataset: {skipped}")

    rows = []
    for col in available:
        # bool columns count as 0/1
        vals = pd.to_numeric(df[col], errors="coerce").astype(float).dropna()
        n = len(vals)
        rows.append({
            "Variable": col,
            "N": n,
            "Missing": int(len(df) - n),
            "Mean": vals.mean() if n else np.nan,
            "SD": vals.std() if n > 1 else np.nan,
            "Median": vals.median() if n else np.nan,
            "Q1": vals.quantile(0.25) if n else np.nan,
            "Q3": vals.quantile(0.75) if n else np.nan,
            "Min": vals.min() if n else np.nan,
            "Max": vals.max() if n else np.nan,
            "Skewness": sp_stats.skew(vals) if n > 2 else np.nan,
            "Kurtosis": sp_stats.kurtosis(vals) if n > 3 else np.nan,
        })

    return pd.DataFrame(rows, columns=[
        "Variable", "N", "Missing", "Mean", "SD", "Median", "Q1", "Q3",
        "Min", "Max", "Skewness", "Kurtosis",
    ])


def _continuous_stat(vals: pd.Series, statistic: str, digits: int) -> str:
    vals = vals.dropna()
    if len(vals) == 0:
        return ""
    if statistic == "mean_sd":
        sd = vals.std() if len(vals) > 1 else np.nan
        sd_str = "NA" if np.isnan(sd) else f"{sd:.{digits}f}"
        return f"{vals.mean():.{digits}f} ({sd_str})"
    q1, med, q3 = vals.quantile([0.25, 0.5, 0.75])
    return f"{med:.{digits}f} ({q1:.{digits}f}, {q3:.{digits}f})"


def _count_pct(count: int, total: int) -> str:
    pct = 100 * count / total if total else 0.0
    return f"{count} ({pct:.1f}%)"


def compare_continuous(groups: List[pd.Series], statistic: str = "mean_sd") -> float:
    """
    Group comparison p-value for a continuous variable.

    Two groups: Welch t-test (mean_sd) or Mann-Whitney U (median_iqr).
    More groups: one-way ANOVA (mean_sd) or Kruskal-Wallis (median_iqr).
    """
    samples = [g.dropna().to_numpy(dtype=float) for g in groups]
    samples = [s for s in samples if len(s) > 0]
    if len(samples) < 2 or any(len(s) < 2 for s in samples):
        return np.nan
    if all(np.ptp(s) == 0 for s in samples):
        return np.nan

    if len(samples) == 2:
        if statistic == "mean_sd":
            _, p = sp_stats.ttest_ind(samples[0], samples[1], equal_var=False)
        else:
            _, p = sp_stats.mannwhitneyu(samples[0], samples[1], alternative="two-sided")
    else:
        if statistic == "mean_sd":
            _, p = sp_stats.f_oneway(*samples)
        else:
            _, p = sp_stats.kruskal(*samples)
    return float(p)


def compare_categorical(values: pd.Series, groups: pd.Series) -> float:
    """
    Chi-square test of independence, or Fisher's exact test for a 2x2 table
    with any expected count below 5.
    """
    table = pd.crosstab(values, groups)
    if table.shape[0] < 2 or table.shape[1] < 2:
        return np.nan

    chi2, p, dof, expected = sp_stats.chi2_contingency(table, correction=False)
    if table.shape == (2, 2) and (expected < 5).any():
        _, p = sp_stats.fisher_exact(table.to_numpy())
    return float(p)


def summarize_table(
    df: pd.DataFrame,
    variables: Sequence[str],
    by: Optional[str] = None,
    categorical: Optional[Sequence[str]] = None,
    statistic: Literal["mean_sd", "median_iqr"] = "mean_sd",
    labels: Optional[Dict[str, str]] = None,
    add_p: bool = True,
    digits: int = 1,
) -> pd.DataFrame:
    """
    Build a Table-1 style summary.

    Args:
        df: Dataset with one row per subject
        variables: Variables to summarize (absent columns are skipped)
        by: Optional grouping column for stratified columns
        categorical: Columns to treat as categorical even if numeric
        statistic: 'mean_sd' or 'median_iqr' for continuous variables
        labels: Display labels for variable names
        add_p: Add group comparison p-values (only with `by`)
        digits: Decimal places for continuous statistics

    Returns:
        DataFrame with columns Variable, Level, Overall, per-group and p-value
    """
    if statistic not in ("mean_sd", "median_iqr"):
        raise ValueError(f"Unknown statistic: {statistic}")

    labels = labels or {}
    categorical = set(categorical or [])

    if by is not None:
        if by not in df.columns:
            raise KeyError(f"Grouping column not in dataset: {by}")
        n_dropped = int(df[by].isna().sum())
        if n_dropped:
            logger.warning(f"Dropping {n_dropped} rows with missing '{by}'")
        df = df[df[by].notna()]

    available = [v for v in variables if v in df.columns and v != by]
    skipped = [v for v in variables if v not in df.columns]
    if skipped:
        logger.warning(f"Skipping variables not in dataset: {skipped}")

    overall_col = f"Overall (N={len(df)})"
    group_cols: Dict[object, str] = {}
    if by is not None:
        by_series = df[by]
        if isinstance(by_series.dtype, pd.CategoricalDtype):
            levels = [lv for lv in by_series.cat.categories if (by_series == lv).any()]
        else:
            levels = sorted(by_series.unique(), key=str)
        for level in levels:
            group_cols[level] = f"{level} (N={int((by_series == level).sum())})"

    with_p = add_p and by is not None
    columns = ["Variable", "Level", overall_col] + list(group_cols.values())
    if with_p:
        columns.append("p-value")

    rows = []
    for var in available:
        label = labels.get(var, var)
        series = df[var]

        if var in categorical or is_categorical(series):
            rows.extend(_categorical_rows(df, var, label, by, group_cols, overall_col, with_p))
        else:
            rows.extend(_continuous_rows(
                df, var, label, by, group_cols, overall_col, with_p, statistic, digits
            ))

    logger.info(
        f"Summarized {len(available)} variables"
        + (f" by '{by}' ({len(group_cols)} groups)" if by else "")
    )
    return pd.DataFrame(rows, columns=columns).fillna("")


def _continuous_rows(df, var, label, by, group_cols, overall_col, with_p, statistic, digits):
    values = pd.to_numeric(df[var], errors="coerce")
    row = {"Variable": label, "Level": "", overall_col: _continuous_stat(values, statistic, digits)}
    groups = []
    for level, col in group_cols.items():
        group_vals = values[df[by] == level]
        groups.append(group_vals)
        row[col] = _continuous_stat(group_vals, statistic, digits)
    if with_p:
        row["p-value"] = format_pvalue(compare_continuous(groups, statistic))

    rows = [row]
    rows.extend(_missing_row(values, label, df, by, group_cols, overall_col))
    return rows


def _categorical_rows(df, var, label, by, group_cols, overall_col, with_p):
    values = df[var]
    header = {"Variable": label, "Level": "", overall_col: ""}
    for col in group_cols.values():
        header[col] = ""
    if with_p:
        mask = values.notna()
        header["p-value"] = format_pvalue(compare_categorical(values[mask], df.loc[mask, by]))

    if isinstance(values.dtype, pd.CategoricalDtype):
        levels = list(values.cat.categories)
    else:
        levels = sorted(values.dropna().unique(), key=str)

    rows = [header]
    total = int(values.notna().sum())
    for level in levels:
        row = {"Variable": label, "Level": str(level),
               overall_col: _count_pct(int((values == level).sum()), total)}
        for group_level, col in group_cols.items():
            group_vals = values[df[by] == group_level]
            row[col] = _count_pct(int((group_vals == level).sum()), int(group_vals.notna().sum()))
        rows.append(row)

    rows.extend(_missing_row(values, label, df, by, group_cols, overall_col))
    return rows


def _missing_row(values, label, df, by, group_cols, overall_col):
    n_missing = int(values.isna().sum())
    if n_missing == 0:
        return []
    row = {"Variable": label, "Level": "Missing", overall_col: str(n_missing)}
    for level, col in group_cols.items():
        row[col] = str(int(values[df[by] == level].isna().sum()))
    return [row]
