"""
Correlation matrix annotation for heatmap plots.

Turns a set of numeric survey variables into a long-form table of
(row variable, column variable, r, p, marker, hover text) rows:
- Pairwise Pearson/Spearman coefficients with matching p-values
- One triangular half only (no self-pairs unless asked, no mirrored duplicates)
- Significance stars by p-value threshold
- Optional multiple comparison correction (FDR, Bonferroni, Holm)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.multitest import multipletests
from loguru import logger

# Substituted for undefined p-values under the "sentinel" policy.
SENTINEL_P = 1e-7

NOT_APPLICABLE = "n/a"

DEFAULT_THRESHOLDS: Tuple[Tuple[float, str], ...] = (
    (0.001, "***"),
    (0.01, "**"),
    (0.05, "*"),
)

ANNOTATION_COLUMNS = [
    "row_var",
    "col_var",
    "r",
    "p",
    "p_adjusted",
    "n",
    "ci_lower",
    "ci_upper",
    "marker",
    "strength",
    "hover",
]


@dataclass
class CorrelationConfig:
    """Configuration for correlation annotation."""

    method: Literal["pearson", "spearman"] = "pearson"
    triangle: Literal["lower", "upper"] = "lower"
    include_diagonal: bool = False
    undefined_p: Literal["not_applicable", "sentinel"] = "not_applicable"
    correction: Literal["none", "fdr_bh", "bonferroni", "holm"] = "none"
    use_adjusted: bool = False
    min_samples: int = 3
    thresholds: List[Tuple[float, str]] = field(
        default_factory=lambda: list(DEFAULT_THRESHOLDS)
    )

    def __post_init__(self):
        if self.method not in ("pearson", "spearman"):
            raise ValueError(f"Unknown correlation method: {self.method}")
        if self.triangle not in ("lower", "upper"):
            raise ValueError(f"Unknown triangle: {self.triangle}")
        if self.undefined_p not in ("not_applicable", "sentinel"):
            raise ValueError(f"Unknown undefined p-value policy: {self.undefined_p}")
        if self.correction not in ("none", "fdr_bh", "bonferroni", "holm"):
            raise ValueError(f"Unknown correction method: {self.correction}")
        self.thresholds = validate_thresholds(self.thresholds)


def validate_thresholds(
    thresholds: Sequence[Sequence],
) -> List[Tuple[float, str]]:
    """
    Normalize threshold pairs and sort them strictest first.

    Args:
        thresholds: Iterable of (p-value cutoff, marker symbol) pairs

    Returns:
        List of (float, str) tuples ordered by ascending cutoff
    """
    normalized = []
    for pair in thresholds:
        if len(pair) != 2:
            raise ValueError(f"Threshold must be a (cutoff, symbol) pair, got {pair!r}")
        cutoff, symbol = float(pair[0]), str(pair[1])
        if not 0 < cutoff < 1:
            raise ValueError(f"Threshold cutoff must lie in (0, 1), got {cutoff}")
        normalized.append((cutoff, symbol))

    cutoffs = [c for c, _ in normalized]
    if len(set(cutoffs)) != len(cutoffs):
        raise ValueError(f"Duplicate threshold cutoffs: {cutoffs}")

    return sorted(normalized, key=lambda pair: pair[0])


def significance_marker(
    p: float,
    thresholds: Sequence[Tuple[float, str]] = DEFAULT_THRESHOLDS,
) -> str:
    """
    Map a p-value to its significance marker.

    Thresholds are checked strictest first and a p-value equal to a cutoff
    counts as clearing it, so p = 0.01 gets "**" and p = 0.0005 gets "***".
    Undefined p-values get the "n/a" marker.
    """
    if p is None or np.isnan(p):
        return NOT_APPLICABLE
    for cutoff, symbol in sorted(thresholds, key=lambda pair: pair[0]):
        if p <= cutoff:
            return symbol
    return ""


def interpret_strength(r: float) -> str:
    """
    Cohen's conventions for |r|:
    - |r| < 0.1: negligible
    - 0.1 <= |r| < 0.3: small
    - 0.3 <= |r| < 0.5: medium
    - |r| >= 0.5: large
    """
    if r is None or np.isnan(r):
        return NOT_APPLICABLE
    effect = abs(r)
    if effect < 0.1:
        return "negligible"
    elif effect < 0.3:
        return "small"
    elif effect < 0.5:
        return "medium"
    else:
        return "large"


def fisher_ci(r: float, n: int, alpha: float = 0.05) -> Tuple[float, float]:
    """Fisher z-transformation confidence interval."""
    if np.isnan(r) or np.isnan(n) or n <= 3:
        return (np.nan, np.nan)

    # Avoid division by zero
    r = np.clip(r, -0.9999, 0.9999)

    z = np.arctanh(r)
    se = 1 / np.sqrt(n - 3)
    z_crit = stats.norm.ppf(1 - alpha / 2)

    return (float(np.tanh(z - z_crit * se)), float(np.tanh(z + z_crit * se)))


def format_p(p: float) -> str:
    """Human-readable p-value for captions."""
    if p is None or np.isnan(p):
        return NOT_APPLICABLE
    if p < 0.001:
        return "p < 0.001"
    return f"p = {p:.3g}"


def hover_text(row_var: str, col_var: str, r: float, p: float, marker: str) -> str:
    """Caption combining the pair, coefficient, p-value and marker."""
    r_str = "n/a" if r is None or np.isnan(r) else f"{r:.2f}"
    p_str = format_p(p)
    if marker and marker != NOT_APPLICABLE:
        p_str = f"{p_str} {marker}"
    return f"{row_var} vs {col_var}<br>r = {r_str}<br>{p_str}"


def correlation_matrices(
    df: pd.DataFrame,
    columns: Sequence[str],
    method: str = "pearson",
    min_samples: int = 3,
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """
    Compute pairwise correlation, p-value and sample-size matrices.

    Uses pairwise-complete observations. The diagonal has r = 1 and an
    undefined p-value; pairs with fewer than min_samples observations or a
    constant column have undefined r and p.

    Args:
        df: Dataset with one row per subject
        columns: Numeric columns to correlate
        method: 'pearson' or 'spearman'
        min_samples: Minimum complete pairs for a defined coefficient

    Returns:
        Tuple of (r_matrix, p_matrix, n_matrix) DataFrames indexed by column name
    """
    if method not in ("pearson", "spearman"):
        raise ValueError(f"Unknown correlation method: {method}")

    columns = list(columns)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(f"Columns not in dataset: {missing}")
    if len(columns) < 2:
        raise ValueError(f"Need at least 2 columns to correlate, got {len(columns)}")

    data = df[columns].apply(pd.to_numeric, errors="coerce").to_numpy(dtype=float)
    k = len(columns)

    r_mat = np.full((k, k), np.nan)
    p_mat = np.full((k, k), np.nan)
    n_mat = np.zeros((k, k), dtype=int)

    for i in range(k):
        n_mat[i, i] = int(np.sum(~np.isnan(data[:, i])))
        r_mat[i, i] = 1.0

        for j in range(i + 1, k):
            x = data[:, i]
            y = data[:, j]

            # Remove NaN pairs
            mask = ~(np.isnan(x) | np.isnan(y))
            x_clean = x[mask]
            y_clean = y[mask]
            n = len(x_clean)
            n_mat[i, j] = n_mat[j, i] = n

            if n < min_samples:
                logger.warning(
                    f"Too few paired observations for {columns[i]} vs {columns[j]} "
                    f"(n={n} < {min_samples})"
                )
                continue
            if np.ptp(x_clean) == 0 or np.ptp(y_clean) == 0:
                logger.warning(
                    f"Constant values in {columns[i]} vs {columns[j]}, correlation undefined"
                )
                continue

            if method == "pearson":
                r, p = stats.pearsonr(x_clean, y_clean)
            else:
                r, p = stats.spearmanr(x_clean, y_clean)

            r_mat[i, j] = r_mat[j, i] = float(r)
            p_mat[i, j] = p_mat[j, i] = float(p)

    return (
        pd.DataFrame(r_mat, index=columns, columns=columns),
        pd.DataFrame(p_mat, index=columns, columns=columns),
        pd.DataFrame(n_mat, index=columns, columns=columns),
    )


def triangle_pairs(
    names: Sequence[str],
    triangle: str = "lower",
    include_diagonal: bool = False,
) -> List[Tuple[str, str]]:
    """
    (row, column) pairs of one triangular half, in column-major order.

    For names [A, B, C] the lower triangle without diagonal is
    [(B, A), (C, A), (C, B)] and the upper is [(A, B), (A, C), (B, C)].
    """
    names = list(names)
    pairs = []
    for j, col in enumerate(names):
        for i, row in enumerate(names):
            if i == j and not include_diagonal:
                continue
            if triangle == "lower" and i >= j:
                pairs.append((row, col))
            elif triangle == "upper" and i <= j:
                pairs.append((row, col))
    return pairs


def annotate_correlations(
    r_matrix: pd.DataFrame,
    p_matrix: pd.DataFrame,
    config: Optional[CorrelationConfig] = None,
    n_matrix: Optional[pd.DataFrame] = None,
    labels: Optional[Dict[str, str]] = None,
) -> pd.DataFrame:
    """
    Flatten a correlation matrix into a long-form annotation table.

    Args:
        r_matrix: Square matrix of coefficients indexed by variable name
        p_matrix: Matching square matrix of p-values
        config: Annotation configuration
        n_matrix: Optional matching matrix of pairwise sample sizes
        labels: Optional display labels for variable names

    Returns:
        DataFrame with ANNOTATION_COLUMNS, one row per retained pair
    """
    config = config or CorrelationConfig()
    labels = labels or {}

    names = list(r_matrix.columns)
    if list(r_matrix.index) != names:
        raise ValueError("Correlation matrix must be square with matching index and columns")
    if list(p_matrix.index) != names or list(p_matrix.columns) != names:
        raise ValueError("p-value matrix must match the correlation matrix layout")

    display = [labels.get(name, name) for name in names]
    collisions = {
        label: [name for name, shown in zip(names, display) if shown == label]
        for label in display
        if display.count(label) > 1
    }
    if collisions:
        raise ValueError(f"Display labels must be unique, got collisions: {collisions}")
    display_of = dict(zip(names, display))

    rows = []
    for row_var, col_var in triangle_pairs(names, config.triangle, config.include_diagonal):
        is_diagonal = row_var == col_var
        r = float(r_matrix.loc[row_var, col_var])
        p = float(p_matrix.loc[row_var, col_var])
        if is_diagonal:
            # Self-correlation has no meaningful test
            p = np.nan
        if np.isnan(p) and config.undefined_p == "sentinel":
            p = SENTINEL_P
        n = int(n_matrix.loc[row_var, col_var]) if n_matrix is not None else np.nan
        ci_lower, ci_upper = (np.nan, np.nan) if is_diagonal else fisher_ci(r, n)
        rows.append(
            {
                "row_var": display_of[row_var],
                "col_var": display_of[col_var],
                "r": r,
                "p": p,
                "n": n,
                "ci_lower": ci_lower,
                "ci_upper": ci_upper,
                "is_diagonal": is_diagonal,
            }
        )

    table = pd.DataFrame(
        rows,
        columns=["row_var", "col_var", "r", "p", "n", "ci_lower", "ci_upper", "is_diagonal"],
    )
    table["p_adjusted"] = _adjust_pvalues(table, config)

    marker_p = table["p_adjusted"] if config.use_adjusted else table["p"]
    table["marker"] = [significance_marker(p, config.thresholds) for p in marker_p]
    table["strength"] = [interpret_strength(r) for r in table["r"]]
    table["hover"] = [
        hover_text(row.row_var, row.col_var, row.r, p, row.marker)
        for row, p in zip(table.itertuples(index=False), marker_p)
    ]

    self_pairs = table["is_diagonal"].tolist()
    table = table[ANNOTATION_COLUMNS].reset_index(drop=True)
    # Variable order for rebuilding the matrix in plots
    table.attrs["variables"] = display
    table.attrs["self_pairs"] = self_pairs
    return table


def self_pair_mask(annotations: pd.DataFrame) -> pd.Series:
    """
    Boolean mask of the self-pair rows of an annotation table.

    Uses the flags recorded by annotate_correlations while the table is
    unfiltered, otherwise compares the (unique) display labels.
    """
    flags = annotations.attrs.get("self_pairs")
    if flags is not None and len(flags) == len(annotations):
        return pd.Series(flags, index=annotations.index, dtype=bool)
    return annotations["row_var"] == annotations["col_var"]


def variable_order(annotations: pd.DataFrame) -> List[str]:
    """
    Variable order of an annotation table.

    Uses the order recorded by annotate_correlations when available,
    otherwise the order of first appearance.
    """
    recorded = annotations.attrs.get("variables")
    present = set(annotations["row_var"]) | set(annotations["col_var"])
    if recorded and present <= set(recorded):
        return [v for v in recorded if v in present]
    return list(pd.unique(pd.concat([annotations["col_var"], annotations["row_var"]])))


def annotation_matrix(
    annotations: pd.DataFrame,
    value: str = "r",
    order: Optional[Sequence[str]] = None,
    trim: bool = True,
) -> pd.DataFrame:
    """
    Pivot one column of an annotation table back into a square layout.

    Cells outside the retained triangle are NaN. With trim=True, rows and
    columns that hold no retained pair are dropped, so a lower triangle of
    n variables without the diagonal becomes an (n-1) x (n-1) grid.

    Args:
        annotations: Long-form table from annotate_correlations
        value: Column to place in the cells
        order: Variable order (default: variable_order(annotations))
        trim: Drop rows/columns without retained pairs

    Returns:
        DataFrame indexed by row variable with column variables as columns
    """
    order = list(order) if order is not None else variable_order(annotations)
    matrix = annotations.pivot(index="row_var", columns="col_var", values=value)
    matrix = matrix.reindex(index=order, columns=order)

    if trim:
        rows = [v for v in order if v in set(annotations["row_var"])]
        cols = [v for v in order if v in set(annotations["col_var"])]
        matrix = matrix.loc[rows, cols]

    matrix.index.name = None
    matrix.columns.name = None
    return matrix


def _adjust_pvalues(table: pd.DataFrame, config: CorrelationConfig) -> pd.Series:
    """Apply multiple comparison correction to the off-diagonal pairs."""
    adjusted = table["p"].astype(float).copy()
    if config.correction == "none" or table.empty:
        return adjusted

    testable = (~table["is_diagonal"]) & table["p"].notna()
    if config.undefined_p == "sentinel":
        testable &= table["p"] != SENTINEL_P
    if testable.sum() == 0:
        return adjusted

    _, p_adj, _, _ = multipletests(
        table.loc[testable, "p"].to_numpy(), method=config.correction
    )
    adjusted.loc[testable] = p_adj
    return adjusted


class CorrelationAnnotator:
    """
    Computes and annotates a correlation matrix for a set of survey variables.

    Example:
        annotator = CorrelationAnnotator(CorrelationConfig(method="spearman"))
        table = annotator.fit(df, ["age", "phq9_total", "gad7_total"])
    """

    def __init__(self, config: Optional[CorrelationConfig] = None):
        self.config = config or CorrelationConfig()
        self.r_matrix: Optional[pd.DataFrame] = None
        self.p_matrix: Optional[pd.DataFrame] = None
        self.n_matrix: Optional[pd.DataFrame] = None
        self.annotations: Optional[pd.DataFrame] = None

    def fit(
        self,
        df: pd.DataFrame,
        columns: Sequence[str],
        labels: Optional[Dict[str, str]] = None,
    ) -> pd.DataFrame:
        """
        Compute matrices over the given columns and build the annotation table.

        Args:
            df: Dataset with one row per subject
            columns: Numeric variables to correlate
            labels: Optional display labels

        Returns:
            Long-form annotation table
        """
        logger.info(
            f"Computing {self.config.method} correlations for {len(columns)} variables "
            f"({len(df)} subjects)"
        )
        self.r_matrix, self.p_matrix, self.n_matrix = correlation_matrices(
            df, columns, method=self.config.method, min_samples=self.config.min_samples
        )
        self.annotations = annotate_correlations(
            self.r_matrix, self.p_matrix, self.config, n_matrix=self.n_matrix, labels=labels
        )
        logger.info(f"Annotated {len(self.annotations)} variable pairs")
        return self.annotations

    def summary(self) -> dict:
        """Summary statistics of the annotated pairs (diagonal excluded)."""
        if self.annotations is None or self.annotations.empty:
            return {}

        table = self.annotations
        off_diag = table[~self_pair_mask(table)]
        defined = off_diag["r"].dropna()
        significant = off_diag["marker"].isin([s for _, s in self.config.thresholds])

        return {
            "n_pairs": len(off_diag),
            "n_defined": len(defined),
            "n_significant": int(significant.sum()),
            "r_mean": float(defined.mean()) if len(defined) else np.nan,
            "r_abs_max": float(defined.abs().max()) if len(defined) else np.nan,
            "method": self.config.method,
        }

    def significant_pairs(self) -> pd.DataFrame:
        """Pairs that clear at least one threshold, strongest first."""
        if self.annotations is None:
            raise ValueError("No annotations yet. Call fit() first.")
        symbols = [s for _, s in self.config.thresholds]
        table = self.annotations[
            self.annotations["marker"].isin(symbols) & ~self_pair_mask(self.annotations)
        ]
        return table.reindex(table["r"].abs().sort_values(ascending=False).index)
