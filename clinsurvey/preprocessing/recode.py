"""
Column recoding and relabeling for survey data.

Coded survey variables (e.g. gender 1/2, injury severity 1-3) are mapped to
readable category labels, and column names are mapped to display labels for
tables and plots. Relabeling only ever touches names, never values.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from loguru import logger

# Severity bands (Kroenke et al., 2001): lower bounds are inclusive
PHQ9_SEVERITY_CUTOFFS = [0, 5, 10, 15, 20, 28]
PHQ9_SEVERITY_NAMES = ["Minimal", "Mild", "Moderate", "Moderately severe", "Severe"]


class ColumnRecoder:
    """
    Applies value codes and display labels to a survey dataset.

    Example:
        recoder = ColumnRecoder(
            value_codes={"gender": {1: "Male", 2: "Female"}},
            labels={"phq9_total": "Depression (PHQ-9)"},
        )
        df = recoder.recode(df)
        table = summarize_table(df, variables, labels=recoder.labels)
    """

    def __init__(
        self,
        value_codes: Optional[Dict[str, Dict]] = None,
        labels: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize ColumnRecoder.

        Args:
            value_codes: Per-column mapping from stored code to category label
            labels: Per-column display label
        """
        self.value_codes = value_codes or {}
        self.labels = labels or {}

    def recode(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Map coded values to category labels.

        Each recoded column becomes an ordered categorical following the code
        order in the mapping. Values without a mapping become missing.

        Returns:
            Recoded copy of the dataset
        """
        df = df.copy()
        for col, mapping in self.value_codes.items():
            if col not in df.columns:
                logger.warning(f"Cannot recode '{col}': column not in dataset")
                continue

            lookup = _normalize_codes(mapping)
            original = df[col]
            mapped = original.map(lambda v: lookup.get(_code_key(v), np.nan))

            unmapped = original.notna() & mapped.isna()
            if unmapped.any():
                logger.warning(
                    f"'{col}': {int(unmapped.sum())} values without a code "
                    f"({sorted(original[unmapped].astype(str).unique())}) set to missing"
                )

            categories = list(dict.fromkeys(lookup.values()))
            df[col] = pd.Categorical(mapped, categories=categories, ordered=True)

        return df

    def relabel(self, df: pd.DataFrame) -> pd.DataFrame:
        """Copy of the dataset with display labels as column names."""
        return df.rename(columns=self.labels)

    def label_for(self, column: str) -> str:
        """Display label for a column (the column name if none is set)."""
        return self.labels.get(column, column)

    def labels_for(self, columns: Sequence[str]) -> List[str]:
        return [self.label_for(c) for c in columns]


def categorize(
    df: pd.DataFrame,
    column: str,
    cutoffs: Sequence[float],
    names: Sequence[str],
    new_column: Optional[str] = None,
) -> pd.DataFrame:
    """
    Bin a continuous score into ordered categories.

    Args:
        df: Dataset
        column: Score column to bin
        cutoffs: Bin edges, lower bounds inclusive (len(names) + 1 values)
        names: Category names
        new_column: Output column (default: '<column>_category')

    Returns:
        Copy of the dataset with the new categorical column
    """
    if len(cutoffs) != len(names) + 1:
        raise ValueError(
            f"Need {len(names) + 1} cutoffs for {len(names)} categories, got {len(cutoffs)}"
        )
    if column not in df.columns:
        raise KeyError(f"Column not in dataset: {column}")

    df = df.copy()
    new_column = new_column or f"{column}_category"
    df[new_column] = pd.cut(
        pd.to_numeric(df[column], errors="coerce"),
        bins=list(cutoffs),
        labels=list(names),
        right=False,
        ordered=True,
    )
    return df


def _code_key(value):
    """Codes read from YAML or spreadsheets may be '1', 1 or 1.0."""
    if isinstance(value, (bool, np.bool_)):
        return value
    if isinstance(value, (int, float, np.integer, np.floating)):
        if np.isnan(value):
            return None
        if float(value).is_integer():
            return int(value)
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        try:
            return _code_key(float(stripped))
        except ValueError:
            return stripped
    return value


def _normalize_codes(mapping: Dict) -> Dict:
    return {_code_key(k): v for k, v in mapping.items()}
