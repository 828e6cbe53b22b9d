"""
Base class for dataset loaders.

Provides a standardized interface for loading tabular survey datasets
(one row per subject, one column per measured variable).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd
from loguru import logger


@dataclass
class DatasetInfo:
    """Metadata about the loaded dataset."""

    name: str
    n_subjects: int
    n_variables: int
    numeric_columns: List[str]
    categorical_columns: List[str]
    missing_rate: Dict[str, float]


def select_available(
    df: pd.DataFrame,
    wishlist: Sequence[str],
    min_columns: int = 0,
) -> List[str]:
    """
    Intersect a wishlist of column names with the dataset's columns.

    Keeps wishlist order and logs the names that are not present.

    Args:
        df: Dataset
        wishlist: Requested column names
        min_columns: Raise if fewer columns than this remain

    Returns:
        Requested columns that exist in the dataset
    """
    available = [c for c in wishlist if c in df.columns]
    missing = [c for c in wishlist if c not in df.columns]
    if missing:
        logger.warning(f"Columns not found in dataset, skipped: {missing}")
    if len(available) < min_columns:
        raise ValueError(
            f"Need at least {min_columns} of the requested columns, "
            f"found {len(available)}: {available}"
        )
    return available


class BaseDatasetLoader(ABC):
    """
    Abstract base class for dataset loaders.

    Subclasses implement `load()`; metadata and column helpers are shared.
    """

    def __init__(self, data_path: Path, config: Optional[Dict] = None):
        """
        Initialize the loader.

        Args:
            data_path: Path to the dataset file
            config: Optional configuration dictionary
        """
        self.data_path = Path(data_path)
        self.config = config or {}
        self._data: Optional[pd.DataFrame] = None
        self._validate_data_path()

    def _validate_data_path(self) -> None:
        """Verify the dataset file exists."""
        if not self.data_path.exists():
            raise FileNotFoundError(f"Dataset not found: {self.data_path}")

    @abstractmethod
    def load(self) -> pd.DataFrame:
        """
        Load the dataset.

        Returns:
            DataFrame with one row per subject
        """
        pass

    @property
    def data(self) -> pd.DataFrame:
        """Loaded dataset, loading it on first access."""
        if self._data is None:
            self._data = self.load()
        return self._data

    def select(self, wishlist: Sequence[str], min_columns: int = 0) -> pd.DataFrame:
        """Subset of the dataset restricted to the available wishlist columns."""
        columns = select_available(self.data, wishlist, min_columns=min_columns)
        return self.data[columns]

    def get_dataset_info(self) -> DatasetInfo:
        """
        Get metadata about the dataset.

        Returns:
            DatasetInfo object with dataset statistics
        """
        df = self.data
        numeric = df.select_dtypes(include="number").columns.tolist()
        categorical = [c for c in df.columns if c not in numeric]
        return DatasetInfo(
            name=self.data_path.stem,
            n_subjects=len(df),
            n_variables=df.shape[1],
            numeric_columns=numeric,
            categorical_columns=categorical,
            missing_rate={c: float(df[c].isna().mean()) for c in df.columns},
        )
