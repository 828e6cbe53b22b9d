"""
Spreadsheet dataset loader.

Loads a clinical survey dataset exported from a spreadsheet:
- Excel workbooks (.xlsx, .xls) via openpyxl
- Delimited text (.csv)
- Parquet (.parquet)

Column names are stripped of surrounding whitespace and fully empty rows
(common at the bottom of hand-maintained sheets) are dropped.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd
from loguru import logger

from .base import BaseDatasetLoader

SUPPORTED_SUFFIXES = (".xlsx", ".xls", ".csv", ".parquet")


class SurveySpreadsheetLoader(BaseDatasetLoader):
    """
    Loader for a single-sheet survey dataset.

    Config keys (all optional):
        sheet: Sheet name or index for Excel files (default: first sheet)
        id_column: Subject identifier column, used as the index if present
        na_values: Extra strings to treat as missing (e.g. ["NA", "-", "999"])
    """

    def __init__(self, data_path: Path, config: Optional[Dict] = None):
        super().__init__(data_path, config)
        if self.data_path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise ValueError(
                f"Unsupported file format '{self.data_path.suffix}'. "
                f"Expected one of {SUPPORTED_SUFFIXES}"
            )

    def load(self) -> pd.DataFrame:
        """Load and tidy the dataset."""
        suffix = self.data_path.suffix.lower()
        na_values: List[str] = list(self.config.get("na_values") or [])

        if suffix in (".xlsx", ".xls"):
            sheet: Union[str, int] = self.config.get("sheet", 0)
            df = pd.read_excel(self.data_path, sheet_name=sheet, na_values=na_values or None)
        elif suffix == ".csv":
            df = pd.read_csv(self.data_path, na_values=na_values or None)
        else:
            df = pd.read_parquet(self.data_path)

        df.columns = [str(c).strip() for c in df.columns]

        n_before = len(df)
        df = df.dropna(how="all")
        if len(df) < n_before:
            logger.info(f"Dropped {n_before - len(df)} empty rows")

        id_column = self.config.get("id_column")
        if id_column:
            if id_column in df.columns:
                if df[id_column].duplicated().any():
                    logger.warning(f"Duplicate subject IDs in '{id_column}'")
                df = df.set_index(id_column)
            else:
                logger.warning(f"ID column '{id_column}' not found, keeping default index")

        logger.info(f"Loaded {self.data_path.name}: {df.shape[0]} subjects x {df.shape[1]} variables")
        return df
