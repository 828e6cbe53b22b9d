from .base import BaseDatasetLoader, DatasetInfo, select_available
from .spreadsheet import SurveySpreadsheetLoader

__all__ = ["BaseDatasetLoader", "DatasetInfo", "SurveySpreadsheetLoader", "select_available"]
