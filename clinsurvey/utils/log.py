"""
Logging setup shared by the pipeline scripts.
"""

from datetime import datetime
from pathlib import Path
from typing import Union

from loguru import logger


def setup_logging(output_dir: Union[str, Path], name: str) -> Path:
    """
    Configure logging.

    Adds a DEBUG file sink at <output_dir>/logs/<name>_<timestamp>.log next to
    loguru's default stderr sink.

    Returns:
        Path of the log file
    """
    log_file = Path(output_dir) / "logs" / f"{name}_{datetime.now():%Y%m%d_%H%M%S}.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(log_file, rotation="10 MB", level="DEBUG")
    return log_file
