import logging
import os
from pathlib import Path
from typing import Optional

from cordline.runtime_config import LOG_LEVEL_ENV, get_data_dir

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_file: Optional[Path] = None) -> Path:
    """
    Send all log records to a file; the terminal belongs to the prompt.

    Returns the path of the log file.
    """
    if log_file is None:
        log_dir = get_data_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "cordline.log"

    level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_cordline", False):
            root.removeHandler(handler)
            handler.close()

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    file_handler._cordline = True  # type: ignore[attr-defined]

    root.addHandler(file_handler)
    root.setLevel(level)
    return log_file
