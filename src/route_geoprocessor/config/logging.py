"""
Centralized logging configuration for the route geoprocessor.

Entry points (the CLI, the background worker) call `setup_logging` once
before doing any work. Library modules only create their own loggers.
"""

import logging
import sys
from typing import Union


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure the root logger for the application.

    Parameters
    ----------
    level : int or str
        Logging level, either numeric or a name such as "DEBUG" (default: logging.INFO)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    # urllib3 is chatty at DEBUG for every pooled connection
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
