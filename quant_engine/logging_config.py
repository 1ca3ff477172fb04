"""
Process-level logging setup.

Library modules only ever call ``logging.getLogger(__name__)``; the
embedding application (API worker, notebook, batch job) calls
:func:`configure_logging` once at startup.
"""

import logging
import os
from typing import Optional, Union

from dotenv import load_dotenv

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_LEVEL_ENV = "QE_LOG_LEVEL"


def configure_logging(level: Optional[Union[int, str]] = None, *, force: bool = False) -> int:
    """
    Configure the root logger with the engine's standard format.

    ``level`` wins over the ``QE_LOG_LEVEL`` environment variable, which
    wins over INFO.  Returns the numeric level applied.

    Raises:
        ValueError: if the level name is not a standard logging level.
    """
    if level is None:
        load_dotenv()
        level = os.getenv(LOG_LEVEL_ENV, "INFO")

    if isinstance(level, str):
        numeric = logging.getLevelName(level.strip().upper())
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown log level: {level!r}")
    else:
        numeric = level

    logging.basicConfig(level=numeric, format=LOG_FORMAT, force=force)
    logging.getLogger("quant_engine").setLevel(numeric)
    return numeric
