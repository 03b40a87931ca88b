"""Package-wide defaults and logging configuration.

Extended Summary
----------------
Every analysis takes its options as keyword arguments. The defaults for
those keywords live here so that applications can read them (for example
to pre-fill a settings form) and so that the numbers are defined once.

Routine Listings
----------------
setup_logger : function
    Attach a formatted stream handler to the package logger
LOG_LEVEL_ENV : str
    Environment variable that sets the default log level

Notes
-----
The package logger has a ``NullHandler`` attached on import; nothing is
printed unless the application configures logging itself or calls
:func:`setup_logger`.
"""

import logging
import os
import sys

from beartype import beartype
from beartype.typing import Optional, Tuple, Union

LOG_LEVEL_ENV: str = "XTALYSIS_LOG_LEVEL"
LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# symmetry
DEFAULT_SYMPREC: float = 1e-3
BOUNDARY_FRACTION: float = 0.9
SYMMETRY_CACHE_SIZE: int = 32

# powder diffraction
DEFAULT_WAVELENGTH: float = 1.5406
DEFAULT_TWO_THETA_RANGE: Tuple[float, float] = (10.0, 90.0)
DEFAULT_MERGE_TOLERANCE: float = 0.05
DEFAULT_INTENSITY_CUTOFF: float = 1e-4
DEFAULT_DEBYE_WALLER_B: float = 0.0
MAX_REFLECTIONS: int = 2_000_000

# voids
DEFAULT_GRID_SPACING: float = 0.2
DEFAULT_PROBE: str = "He"
DEFAULT_RADIUS_SET: str = "vdw"
DEFAULT_CONNECTIVITY: int = 6
MAX_GRID_POINTS: int = 10_000_000

# slabs
DEFAULT_DUPLICATE_TOLERANCE: float = 1e-5
INITIAL_SEARCH_RANGE: int = 2
MAX_SEARCH_RANGE: int = 16


@beartype
def setup_logger(
    level: Optional[Union[int, str]] = None,
    name: str = "xtalysis",
) -> logging.Logger:
    """Attach a stream handler with the package log format.

    Parameters
    ----------
    level : Union[int, str], optional
        Logging level. Defaults to the value of ``XTALYSIS_LOG_LEVEL`` or
        ``WARNING`` when the variable is unset.
    name : str, optional
        Logger to configure. Default is the package root logger.

    Returns
    -------
    logging.Logger
        The configured logger. Calling this twice does not add a second
        handler.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "WARNING")
    if isinstance(level, str):
        level = level.upper()
    logger = logging.getLogger(name)
    logger.setLevel(level)
    has_stream = any(
        isinstance(handler, logging.StreamHandler)
        and not isinstance(handler, logging.NullHandler)
        for handler in logger.handlers
    )
    if not has_stream:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
