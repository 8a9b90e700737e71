"""recispace's Configuration Module

"""
from __future__ import annotations
__all__ = ['RSConfig', 'rsconfig', 'NDArray', 'INDEX_MODES']

import numpy as np

from recispace import logger

INDEX_MODES = ('wrap', 'strict')
"""Supported policies for Miller indices lying outside a dense grid"""


class RSConfig:
    """recispace's configuration Manager.

    An instance of it is generated at the top-level when the library is loaded
    and is named as `rsconfig`. Refer below for available config options.
    """

    # Default values
    _LOGFILE_DEFAULT_DIR = './recispace.log'

    _logging_enabled: bool = False
    @property  # noqa : E301
    def logging_enabled(self) -> bool:
        """True if logging is enabled, else False. Note: Unless `init_logfile` is
        called atleast once, logs are not written to a logfile."""
        return self._logging_enabled

    @logging_enabled.setter
    def logging_enabled(self, val: bool):
        if not isinstance(val, bool):
            raise TypeError("'logging_enabled' must be a boolean. "
                            f"got {val} (type {type(val)}).")
        self._logging_enabled = val
        from logging import getLogger
        getLogger(logger.LOGGER_NAME).disabled = not val

    logfile_dir: str = _LOGFILE_DEFAULT_DIR
    """Path of the log file"""

    def init_logfile(self):  # noqa : E301
        """Initializes the Logging FileHandler and hooks it to recispace's logger.
        Refer to the `logger` submodule"""
        logger.rslogger_set_filehandle(self.logfile_dir)

    _miller_index_mode: str = 'wrap'
    @property  # noqa : E301
    def miller_index_mode(self) -> str:
        """Policy for Miller indices outside the bounds of a dense grid.
        ``'wrap'`` (default) maps them back into the grid modulo its size;
        ``'strict'`` raises `recispace.errors.MillerIndexError`. Grids
        created with an explicit ``index_mode`` ignore this option."""
        return self._miller_index_mode

    @miller_index_mode.setter
    def miller_index_mode(self, val: str):
        if val not in INDEX_MODES:
            raise ValueError("'miller_index_mode' must be one of the following: "
                             f"{str(INDEX_MODES)[1:-1]}. got {val}")
        self._miller_index_mode = val

    _fft_threads: int = 1
    @property  # noqa : E301
    def fft_threads(self) -> int:
        """Number of workers passed to `scipy.fft` routines"""
        return self._fft_threads

    @fft_threads.setter
    def fft_threads(self, val: int):
        if not isinstance(val, int) or val < 1:
            raise ValueError("'fft_threads' must be a positive integer. "
                             f"got {val} (type {type(val)})")
        self._fft_threads = val

    _approx_rtol: float = 1e-5
    @property  # noqa : E301
    def approx_rtol(self) -> float:
        """Default relative tolerance of `MillerGrid.approx_equal`"""
        return self._approx_rtol

    @approx_rtol.setter
    def approx_rtol(self, val: float):
        if not isinstance(val, (int, float)) or val < 0:
            raise ValueError("'approx_rtol' must be a non-negative number. "
                             f"got {val} (type {type(val)})")
        self._approx_rtol = float(val)

    _approx_atol: float = 1e-8
    @property  # noqa : E301
    def approx_atol(self) -> float:
        """Default absolute tolerance of `MillerGrid.approx_equal`"""
        return self._approx_atol

    @approx_atol.setter
    def approx_atol(self, val: float):
        if not isinstance(val, (int, float)) or val < 0:
            raise ValueError("'approx_atol' must be a non-negative number. "
                             f"got {val} (type {type(val)})")
        self._approx_atol = float(val)


rsconfig: RSConfig = RSConfig()
NDArray = np.ndarray
