"""recispace's logging module.

This module manages logging of events/messages generated by recispace.
The module also provides timers to track/profile routines across the
package.

Notes
-----
The timers are automatically disabled when running in interactive mode to
prevent exceptions due to improper timer usage like, for example,
stopping an already stopped timer, accessing a non-existing timer, etc.
"""
from __future__ import annotations
from typing import Optional
__all__ = ['LOGGER_NAME', 'LOG_FORMAT', 'rslogger',
           'rslogger_set_filehandle',
           'RSTimer', 'RSLogger', 'warn',
           ]

import functools
import logging
import sys
import warnings
from pathlib import Path
from time import perf_counter, strftime

import numpy as np

LOGGER_NAME: str = 'recispace'
"""Global name of logger"""
LOG_FORMAT: str = "%(asctime)s - %(name)s - level %(levelno)s: %(message)s"
"""Basic Format for log messages:
"time - logger name - level #level: message"
"""

TIMER_TYPE: np.dtype = np.dtype([('label', 'U30'), ('call', 'i8'), ('time', 'f8'),
                                 ('status', 'b'), ('start_time', 'f8')])
"""Datatype of the NumPy Structured array used for storing timers in `RSTimer`
"""
MAX_ENTRIES: int = 500
"""Maximum number of timer entries"""


class RSTimer:
    """Timer Module of recispace. Part of `RSLogger`

    Manages a list of timers for tracking the wall-time of different sections
    of code. Provides a simple decorator to easily track the number of calls
    and total wall-time of the target function.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance with all handlers configured.

    Raises
    ------
    TypeError
        Raised if `logger` is not a `logging.Logger` instance

    Notes
    -----
    If running in interactive mode i.e, IPython/Jupyter Notebook, all timers
    are automatically disabled.
    """

    def __init__(self, logger: logging.Logger):
        if not isinstance(logger, logging.Logger):
            raise TypeError("'logger' must be a 'logging.Logger' instance. "
                            f"got {logger} (type {type(logger)})")
        self.logger: logging.Logger = logger
        """logger instance used to log events"""
        self.l_timer: np.ndarray = np.zeros(MAX_ENTRIES, dtype=TIMER_TYPE)
        """structured array containing timer data"""
        self.numtimer: int = 0
        """number of uniquely labeled timers"""

        # If running in interactive mode, disable timers by default.
        self.enable_timer: bool = not hasattr(sys, 'ps1')
        """If False, the module is disabled; all methods have no effect"""

    def _find_timer(self, label: str) -> Optional[int]:
        """Returns index of timer with input label if present, else None.

        Parameters
        ----------
        label : str
            Label of the timer to search

        Returns
        -------
        idx_timer : Optional[int]
            Index of timer in `l_timer` if found else None.

        Raises
        ------
        TypeError
            Raised if `label` is not a string
        """
        if not isinstance(label, str):
            raise TypeError("'label' must be a string. "
                            f"got {label} (type {type(label)})")
        idx = np.nonzero(self.l_timer['label'][:self.numtimer] == label)[0]
        if len(idx) == 0:
            return None
        elif len(idx) == 1:
            return int(idx[0])
        else:
            raise RuntimeError("found multiple timers with same label. This is a bug")

    def start_timer(self, label: str) -> None:
        """Starts a timer with input label, automatically initializing a new one
        if timer with given label does not exist.

        Raises
        -------
        ValueError
            Raised if the specified timer is already running.
        """
        itimer = self._find_timer(label)
        if itimer is None:
            if self.numtimer == MAX_ENTRIES:
                raise RuntimeError(f"number of timers exceeded {MAX_ENTRIES}.")
            self.l_timer[self.numtimer] = (label, 0, 0., False, 0.)
            itimer = self.numtimer
            self.numtimer += 1
            self.logger.debug("timer '%s' created.", label)

        timer = self.l_timer[itimer]
        if timer['status']:
            raise ValueError(f"timer '{label}' is already running.")
        timer['status'] = True
        timer['call'] += 1
        timer['start_time'] = perf_counter()

    def stop_timer(self, label: str) -> None:
        """Stops the timer with input label that is already running.

        Raises
        -------
        ValueError
            Raised if the specified timer is not running.
        """
        iclock = self._find_timer(label)
        if iclock is None:
            raise ValueError(f"timer '{label}' does not exist.")

        timer = self.l_timer[iclock]
        if not timer['status']:
            raise ValueError(f"timer '{label}' is not running.")
        timer['status'] = False
        delta = perf_counter() - timer['start_time']
        timer['time'] += delta
        self.logger.debug("timer '%s' stopped. delta: %8.3f sec.", label, delta)
        timer['start_time'] = 0

    def time(self, label: str):
        """Decorator for timing the runtimes of functions. Wraps the function with
        `start_timer` and `stop_timer` calls. Takes a string argument as label
        for timer

        This decorator is recommended over explicitly calling the timer start and stop
        methods to prevent mismatched calls (starting an already running timer /
        stopping a non-existent timer, etc.). The timer is stopped even when
        the wrapped function raises. Recursive calls are timed only at the
        outermost level.

        Parameters
        ----------
        label : str
            Label of the timer
        """
        def timer(func):
            @functools.wraps(func)
            def call_func(*args, **kwargs):
                if not self.enable_timer or self.is_running(label):
                    return func(*args, **kwargs)
                self.start_timer(label)
                try:
                    return func(*args, **kwargs)
                finally:
                    self.stop_timer(label)
            return call_func
        return timer

    def is_running(self, label: str) -> bool:
        """Returns True if the timer with input label exists and is running"""
        itimer = self._find_timer(label)
        return itimer is not None and bool(self.l_timer[itimer]['status'])

    def get_timer(self, label: str) -> tuple[int, float]:
        """Returns the number of calls and the total wall-time of a timer.

        Raises
        -------
        ValueError
            Raised if the specified timer does not exist.
        """
        itimer = self._find_timer(label)
        if itimer is None:
            raise ValueError(f"timer '{label}' does not exist.")
        timer = self.l_timer[itimer]
        return int(timer['call']), float(timer['time'])

    def reset_timer(self, label: str) -> None:
        """Resets the timer with input label.

        Raises
        -------
        ValueError
            Raised if the specified timer does not exist.
        """
        iclock = self._find_timer(label)
        if iclock is None:
            raise ValueError(f"timer '{label}' does not exist.")

        timer = self.l_timer[iclock]
        timer['status'] = False
        timer['call'], timer['time'] = 0, 0
        self.logger.debug("timer '%s' cleared.", label)

    def delete_timer(self, label: str) -> None:
        """Deletes the timer with input label.

        Raises
        -------
        ValueError
            Raised if the specified timer does not exist.
        """
        iclock = self._find_timer(label)
        if iclock is None:
            raise ValueError(f"timer '{label}' does not exist.")
        self.l_timer[iclock] = self.l_timer[self.numtimer - 1]
        self.numtimer -= 1
        self.logger.debug("timer '%s' deleted.", label)

    def __str__(self) -> str:
        """lists the status of all timers in a human-readable form"""
        out = f"{'TIMERS':^59}\n" + "-" * 59 + '\n' \
              f"|{'LABEL':^30}|{'CALL':^8}|{'TIME':^8}|{'STATUS':^9}|\n"
        out += "-" * 59 + '\n'
        if self.numtimer > 0:
            for count in self.l_timer[:self.numtimer]:
                out += (f"|{count['label']:^30}|{count['call']:8d}|"
                        f"{count['time']:8.2f}|"
                        f"{'RUNNING' if count['status'] else 'STOPPED':^9}|\n")
        out += "-" * 59 + '\n'
        return out


class RSLogger(RSTimer):
    """recispace's Logging Module

    When recispace is imported, an instance of this class is generated
    and provides a global logging object. Provides methods to log messages.
    Inherits from `RSTimer`.

    To display the status of all timers, pass the instance to the
    `print` function.

    Parameters
    ----------
    logger : logging.Logger, optional
        Logger instance with all handlers configured. By default, it is set to
        ``logging.getLogger(LOGGER_NAME)``

    """
    def __init__(self, logger: Optional[logging.Logger] = None):
        if logger is None:
            logger = logging.getLogger(LOGGER_NAME)
        RSTimer.__init__(self, logger)
        self.setLevel(logging.INFO)

    def setLevel(self, level: int):  # noqa : N802
        """Alias of ``self.logger.setLevel(level)``"""
        self.logger.setLevel(level)

    def log(self, level: int, msg: str, *args) -> None:
        """Alias of ``self.logger.log(level, msg)``
        """
        self.logger.log(level, msg, *args)

    def debug(self, msg: str, *args) -> None:
        """Alias of ``self.logger.debug(msg)``
        """
        self.logger.debug(msg, *args)

    def info(self, msg: str, *args) -> None:
        """Alias of ``self.logger.info(msg)``
        """
        self.logger.info(msg, *args)

    def warning(self, msg: str, *args) -> None:
        """Alias of ``self.logger.warning(msg)``
        """
        self.logger.warning(msg, *args)

    def error(self, msg: str, *args) -> None:
        """Alias of ``self.logger.error(msg)``
        """
        self.logger.error(msg, *args)

    def critical(self, msg: str, *args) -> None:
        """Alias of ``self.logger.critical(msg)``
        """
        self.logger.critical(msg, *args)

    def exception(self, msg: str, *args) -> None:
        """Alias of ``self.logger.exception(msg)``
        """
        self.logger.exception(msg, *args)


# Setting file handle to save log into
def rslogger_set_filehandle(file_dir: str, logging_level: int = logging.INFO,
                            capture_warnings: bool = True):
    """Sets up logging to file.

    The Logger used across recispace is given by the module-level variable
    `LOGGER_NAME`. A `logging.FileHandler` instance is generated
    and configured to ouput log messages of level `logging_level` and above
    to file `file_dir`. If `capture_warnings` is True (default),
    `warnings.warn` messages are automatically logged to file.

    Parameters
    ----------
    file_dir : str
        Path of the log file
    logging_level : int, default=logging.INFO
        Logging threshold set to.
    capture_warnings : bool, default=True
        If True, warnings via `warnings.warn` function will also be logged
        to file.

    Notes
    -----
    If a file `file_dir` already exists, it will be renamed and a new file
    is created. The old file gets a '.preYYYYmmdd-HHMMSS' inserted in front
    of its suffix.

    `logging_level` does not affect the level set to the logger itself. By
    default, it is set to `logger.INFO`. So, to capture `logging.DEBUG`
    messages, `logging.getLogger(LOGGER_NAME).setLevel(logging.DEBUG)`
    must also be called.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.hasHandlers():
        warnings.warn(f"logger '{LOGGER_NAME}' has handlers already initialized. "
                      "Clearing all existing handlers.")
        logger.handlers.clear()

    # If exists, rename it from filename.log -> filename.preYYYYmmdd-HHMMSS.log
    logfile_path = Path(file_dir)
    if logfile_path.is_file():
        new_dir = logfile_path.with_suffix(
                f'.pre{strftime("%Y%m%d-%H%M%S")}' + logfile_path.suffix
            )
        warnings.warn(f"log file '{file_dir}' already exists. "
                      f"Renaming it to '{new_dir}'")
        logfile_path.rename(new_dir)

    logger_file = logging.FileHandler(file_dir)
    logger_file.setLevel(logging_level)
    logger_file.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(logger_file)

    logging.captureWarnings(capture_warnings)
    if capture_warnings:
        warn_logger = logging.getLogger('py.warnings')
        warn_logger.addHandler(logger_file)


rslogger = RSLogger()
"""Global Instance of `RSLogger`"""

# Disabling recispace's logger here. It will be enabled by rsconfig when requested.
logging.getLogger(LOGGER_NAME).disabled = True

warn = rslogger.warning
"""Alias of ``rslogger.warning``"""
