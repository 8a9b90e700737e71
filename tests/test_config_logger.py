import logging
import warnings

import pytest

from recispace.config import RSConfig, rsconfig
from recispace.logger import RSLogger, LOGGER_NAME, rslogger_set_filehandle


@pytest.fixture
def timer():
    return RSLogger(logging.getLogger(LOGGER_NAME + '.test'))


def test_config_defaults():
    config = RSConfig()
    assert config.logging_enabled is False
    assert config.miller_index_mode == 'wrap'
    assert config.fft_threads == 1
    assert config.approx_rtol == 1e-5
    assert config.approx_atol == 1e-8


def test_config_validation():
    config = RSConfig()
    with pytest.raises(ValueError):
        config.miller_index_mode = 'clip'
    with pytest.raises(ValueError):
        config.fft_threads = 0
    with pytest.raises(ValueError):
        config.approx_rtol = -1.
    with pytest.raises(TypeError):
        config.logging_enabled = 1
    config.fft_threads = 4
    assert config.fft_threads == 4
    assert rsconfig.fft_threads == 1


def test_timer_decorator(timer):
    @timer.time('square')
    def square(x):
        return x * x

    assert square(3) == 9
    assert square(4) == 16
    ncall, runtime = timer.get_timer('square')
    assert ncall == 2
    assert runtime >= 0
    assert not timer.is_running('square')
    assert 'square' in str(timer)


def test_timer_stops_on_exception(timer):
    @timer.time('fails')
    def fails():
        raise KeyError('boom')

    with pytest.raises(KeyError):
        fails()
    assert not timer.is_running('fails')
    assert timer.get_timer('fails')[0] == 1


def test_timer_misuse(timer):
    timer.start_timer('manual')
    with pytest.raises(ValueError):
        timer.start_timer('manual')
    timer.stop_timer('manual')
    with pytest.raises(ValueError):
        timer.stop_timer('manual')
    timer.reset_timer('manual')
    assert timer.get_timer('manual') == (0, 0.)
    timer.delete_timer('manual')
    with pytest.raises(ValueError):
        timer.get_timer('manual')


def test_logfile(tmp_path):
    logfile = tmp_path / 'recispace.log'
    logger = logging.getLogger(LOGGER_NAME)
    try:
        rsconfig.logging_enabled = True
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            rslogger_set_filehandle(str(logfile), capture_warnings=False)
        logger.info("message for the log file")
        for handler in logger.handlers:
            handler.flush()
        assert "message for the log file" in logfile.read_text()
    finally:
        rsconfig.logging_enabled = False
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_logging_toggle_leaves_other_loggers():
    logger = logging.getLogger(LOGGER_NAME)
    other = logging.getLogger('unrelated.library')
    try:
        rsconfig.logging_enabled = True
        assert not logger.disabled
    finally:
        rsconfig.logging_enabled = False
    assert logger.disabled
    assert not other.disabled
    assert other.isEnabledFor(logging.CRITICAL)
