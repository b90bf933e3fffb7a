import logging

from r2bridge.utils.logger import configure_logging_levels, get_logger, setup_logger


def _reset(name):
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    return logger


def test_setup_logger_writes_file_under_home(tmp_path):
    _reset("r2bridge.test.file")
    logger = setup_logger("r2bridge.test.file")
    try:
        assert len(logger.handlers) == 2
        assert (tmp_path / "home" / ".r2bridge" / "logs" / "r2bridge.log").exists()
    finally:
        _reset("r2bridge.test.file")


def test_setup_logger_console_only_and_no_duplicates():
    _reset("r2bridge.test.console")
    try:
        first = setup_logger("r2bridge.test.console", log_to_file=False)
        second = setup_logger("r2bridge.test.console", log_to_file=False)
        assert first is second
        assert len(first.handlers) == 1
    finally:
        _reset("r2bridge.test.console")


def test_get_logger_returns_named_logger():
    assert get_logger("r2bridge.core").name == "r2bridge.core"


def test_configure_logging_levels():
    root = logging.getLogger("r2bridge")
    previous = root.level
    try:
        configure_logging_levels(verbose=True, quiet=False)
        assert root.level == logging.DEBUG
        assert logging.getLogger("r2bridge.transports").level == logging.DEBUG
        configure_logging_levels(verbose=False, quiet=True)
        assert root.level == logging.ERROR
        configure_logging_levels(verbose=False, quiet=False)
        assert root.level == logging.WARNING
    finally:
        root.setLevel(previous)
        logging.getLogger("r2bridge.transports").setLevel(logging.NOTSET)
        logging.getLogger("r2bridge.core").setLevel(logging.NOTSET)
