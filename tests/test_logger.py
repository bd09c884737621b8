import logging

import pytest

from print_analytics.core.logger import QUIET_LOGGERS, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    quiet_levels = {name: logging.getLogger(name).level for name in QUIET_LOGGERS}
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    for name, quiet_level in quiet_levels.items():
        logging.getLogger(name).setLevel(quiet_level)


def test_writes_main_and_error_files(tmp_path, restore_root_logger):
    main_file = setup_logging("debug", tmp_path / "logs", file_name="server.log")

    assert main_file == tmp_path / "logs" / "server.log"
    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 3

    logging.getLogger("print_analytics.test").debug("detail line")
    logging.getLogger("print_analytics.test").error("broken line")
    for handler in restore_root_logger.handlers:
        handler.flush()

    assert "detail line" in main_file.read_text(encoding="utf-8")
    errors = (tmp_path / "logs" / "errors.log").read_text(encoding="utf-8")
    assert "broken line" in errors
    assert "detail line" not in errors


def test_unknown_level_falls_back_to_info(tmp_path, restore_root_logger):
    setup_logging("chatty", tmp_path)

    assert restore_root_logger.level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING


def test_library_loggers_follow_a_stricter_level(tmp_path, restore_root_logger):
    setup_logging("ERROR", tmp_path)

    assert logging.getLogger("uvicorn.access").level == logging.ERROR
    assert logging.getLogger("sqlalchemy.engine").level == logging.ERROR


def test_accepts_logging_section_of_config(tmp_path, restore_root_logger):
    from print_analytics.core.config import get_default_config

    section = {**get_default_config()["logging"], "log_dir": str(tmp_path)}

    assert setup_logging(**section) == tmp_path / "print-analytics.log"
