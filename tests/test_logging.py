import logging

import pytest

from pluto.logging import ProjectOnlyFilter, setup_logging


@pytest.mark.parametrize("name, allowed", [
    ("pluto", True),
    ("pluto.session", True),
    ("pluto.host.pty_host", True),
    ("__main__", False),
    ("plutonium", False),
    ("urllib3", False),
])
def test_project_only_filter(name, allowed):
    record = logging.LogRecord(name, logging.INFO, __file__, 1, "message", None, None)

    assert ProjectOnlyFilter().filter(record) is allowed


def test_setup_logging_writes_project_logs_only_to_debug(tmp_path, restore_logging):
    setup_logging(tmp_path / "logs")

    logging.getLogger("pluto.session").debug("pluto-debug-line")
    logging.getLogger("thirdparty").info("thirdparty-info-line")
    for handler in logging.getLogger().handlers:
        handler.flush()

    debug_log = (tmp_path / "logs" / "debug.log").read_text()
    info_log = (tmp_path / "logs" / "info.log").read_text()
    assert "pluto-debug-line" in debug_log
    assert "thirdparty-info-line" not in debug_log
    assert "thirdparty-info-line" in info_log
    assert (tmp_path / "logs" / "error.log").exists()


def test_setup_logging_twice_does_not_duplicate_handlers(tmp_path, restore_logging):
    setup_logging(tmp_path)
    setup_logging(tmp_path)

    assert len(logging.getLogger().handlers) == 4
