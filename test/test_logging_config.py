import logging

import pytest
import structlog
from pumping.logging_config import setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_debug_events_reach_engine_log(tmp_path, restore_logging):
    setup_logging(log_dir=str(tmp_path), log_level="WARNING", console_output=False)
    structlog.get_logger("pumping.check").debug("closure_computed", states=3)
    for handler in logging.getLogger().handlers:
        handler.flush()

    engine = (tmp_path / "engine.log").read_text(encoding="utf-8")
    assert "closure_computed" in engine
    assert (tmp_path / "error.log").read_text(encoding="utf-8") == ""


def test_console_respects_level(tmp_path, restore_logging):
    setup_logging(log_dir=str(tmp_path), log_level="WARNING")
    console = [h for h in logging.getLogger().handlers
               if type(h) is logging.StreamHandler]
    assert len(console) == 1
    assert console[0].level == logging.WARNING
    assert logging.getLogger().level == logging.DEBUG
