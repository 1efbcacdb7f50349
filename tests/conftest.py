import pytest

from acs_seed import logger as logger_module
from acs_seed.logger import StructuredLogger, init_logger


@pytest.fixture(autouse=True)
def isolated_logger(tmp_path, monkeypatch):
    """Keep every test's log lines out of ./runs."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(logger_module, "_logger", None)
    return init_logger(run_id="test-run", log_dir=tmp_path / "logs")


@pytest.fixture
def logger(isolated_logger) -> StructuredLogger:
    return isolated_logger
