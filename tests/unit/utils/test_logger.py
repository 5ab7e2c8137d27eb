"""
Unit tests for the logging helpers
"""

import logging
import os

import pytest

from depthfusion.utils.logging import get_logger, get_timestamped_log_file, setup_logging


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Remove handlers installed by a test so later tests do not write to stale streams."""
    yield
    package_logger = logging.getLogger("depthfusion")
    for handler in list(package_logger.handlers):
        if getattr(handler, "_depthfusion_handler", False):
            package_logger.removeHandler(handler)
            handler.close()
    package_logger.setLevel(logging.NOTSET)


def test_get_logger_places_names_under_the_package():
    assert get_logger("reconstruction.mesh").name == "depthfusion.reconstruction.mesh"
    assert get_logger("depthfusion.pipeline").name == "depthfusion.pipeline"


def test_setup_logging_writes_stage_messages_to_file(tmp_path):
    log_file = str(tmp_path / "logs" / "run.log")
    package_logger = setup_logging(log_file=log_file, log_level=logging.DEBUG)
    get_logger("reconstruction.filtering").info("Statistical filtering complete")
    for handler in package_logger.handlers:
        handler.flush()

    with open(log_file) as f:
        contents = f.read()
    assert "depthfusion.reconstruction.filtering - INFO - Statistical filtering complete" in contents


def test_repeated_setup_does_not_duplicate_handlers():
    setup_logging()
    package_logger = setup_logging()

    installed = [h for h in package_logger.handlers if getattr(h, "_depthfusion_handler", False)]
    assert len(installed) == 1


def test_timestamped_log_file_lives_in_logs_dir(tmp_path):
    path = get_timestamped_log_file(str(tmp_path), prefix="fusion")

    assert os.path.dirname(path) == os.path.join(str(tmp_path), "logs")
    assert os.path.basename(path).startswith("fusion_")
    assert path.endswith(".log")
