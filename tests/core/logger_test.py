from pathlib import Path
from unittest.mock import patch

from loguru import logger

from app.core.config import settings
from app.core.logger import (
    LOG_FILE_NAME,
    NO_REQUEST_ID,
    correlation_filter,
    request_id_var,
    setup_logger,
    shutdown_logger,
)


class TestCorrelationFilter:
    """Test request and process stamping of log records."""

    def test_outside_request(self):
        record = {"extra": {}}

        assert correlation_filter(record) is True
        assert record["extra"]["request_id"] == NO_REQUEST_ID
        assert isinstance(record["extra"]["process_id"], int)

    def test_inside_request(self):
        record = {"extra": {}}
        token = request_id_var.set("abc12345")

        try:
            correlation_filter(record)
        finally:
            request_id_var.reset(token)

        assert record["extra"]["request_id"] == "abc12345"


class TestSetupLogger:
    """Test sink configuration."""

    def test_writes_to_log_dir(self, tmp_path: Path):
        log_dir = tmp_path / "logs"

        with patch.object(settings, "log_dir", log_dir):
            setup_logger()
            logger.info("subscription store ready")
            shutdown_logger()

        logger.remove()

        content = (log_dir / LOG_FILE_NAME).read_text()
        assert "subscription store ready" in content
        assert f"ReqID:{NO_REQUEST_ID}" in content
