import logging
import os
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Optional

from loguru import logger

from app.core.config import Environment, settings

if TYPE_CHECKING:
    from loguru import Record

# ============================================
# CONTEXT VARIABLES FOR REQUEST TRACKING
# ============================================
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Shown for log records emitted outside of a request (startup, shutdown)
NO_REQUEST_ID = "--------"

LOG_FILE_NAME = "app.log"


# ============================================
# LOG LEVEL MAPPING
# ============================================

LOG_LEVELS = {
    50: "CRITICAL",
    40: "ERROR",
    30: "WARNING",
    20: "INFO",
    10: "DEBUG",
    5: "TRACE",
    0: "NOTSET",
}


# ============================================
# CUSTOM FILTER FOR CORRELATION AND PROCESS ID
# ============================================


def correlation_filter(record: "Record") -> bool:
    """
    Add correlation ID and process ID to log records.

    Args:
        record (Record): Log record from Loguru.

    Returns:
        bool: Always True, every record is kept.
    """
    record["extra"]["request_id"] = request_id_var.get() or NO_REQUEST_ID
    record["extra"]["process_id"] = os.getpid()

    return True


# ============================================
# INTERCEPT HANDLER FOR STANDARD LOGGING
# ============================================


class InterceptHandler(logging.Handler):
    """
    Intercepts standard logging and redirects to Loguru.
    Used to replace Uvicorn's default loggers with our Loguru configuration.
    """

    def emit(self, record: logging.LogRecord):
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller from where the logging call originated
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


# ============================================
# MAIN LOGGER SETUP FUNCTION
# ============================================


def setup_logger():
    """
    Configure Loguru logger for the service.

    Features:
    - Thread safe with enqueue=True
    - Request IDs on every line emitted while serving a request
    - 3 months retention, 10MB rotation, gzip compression
    - Different outputs for console vs file

    This should be called once during application startup,
    preferably in the FastAPI lifespan startup event.
    """
    # Remove default handler to avoid duplicate logs
    logger.remove()

    log_level = LOG_LEVELS.get(settings.log_level, "INFO")

    # ============================================
    # CONSOLE OUTPUT: Simplified, colored format
    # ============================================
    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<magenta>PID:{extra[process_id]}</magenta> | "
        "<yellow>ReqID:{extra[request_id]}</yellow> | "
        "<cyan>{name}:{function}:{line}</cyan> | "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stdout,
        format=console_format,
        level=logging.DEBUG if settings.current_environment == Environment.DEV else log_level,
        colorize=True,
        enqueue=True,
        filter=correlation_filter,
    )

    # ============================================
    # FILE OUTPUT: Detailed format with full context
    # ============================================
    settings.log_dir.mkdir(parents=True, exist_ok=True)

    file_format = (
        "{time:YYYY-MM-DD HH:mm:ss!UTC} | "
        "{level: <8} | "
        "PID:{extra[process_id]} | "
        "ReqID:{extra[request_id]} | "
        "{name}:{function}:{line} | "
        "{message}"
    )

    logger.add(
        settings.log_dir / LOG_FILE_NAME,
        format=file_format,
        level=log_level,
        rotation="10 MB",
        retention="3 months",
        compression="gz",
        enqueue=True,
        serialize=False,
        filter=correlation_filter,
        backtrace=True,
        diagnose=settings.debug,  # Variable values may include receipts and tokens
    )

    logger.info(
        f"Logger initialized | "
        f"Environment: {settings.current_environment.value} | "
        f"Level: {log_level}"
    )


# ============================================
# UVICORN LOGGER CONFIGURATION
# ============================================


def configure_uvicorn_logging():
    """
    Replace Uvicorn's default logging with Loguru.

    Call this during FastAPI app startup, after setup_logger().
    """
    # Loguru does the level filtering
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for name in logging.root.manager.loggerDict.keys():
        if name.startswith("uvicorn"):
            logging.getLogger(name).handlers = [InterceptHandler()]
            logging.getLogger(name).propagate = False

    logger.debug("Uvicorn logging configured to use Loguru")


# ============================================
# SHUTDOWN HANDLER
# ============================================


def shutdown_logger():
    """
    Flush all pending logs.
    Call this in FastAPI shutdown event.
    """
    logger.info("Shutting down logger...")

    # Let Loguru finish processing queued logs
    logger.complete()

    logger.info("Logger shutdown complete")
