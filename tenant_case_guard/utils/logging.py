import logging
import sys
from datetime import datetime

from tenant_case_guard.config import get_settings
from tenant_case_guard.observability.middleware import (
    JsonRequestLogFormatter,
    RequestContextFilter,
)


def setup_logging():
    """Configure logging for the application with JSON console logs.

    File logs (LOG_TO_FILE=true) keep a human-readable format for local
    debugging; console logs use JSON. Request-scoped fields are injected by
    RequestContextFilter and the request middleware.
    """
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JsonRequestLogFormatter())
    console_handler.setLevel(level)
    handlers: list[logging.Handler] = [console_handler]

    if settings.log_to_file:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        log_filename = settings.log_dir / f"tenant_case_guard_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        file_handler = logging.FileHandler(log_filename)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if settings.debug else level)

    # Remove any existing handlers to avoid duplicate logs
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)

    if not any(isinstance(f, RequestContextFilter) for f in root_logger.filters):
        root_logger.addFilter(RequestContextFilter())

    for logger_name in (
        "tenant_case_guard",
        "tenant_case_guard.api",
        "tenant_case_guard.services",
        "tenant_case_guard.store",
    ):
        logging.getLogger(logger_name).setLevel(logging.DEBUG if settings.debug else level)

    return root_logger
