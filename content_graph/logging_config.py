"""
Logging configuration for the content graph server and CLI.

Logs to both console and a rotating file in the logs/ directory.
"""

import logging
import logging.handlers
from datetime import datetime
from pathlib import Path
from typing import Optional


class HealthCheckFilter(logging.Filter):
    """
    Filter health check requests out of Uvicorn access logs.

    Orchestrators poll /health frequently; everything else stays visible.
    """
    def filter(self, record: logging.LogRecord) -> bool:
        return "/health" not in record.getMessage()


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = "logs") -> logging.Logger:
    """
    Configure root and Uvicorn loggers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for content_graph_YYYYMMDD.log; None disables the file handler

    Returns:
        Logger for the application entry point
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_formatter = logging.Formatter(
        fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    log_file = None
    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(exist_ok=True)
        log_file = log_path / f"content_graph_{datetime.now().strftime('%Y%m%d')}.log"

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    # Uvicorn installs its own handlers; replace them so formatting matches
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        handler = logging.StreamHandler()
        handler.setFormatter(console_formatter)
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.propagate = False
    logging.getLogger("uvicorn.access").addFilter(HealthCheckFilter())

    logger = logging.getLogger("content_graph.main")
    logger.info(f"Logging initialized (level={log_level}, file={log_file or 'disabled'})")
    return logger
