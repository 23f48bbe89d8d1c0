"""Logging configuration and utilities."""

import logging
import logging.config
import yaml
import os
from pathlib import Path
from typing import Optional

DEFAULT_CONFIG_PATH = "config/logging.yaml"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _basic_config(log_level: Optional[str], logs_dir: str) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level.upper() if log_level else "INFO", logging.INFO),
        format=DEFAULT_FORMAT,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(f"{logs_dir}/app.log")
        ]
    )


def setup_logging(
    config_path: Optional[str] = None,
    log_level: Optional[str] = None,
    logs_dir: str = "logs"
) -> None:
    """
    Setup logging configuration.

    Args:
        config_path: Path to a YAML dictConfig file
        log_level: Override log level for root and configured loggers
        logs_dir: Directory for log files
    """
    Path(logs_dir).mkdir(exist_ok=True)

    config_path = config_path or os.getenv("LOG_CONFIG", DEFAULT_CONFIG_PATH)

    if not os.path.exists(config_path):
        _basic_config(log_level, logs_dir)
        logging.warning(f"Logging config file not found at {config_path}, using basic configuration")
        return

    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f)

        if log_level:
            config.setdefault("root", {})["level"] = log_level.upper()
            for logger_name in config.get("loggers", {}):
                config["loggers"][logger_name]["level"] = log_level.upper()

        logging.config.dictConfig(config)
    except Exception as e:
        _basic_config(log_level, logs_dir)
        logging.warning(f"Failed to load logging config from {config_path}: {e}")

    # httpx logs every request URL at INFO, which would include bot tokens
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)


class StructuredLogger:
    """Wrapper that appends key=value context to every message."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._context = {}

    def with_context(self, **kwargs) -> "StructuredLogger":
        """Return a logger carrying additional context."""
        new_logger = StructuredLogger(self.logger)
        new_logger._context = {**self._context, **kwargs}
        return new_logger

    def _format_message(self, message: str) -> str:
        if self._context:
            context_str = " | ".join(f"{k}={v}" for k, v in self._context.items())
            return f"{message} | {context_str}"
        return message

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message), **kwargs)

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message), **kwargs)

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message), **kwargs)

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_message(message), **kwargs)


def get_structured_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(get_logger(name))
