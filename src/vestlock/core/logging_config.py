"""
vestlock - Structured Logging Configuration

Every record is rendered as one JSON object carrying the service name,
environment and source location. Records logged through a contract's
adapter also carry the contract and token they concern, so a log stream
shared by several deployments can be split per contract.

Usage:
    from vestlock.core.logging_config import setup_logging

    setup_logging(name="vestlock", level="INFO", log_file="logs/vestlock.json")
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional, Tuple

from pythonjsonlogger.json import JsonFormatter


class LockingJsonFormatter(JsonFormatter):
    """JSON formatter stamping service, environment and source location."""

    def __init__(self, environment: str = "development", service_name: str = "vestlock"):
        super().__init__(
            fmt="%(name)s %(message)s",
            static_fields={"environment": environment, "service": service_name},
            timestamp=True,
        )

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


class ContractLogAdapter(logging.LoggerAdapter):
    """
    Logger adapter binding a contract's identity to every record.

    Per-call ``extra`` fields are merged over the bound ones, so a call can
    still add or override keys.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def contract_logger(logger: logging.Logger, contract_address: str, token_address: str) -> ContractLogAdapter:
    """Bind truncated contract and token addresses to ``logger``."""
    return ContractLogAdapter(
        logger,
        {"contract": contract_address[:10], "token": token_address[:10]},
    )


def _build_handlers(
    log_file: Optional[str],
    enable_console: bool,
    max_bytes: int,
    backup_count: int,
) -> Tuple[List[logging.Handler], Optional[OSError]]:
    handlers: List[logging.Handler] = []
    if enable_console:
        handlers.append(logging.StreamHandler(sys.stderr))
    if not log_file:
        return handlers, None

    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
        )
    except OSError as e:
        return handlers, e
    return handlers, None


def setup_logging(
    name: str = "vestlock",
    log_file: Optional[str] = None,
    level: str = "INFO",
    environment: str = "development",
    enable_console: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Attach JSON handlers to the ``name`` logger, replacing any it had.

    Args:
        name: Logger name (``vestlock`` configures the whole package)
        log_file: Path to a rotating JSON log file (optional)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Environment identifier stamped on every record
        enable_console: Whether to log to stderr
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        The configured logger
    """
    log_level = getattr(logging, level.upper())
    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    for handler in logger.handlers:
        handler.close()
    logger.handlers = []

    formatter = LockingJsonFormatter(environment=environment, service_name=name.split(".")[0])
    handlers, file_error = _build_handlers(log_file, enable_console, max_bytes, backup_count)
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if file_error is not None:
        logger.warning("Could not create file handler for %s: %s", log_file, file_error)
    return logger
