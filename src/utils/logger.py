"""
Logging Module for the Limit Order Hedge Toolkit

Console output is plain text so an operator can follow a run step by step;
the log file receives one JSON object per line so runs can be grepped or
shipped to an aggregator afterwards.

Usage:
    logger = get_logger(__name__)
    logger.info("Order signed", extra={'order_hash': '0x...'})
"""

import logging
import logging.handlers
import os
import sys
import json
from datetime import datetime, timezone
from typing import Optional

from config.constants import (
    LOG_LEVEL,
    LOG_FILE_PATH,
    MAX_LOG_FILE_SIZE,
    LOG_BACKUP_COUNT,
    STRUCTURED_LOGGING,
)


# Attributes every LogRecord carries; anything else came in through extra={...}
_RESERVED_RECORD_ATTRS = frozenset({
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'pathname', 'process', 'processName', 'relativeCreated',
    'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
    'taskName', 'asctime',
})


class JSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line_number': record.lineno,
        }

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }

        # Fields passed via logger.info(..., extra={...})
        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_ATTRS:
                continue
            if isinstance(value, (str, int, float, bool, type(None), dict, list)):
                log_data[key] = value
            else:
                log_data[key] = str(value)

        return json.dumps(log_data, default=str)


class PlainTextFormatter(logging.Formatter):
    """Readable single-line formatter for console output"""

    def format(self, record: logging.LogRecord) -> str:
        record.asctime = self.formatTime(record, self.datefmt)
        line = (
            f"{record.asctime} | {record.levelname:8} | "
            f"{record.name} | {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    structured: Optional[bool] = None
) -> None:
    """
    Configure logging for a toolkit run.

    Sets up:
    - Console handler: Plain text on stdout
    - File handler: Rotating file, JSON lines unless structured=False

    Args:
        log_level: Logging level override (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file path override. Empty string disables the file handler.
        structured: Use JSON formatting in the file handler

    Raises:
        ValueError: If invalid log level specified
    """
    level = (log_level or LOG_LEVEL).upper()
    filepath = LOG_FILE_PATH if log_file is None else log_file
    use_json = structured if structured is not None else STRUCTURED_LOGGING

    valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
    if level not in valid_levels:
        raise ValueError(f"Invalid log level: {level}. Must be one of {valid_levels}")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level))
    console_handler.setFormatter(PlainTextFormatter(datefmt='%Y-%m-%d %H:%M:%S'))
    root_logger.addHandler(console_handler)

    if filepath:
        log_dir = os.path.dirname(filepath)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filepath,
            maxBytes=MAX_LOG_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT
        )
        file_handler.setLevel(getattr(logging, level))
        if use_json:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(PlainTextFormatter(datefmt='%Y-%m-%d %H:%M:%S'))
        root_logger.addHandler(file_handler)

    # web3/urllib3 are chatty at DEBUG
    for noisy in ('web3', 'urllib3', 'botocore'):
        logging.getLogger(noisy).setLevel(max(getattr(logging, level), logging.INFO))

    get_logger(__name__).debug(
        "Logging initialized",
        extra={'log_level': level, 'log_file': filepath or None, 'structured_logging': use_json}
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (typically __name__ from calling module)
    """
    return logging.getLogger(name)


def log_tx_event(
    logger: logging.Logger,
    event_type: str,
    **details
) -> None:
    """
    Log an order/transaction milestone with structured details.

    Example:
        log_tx_event(logger, 'FILL_SENT', tx_hash='0xabc', gas=500000)
    """
    details['event_type'] = event_type
    logger.info(f"Event: {event_type}", extra=details)


def log_error_with_context(
    logger: logging.Logger,
    message: str,
    error: Exception,
    **context
) -> None:
    """
    Log an error with exception details and extra context.

    Example:
        except TransactionRevertedError as e:
            log_error_with_context(logger, "Fill reverted", e, tx_hash=e.tx_hash)
    """
    context['error_type'] = type(error).__name__
    context['error_message'] = str(error)
    logger.error(message, exc_info=error, extra=context)
