"""
Logging configuration for the inventory backend.
Provides a JSON formatter and the dict-config consumed at startup.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields"""

    def __init__(self, *args, environment: str = "development", **kwargs):
        super().__init__(*args, **kwargs)
        self.environment = environment

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        """Add custom fields to the log record"""
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['environment'] = self.environment

        # Request-scoped values bound by the request id middleware
        for key, value in structlog.contextvars.get_contextvars().items():
            log_record.setdefault(key, value)

        if record.exc_info:
            log_record['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }


def build_logging_config(level: str = "INFO", fmt: str = "json", environment: str = "development") -> Dict[str, Any]:
    """
    Create the logging dictionary consumed by ``logging.config.dictConfig``.

    Args:
        level: Root log level name
        fmt: ``json`` or ``text``
        environment: Environment name stamped on JSON records
    """
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            },
            'json': {
                '()': CustomJsonFormatter,
                'format': '%(timestamp)s %(level)s %(logger)s %(message)s',
                'environment': environment,
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'stream': 'ext://sys.stdout',
                'formatter': 'json' if fmt == 'json' else 'standard',
            },
        },
        'root': {
            'level': level.upper(),
            'handlers': ['console'],
        },
    }
