"""
Logging Configuration using dictConfig

Every handler that writes text carries SecretRedactingFilter, so AWS keys
rendered into COPY commands and cluster passwords never reach a log sink.
Load metrics go to their own performance log as one JSON object per line.
"""

import json
import logging
import logging.config
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional


# key=value fragments that must never reach a log sink
_SECRET_PATTERN = re.compile(
    r"(aws_secret_access_key|aws_access_key_id|password|secret_key)=([^;'\s]+)",
    re.IGNORECASE
)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DETAILED_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

MAX_LOG_BYTES = 10 * 1024 * 1024

# Chatty below WARNING during connects, uploads and catalog lookups
QUIET_LIBRARIES = ('redshift_connector', 'boto3', 'botocore', 's3transfer', 'urllib3')


def redact_secrets(text: str) -> str:
    """Mask credential values in key=value fragments"""
    return _SECRET_PATTERN.sub(r"\1=***", text)


class SecretRedactingFilter(logging.Filter):
    """Rewrites records so credential values are masked before formatting"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    Records from log_performance are written as their metrics alone; any
    other record as timestamp, logger, level, message and traceback.
    """

    def format(self, record: logging.LogRecord) -> str:
        metrics = getattr(record, 'performance_data', None)
        if metrics is not None:
            return json.dumps(metrics, default=str)

        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'name': record.name,
            'level': record.levelname,
            'message': record.getMessage(),
        }
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def _rotating_file(path: Path, level: str, formatter: str, backups: int,
                   filters: List[str]) -> Dict[str, Any]:
    return {
        'class': 'logging.handlers.RotatingFileHandler',
        'filename': str(path),
        'maxBytes': MAX_LOG_BYTES,
        'backupCount': backups,
        'formatter': formatter,
        'filters': filters,
        'level': level,
    }


def get_logging_config(
    log_dir: Path,
    level: str = 'INFO',
    json_format: bool = False,
    quiet: bool = False,
    operation: str = 'redshift_etl'
) -> Dict[str, Any]:
    """
    Generate logging configuration dictionary

    Args:
        log_dir: Directory for log files, created if missing
        level: Level of the redshift_etl logger tree
        json_format: Write console and operation log records as JSON
        quiet: Leave out the console handler
        operation: Base name of the operation log files

    Returns:
        Logging configuration dictionary for dictConfig
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    text_formatter = 'json' if json_format else 'default'
    redact = ['redact_secrets']

    handlers = {
        'console': {
            'class': 'logging.StreamHandler',
            'stream': 'ext://sys.stderr',
            'formatter': text_formatter,
            'filters': redact,
            'level': 'INFO'
        },
        f'{operation}_file': _rotating_file(
            log_dir / f'{operation}.log', 'INFO', 'json' if json_format else 'detailed', 5, redact),
        'debug_file': _rotating_file(
            log_dir / f'{operation}_debug.log', 'DEBUG', 'detailed', 3, redact),
        'error_file': _rotating_file(
            log_dir / 'errors.log', 'ERROR', 'detailed', 5, redact),
        'performance_file': _rotating_file(
            log_dir / 'performance.log', 'INFO', 'json', 3, ['performance_only']),
    }

    package_handlers = ['debug_file', f'{operation}_file', 'error_file']
    root_handlers = ['debug_file', 'error_file']
    if not quiet:
        package_handlers.insert(0, 'console')
        root_handlers.insert(0, 'console')

    loggers = {
        'redshift_etl': {'handlers': package_handlers, 'level': level, 'propagate': False},
        'performance': {'handlers': ['performance_file'], 'level': 'INFO', 'propagate': False},
    }
    loggers.update({name: {'level': 'WARNING'} for name in QUIET_LIBRARIES})

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {'format': LOG_FORMAT, 'datefmt': DATE_FORMAT},
            'detailed': {'format': DETAILED_LOG_FORMAT, 'datefmt': DATE_FORMAT},
            'json': {'()': 'redshift_etl.utils.logging_config.JsonFormatter'},
        },
        'filters': {
            'redact_secrets': {'()': 'redshift_etl.utils.logging_config.SecretRedactingFilter'},
            'performance_only': {'()': 'logging.Filter', 'name': 'performance'},
        },
        'handlers': handlers,
        'loggers': loggers,
        'root': {'handlers': root_handlers, 'level': level},
    }


def setup_logging(
    operation: str = 'redshift_etl',
    log_dir: Optional[Path] = None,
    level: str = 'INFO',
    json_format: bool = False,
    quiet: bool = False
):
    """
    Initialize logging for the application

    Args:
        operation: Operation name for log files
        log_dir: Directory for log files (defaults to ./logs)
        level: Logging level
        json_format: Use JSON formatting
        quiet: Suppress console output
    """
    config = get_logging_config(
        log_dir=log_dir or Path('logs'),
        level=level,
        json_format=json_format,
        quiet=quiet,
        operation=operation
    )
    logging.config.dictConfig(config)
    logging.getLogger('redshift_etl').info(f"Logging initialized for operation: {operation}")


def log_performance(operation: str, duration: float, **metrics):
    """
    Record one load's timings and counts in the performance log.

    Args:
        operation: Operation name, e.g. 'load'
        duration: Duration in seconds
        **metrics: Table, sink mode, row counts and similar
    """
    performance_data = {
        'timestamp': datetime.now().isoformat(),
        'operation': operation,
        'duration_seconds': round(duration, 3),
        **metrics
    }
    logging.getLogger('performance').info(
        f"Performance: {operation} completed in {duration:.2f}s",
        extra={'performance_data': performance_data}
    )
