"""
Logging configuration for the ProjectHub Lambda functions.

Every handler and service gets its logger from here so that CloudWatch
receives one line format. Lines logged by the handler decorators carry the
request's correlation id; all other lines show '-' in that column.
"""
import logging
import os
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
QUIET_LIBRARIES = ('botocore', 'boto3', 'urllib3')


class CorrelationIdFilter(logging.Filter):
    """Give every record a ``correlation_id`` so the format never fails."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, 'correlation_id'):
            record.correlation_id = '-'
        return True


def _level() -> int:
    name = os.environ.get('LOG_LEVEL', 'INFO').upper()
    return getattr(logging, name, logging.INFO)


def get_logger(name: str = None) -> logging.Logger:
    """
    Return the named logger, attaching the stdout handler on first use.

    Args:
        name: Logger name, usually the caller's ``__name__``

    Returns:
        Logger writing to stdout at ``LOG_LEVEL``
    """
    logger = logging.getLogger(name or 'projecthub')
    # Warm Lambda containers reuse module state
    if logger.handlers:
        return logger

    logger.setLevel(_level())
    stream = logging.StreamHandler(sys.stdout)
    stream.setLevel(logger.level)
    stream.addFilter(CorrelationIdFilter())
    stream.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(stream)
    logger.propagate = False

    for library in QUIET_LIBRARIES:
        logging.getLogger(library).setLevel(logging.WARNING)
    return logger
