import contextvars
import logging
import os
import sys
from typing import Optional


request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class RequestIdFilter(logging.Filter):
    """Attach the current request ID to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, 'request_id'):
            record.request_id = request_id_var.get()
        return True


def set_request_id(request_id: str) -> contextvars.Token:
    """
    Bind a request ID to the current context.

    Args:
        request_id: Identifier of the request being served

    Returns:
        Token that can be passed to reset_request_id
    """
    return request_id_var.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    """Restore the request ID that was active before set_request_id."""
    request_id_var.reset(token)


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging configuration for a component.

    Handlers are attached to the component logger and to the root logger so
    module loggers obtained via get_logger(__name__) share the same output.

    Args:
        component_name: Name of the component (e.g., 'appserver', 'cli')
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')

    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(component_name)
    logger.setLevel(level)

    root = logging.getLogger()
    root.setLevel(level)

    if any(getattr(h, '_appserver_handler', False) for h in root.handlers):
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(RequestIdFilter())
    handler._appserver_handler = True

    root.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
