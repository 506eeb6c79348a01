import logging
import contextvars
from typing import Optional

# Context variables carried across async operations within one request
request_id_context = contextvars.ContextVar('request_id', default=None)
account_id_context = contextvars.ContextVar('account_id', default=None)


class RequestAwareFormatter(logging.Formatter):
    """
    Formatter that fills in request and account ids for every record.

    Records logged outside of a request get placeholder values so format
    strings referencing %(request_id)s and %(account_id)s never fail.
    """

    def format(self, record: logging.LogRecord) -> str:
        if not getattr(record, 'request_id', None):
            record.request_id = request_id_context.get() or "no-request-id"
        if not getattr(record, 'account_id', None):
            record.account_id = account_id_context.get() or "-"
        return super().format(record)


class RequestAwareLogger:
    """
    A logger wrapper that automatically includes request context.

    Accepts ``request_id=`` and ``account_id=`` keyword arguments on every
    call; when omitted, values are taken from the current context.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.name = name

    def _log_with_context(self, level: int, msg: str, *args, **kwargs):
        request_id = kwargs.pop('request_id', None) or request_id_context.get()
        account_id = kwargs.pop('account_id', None) or account_id_context.get()

        extra = kwargs.get('extra', {})
        if request_id:
            extra['request_id'] = request_id
        if account_id:
            extra['account_id'] = account_id
        if extra:
            kwargs['extra'] = extra

        self.logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log_with_context(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log_with_context(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log_with_context(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log_with_context(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        self._log_with_context(logging.ERROR, msg, *args, **kwargs, exc_info=True)


def get_logger(name: str) -> RequestAwareLogger:
    """
    Get a request-aware logger for the specified name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        RequestAwareLogger: A logger that automatically includes request context
    """
    return RequestAwareLogger(name)


def set_request_context(request_id: str):
    """Set the request ID for the current context."""
    request_id_context.set(request_id)


def set_account_context(account_id: Optional[str]):
    """Set the account whose streak is being processed."""
    account_id_context.set(account_id)


def clear_request_context():
    """Clear the current request and account context."""
    request_id_context.set(None)
    account_id_context.set(None)
