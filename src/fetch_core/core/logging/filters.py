"""
Log filters: logical request id and static extra fields.

The request id lives in a ContextVar, so every asyncio task (one per
logical request) sees its own value.
"""

import logging
from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

_request_id: ContextVar[Optional[str]] = ContextVar("fetch_core_request_id", default=None)


def set_request_id(request_id: str) -> Token:
    """
    Set request id for the current task.

    Returns:
        Token for reset_request_id()
    """
    return _request_id.set(request_id)


def get_request_id() -> Optional[str]:
    """Get request id of the current task, or None."""
    return _request_id.get()


def reset_request_id(token: Token) -> None:
    """Restore the request id that was active before set_request_id()."""
    _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Adds ``request_id`` to records emitted inside a logical request."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = get_request_id()
        if request_id:
            record.request_id = request_id
        return True


class ExtraFieldsFilter(logging.Filter):
    """
    Adds static fields (service, environment, ...) to every record.

    Example:
        >>> handler.addFilter(ExtraFieldsFilter({"service": "ruleset-build"}))
    """

    def __init__(self, extra_fields: Dict[str, Any]):
        super().__init__()
        self.extra_fields = extra_fields

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.extra_fields.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
