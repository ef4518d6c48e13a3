"""
Decide whether a raw response is trustworthy enough to decode.
"""

from typing import Any, Callable

import structlog

logger = structlog.get_logger(__name__)

ServerErrorPredicate = Callable[[Any], bool]


def status_classifier(min_status: int = 500, max_status: int = 599) -> ServerErrorPredicate:
    """Build a predicate flagging responses with a status in [min_status, max_status].

    Responses without an integer ``status`` are flagged as well.
    """
    def is_server_error(response: Any) -> bool:
        status = getattr(response, 'status', None)
        if not isinstance(status, int) or isinstance(status, bool):
            logger.debug("response_without_status", status=status)
            return True
        return min_status <= status <= max_status

    return is_server_error


is_server_error = status_classifier()
