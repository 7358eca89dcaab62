# common/exceptions.py
import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from common.errors import DomainError

logger = logging.getLogger(__name__)


def domain_exception_handler(exc, context):
    """
    DRF EXCEPTION_HANDLER: renders engine errors with their code, retryable flag
    and details; everything else goes through DRF's default handler.
    """
    if isinstance(exc, DomainError):
        view = context.get("view")
        logger.info(
            "Domain error %s in %s: %s",
            exc.code,
            type(view).__name__ if view is not None else "unknown view",
            exc.message,
        )
        response = Response(exc.as_dict(), status=exc.http_status)
        if exc.retryable:
            response["Retry-After"] = "1"
        return response
    return exception_handler(exc, context)
