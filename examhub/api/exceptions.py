"""
Maps engine errors onto HTTP responses.

Installed as REST_FRAMEWORK['EXCEPTION_HANDLER']. Anything that is not an
EngineError goes through DRF's default handler.
"""
import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from examhub.exceptions import EngineError, Forbidden, InvariantViolation
from examhub.models import AuditLog

logger = logging.getLogger(__name__)


def engine_exception_handler(exc, context):
    if not isinstance(exc, EngineError):
        return exception_handler(exc, context)

    request = context.get('request')
    view = context.get('view')
    view_name = type(view).__name__ if view is not None else ''

    if isinstance(exc, Forbidden):
        AuditLog.log(
            AuditLog.EventType.PERMISSION_DENIED,
            exc.detail,
            request=request,
            metadata={'view': view_name, 'code': exc.code}
        )
    elif isinstance(exc, InvariantViolation):
        logger.error(f"Invariant violation in {view_name}: {exc.detail}")
        AuditLog.log(
            AuditLog.EventType.INVARIANT_VIOLATION,
            exc.detail,
            request=request,
            metadata={'view': view_name, 'kwargs': {k: str(v) for k, v in (context.get('kwargs') or {}).items()}}
        )

    return Response(exc.as_dict(), status=exc.status_code)
