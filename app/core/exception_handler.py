"""
DRF exception handler for the marketplace API.

Configured through REST_FRAMEWORK["EXCEPTION_HANDLER"]. Order of handling:

1. core.exceptions.BaseApplicationError -> status from its result kind.
   Internal errors are reported with a generic message only.
2. django_fsm.TransitionNotAllowed -> 409 (a state conflict that slipped
   past a service guard).
3. Anything DRF already knows (ValidationError, NotAuthenticated,
   PermissionDenied, Http404, ...) -> DRF's default handling.
4. Everything else -> logged with traceback, generic 500.
"""

from __future__ import annotations

import logging

from django_fsm import TransitionNotAllowed
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from core.exceptions import BaseApplicationError
from core.services import ResultKind

logger = logging.getLogger(__name__)

GENERIC_INTERNAL_ERROR = {"error": "Internal error", "error_code": "INTERNAL_ERROR"}


def api_exception_handler(exc, context):
    view = context.get("view")
    view_name = view.__class__.__name__ if view is not None else None

    if isinstance(exc, BaseApplicationError):
        if exc.result_kind == ResultKind.INTERNAL_ERROR:
            logger.error(
                "Application error in view",
                extra={"view": view_name, "error_code": exc.error_code},
                exc_info=exc,
            )
            return Response(GENERIC_INTERNAL_ERROR, status=exc.http_status)
        return Response(exc.to_dict(), status=exc.http_status)

    if isinstance(exc, TransitionNotAllowed):
        logger.warning(
            "State transition not allowed",
            extra={"view": view_name, "detail": str(exc)},
        )
        return Response(
            {"error": "Invalid state transition", "error_code": "INVALID_STATE_TRANSITION"},
            status=status.HTTP_409_CONFLICT,
        )

    response = drf_exception_handler(exc, context)
    if response is not None:
        return response

    logger.exception("Unhandled error in view", extra={"view": view_name})
    return Response(GENERIC_INTERNAL_ERROR, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
