# bloodbridge/exceptions.py
"""
Error taxonomy shared by the engine and the REST layer.

Every error carries a stable machine-readable ``kind`` (the DRF
``default_code``) plus a human readable message.  Engine functions raise
these directly; ``api_exception_handler`` renders them as
``{"kind": ..., "message": ...}``.
"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.db import DatabaseError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ValidationError(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'validation_error'


class Forbidden(exceptions.APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You are not allowed to perform this action.'
    default_code = 'forbidden'


class NotFound(exceptions.APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class Conflict(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The request conflicts with the current state.'
    default_code = 'conflict'


class InvalidTransition(Conflict):
    default_detail = 'This appointment can no longer change status.'
    default_code = 'invalid_transition'


class DuplicateDonation(Conflict):
    default_detail = 'A donation has already been recorded for this appointment.'
    default_code = 'duplicate_donation'


class InsufficientStock(Conflict):
    default_detail = 'Cannot deduct more units than available in stock.'
    default_code = 'insufficient_stock'


class NoSuchInventoryType(InsufficientStock):
    default_detail = 'Cannot deduct units from a blood type that has no inventory.'
    default_code = 'no_such_inventory_type'


class Internal(exceptions.APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Internal server error.'
    default_code = 'internal'


# DRF's own exceptions keep their codes except where the names differ
DRF_KIND_ALIASES = {
    'invalid': 'validation_error',
    'parse_error': 'validation_error',
    'permission_denied': 'forbidden',
}


def _message_for(detail):
    if isinstance(detail, (list, dict)):
        return 'Invalid input.'
    return str(detail)


def api_exception_handler(exc, context):
    """
    DRF exception handler producing ``{"kind", "message", "errors"?}`` bodies.
    Unexpected exceptions are logged and reported as ``internal``.
    """
    if isinstance(exc, Http404):
        exc = NotFound(str(exc) or None)
    elif isinstance(exc, DjangoPermissionDenied):
        exc = Forbidden(str(exc) or None)

    if isinstance(exc, exceptions.ValidationError):
        response = exception_handler(exc, context)
        response.data = {
            'kind': 'validation_error',
            'message': _message_for(exc.detail),
            'errors': exc.detail,
        }
        return response

    if isinstance(exc, exceptions.APIException):
        response = exception_handler(exc, context)
        codes = exc.get_codes()
        kind = codes if isinstance(codes, str) else exc.default_code
        response.data = {
            'kind': DRF_KIND_ALIASES.get(kind, kind),
            'message': _message_for(exc.detail),
        }
        return response

    view = context.get('view')
    if isinstance(exc, DatabaseError):
        logger.exception(f"Database failure in {view.__class__.__name__ if view else 'view'}")
    else:
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'view'}")

    return Response(
        {'kind': Internal.default_code, 'message': str(Internal.default_detail)},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
