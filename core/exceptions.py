"""
Core — Exception Handling

Domain exceptions for the listing/request engine and the DRF exception
handler that renders them as consistent API error envelopes.

@file core/exceptions.py
"""

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger('medshare')


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class BusinessRuleViolation(APIException):
    """Raised when a business rule is violated at the service layer."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Business rule violation.'
    default_code = 'BUSINESS_RULE_VIOLATION'


class ResourceNotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'RESOURCE_NOT_FOUND'


class UnauthorizedActorError(APIException):
    """The acting user is not the donor/requester the operation requires."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You are not allowed to perform this action.'
    default_code = 'UNAUTHORIZED_ACTOR'


class InvalidStateTransition(APIException):
    """Raised when a state machine transition is not allowed."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Invalid state transition.'
    default_code = 'INVALID_STATE_TRANSITION'


class InsufficientQuantityError(APIException):
    """Requested amount exceeds what the listing still has unreserved."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Not enough quantity remaining for this request.'
    default_code = 'INSUFFICIENT_QUANTITY'


class DuplicateRequestError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'You already have an open request for this medicine.'
    default_code = 'DUPLICATE_REQUEST'


class SelfRequestError(BusinessRuleViolation):
    default_detail = 'You cannot request your own medicine.'
    default_code = 'SELF_REQUEST'


class MedicineExpiredError(BusinessRuleViolation):
    default_detail = 'This medicine has expired.'
    default_code = 'MEDICINE_EXPIRED'


class GeocodeUnavailable(Exception):
    """
    A geocoding provider call failed. Never surfaces to API clients: the
    geocoder and the listing ranker degrade it to an unknown distance.
    """


# ---------------------------------------------------------------------------
# Standard exception handler
# ---------------------------------------------------------------------------

def standard_exception_handler(exc, context):
    """
    Wraps every error response in the standard envelope:
      { "success": false, "errors": {...}, "code": "ERROR_CODE" }
    """
    if isinstance(exc, Http404):
        exc = ResourceNotFoundError()
    elif isinstance(exc, PermissionDenied):
        exc = APIException(detail='Permission denied.', code='PERMISSION_DENIED')
        exc.status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, ValidationError):
        data = {
            'success': False,
            'errors': exc.message_dict if hasattr(exc, 'message_dict') else {'detail': exc.messages},
            'code': 'VALIDATION_ERROR',
        }
        return Response(data, status=status.HTTP_400_BAD_REQUEST)

    response = exception_handler(exc, context)

    if response is not None:
        errors = {}
        code = getattr(exc, 'default_code', 'ERROR')

        if isinstance(response.data, dict):
            errors = response.data
            code = response.data.pop('code', code) if 'code' in response.data else code
        elif isinstance(response.data, list):
            errors = {'detail': response.data}
        else:
            errors = {'detail': [str(response.data)]}

        response.data = {
            'success': False,
            'errors': errors,
            'code': code,
        }

    if response is None:
        logger.exception('Unhandled exception in view: %s', exc)
        return Response(
            {'success': False, 'errors': {'detail': ['Internal server error.']}, 'code': 'INTERNAL_ERROR'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return response
