"""
Domain errors and the DRF exception handler.

Services raise the DomainError subclasses below; the handler turns them
into a consistent {error, details} response. Database outages are kept
apart from the domain kinds and reported as a generic 503.
"""
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from django.db import DatabaseError, IntegrityError
import logging

logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base class for failures the caller is expected to handle."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Request could not be completed.'

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found.'


class Forbidden(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'Access denied.'


class ValidationError(DomainError):
    """Carries field-level messages as {field: [messages]}."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid input.'

    def __init__(self, errors, message=None):
        self.errors = {
            field: messages if isinstance(messages, list) else [messages]
            for field, messages in errors.items()
        }
        super().__init__(message, details=self.errors)


class InvalidState(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Operation not allowed in the current state.'


class InvalidParent(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid parent comment.'


def custom_exception_handler(exc, context):
    """
    Custom exception handler that:
    1. Maps DomainError subclasses to their status codes
    2. Keeps DRF's own handling for its exceptions
    3. Reports storage outages separately from domain failures
    """
    if isinstance(exc, DomainError):
        data = {'error': exc.message}
        if exc.details:
            data['details'] = exc.details
        return Response(data, status=exc.status_code)

    response = exception_handler(exc, context)

    if response is not None:
        if not isinstance(response.data, dict) or 'error' not in response.data:
            response.data = {
                'error': str(exc),
                'details': response.data
            }
        return response

    if isinstance(exc, IntegrityError):
        logger.warning(f"IntegrityError: {exc}")
        return Response(
            {'error': 'Data integrity error. This may be a duplicate entry.'},
            status=status.HTTP_409_CONFLICT
        )

    if isinstance(exc, DatabaseError):
        logger.exception(f"Storage failure: {exc}")
        return Response(
            {'error': 'Storage is temporarily unavailable.'},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    logger.exception(f"Unhandled exception: {exc}")

    return Response(
        {'error': 'An unexpected error occurred.'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
