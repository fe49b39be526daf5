import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import CartValidationError, InvalidStatusError, OrderingError

logger = logging.getLogger(__name__)


def success_response(data=None, message=None, status_code=status.HTTP_200_OK, **extra):
    body = {'success': True, 'data': data}
    if message:
        body['message'] = message
    body.update(extra)
    return Response(body, status=status_code)


def error_response(error, status_code=status.HTTP_400_BAD_REQUEST, details=None):
    body = {'success': False, 'error': error}
    if details is not None:
        body['details'] = details
    return Response(body, status=status_code)


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    return str(detail)


def envelope_exception_handler(exc, context):
    """DRF exception handler that wraps every error in the {success, error} envelope"""
    if isinstance(exc, CartValidationError):
        return error_response(str(exc), details=exc.details)
    if isinstance(exc, InvalidStatusError):
        return error_response(str(exc))

    response = exception_handler(exc, context)
    if response is None:
        if isinstance(exc, OrderingError):
            logger.error(f"Unhandled ordering error: {str(exc)}")
            return error_response(str(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
        return None

    if isinstance(exc, ValidationError):
        response.data = {
            'success': False,
            'error': _first_message(response.data),
            'details': response.data,
        }
    else:
        detail = response.data.get('detail') if isinstance(response.data, dict) else response.data
        response.data = {'success': False, 'error': str(detail)}
    return response
