"""Domain exceptions and the DRF exception handler producing the error envelope"""
import logging

from django.http import Http404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class WholesaleError(Exception):
    """Base class for business-rule failures raised by services"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Request could not be processed'

    def __init__(self, message=None, data=None):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)


class InvalidOperationError(WholesaleError):
    default_message = 'Invalid operation'


class InsufficientStockError(WholesaleError):
    """Raised when one or more lines request more stock than is available"""
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Insufficient stock'

    def __init__(self, shortfalls, message=None):
        self.shortfalls = shortfalls
        super().__init__(message, data={'insufficient_items': shortfalls})


class CustomerNotVerifiedError(WholesaleError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'Business account must be verified before placing orders'


def _flatten_message(detail):
    if isinstance(detail, dict):
        if 'detail' in detail:
            return str(detail['detail'])
        return 'Validation failed'
    if isinstance(detail, list):
        return str(detail[0]) if detail else 'Validation failed'
    return str(detail)


def api_exception_handler(exc, context):
    """Render DRF and domain errors as {status: 'error', data, message}"""
    if isinstance(exc, WholesaleError):
        logger.info(f"{type(exc).__name__}: {exc.message}")
        return Response({
            'status': 'error',
            'data': exc.data,
            'message': exc.message,
        }, status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        # Unhandled errors propagate to Django's 500 handling
        view = context.get('view')
        logger.error(f"Unhandled error in {type(view).__name__ if view else 'view'}: {exc}", exc_info=exc)
        return None

    if isinstance(exc, Http404):
        message = 'Not found'
        data = None
    else:
        message = _flatten_message(response.data)
        data = response.data if isinstance(response.data, dict) and 'detail' not in response.data else None
    response.data = {
        'status': 'error',
        'data': data,
        'message': message,
    }
    return response
