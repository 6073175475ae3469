"""Utility functions for audit logging and API responses"""
import logging
import uuid

from rest_framework import status
from rest_framework.response import Response
from django.utils import timezone

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None,
                     sku=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, order_place, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., product name, order number)
        object_reference: Reference identifier (e.g., order number, customer id)
        sku: SKU(s) if applicable
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or object_id is None:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            sku=sku,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def api_response(data=None, message=None, status_code=status.HTTP_200_OK):
    """Wrap a payload in the standard {status, data, message} envelope"""
    return Response({
        'status': 'success',
        'data': data,
        'message': message,
    }, status=status_code)


def api_error(message, status_code=status.HTTP_400_BAD_REQUEST, data=None):
    """Error counterpart of api_response"""
    return Response({
        'status': 'error',
        'data': data,
        'message': message,
    }, status=status_code)


def paginate_queryset(request, queryset, serializer_class, context=None):
    """Page a queryset using ?page=&limit= and return the envelope payload"""
    try:
        page = max(int(request.query_params.get('page', 1)), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = min(max(int(request.query_params.get('limit', 20)), 1), 100)
    except (TypeError, ValueError):
        limit = 20

    total = queryset.count()
    offset = (page - 1) * limit
    items = queryset[offset:offset + limit]
    serializer = serializer_class(items, many=True, context=context or {'request': request})
    return {
        'results': serializer.data,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'pages': (total + limit - 1) // limit,
        },
    }


def generate_reference(prefix):
    """PREFIX-YYYYMMDD-XXXXXXXX with an uppercase random hex suffix"""
    return f"{prefix}-{timezone.now().strftime('%Y%m%d')}-{uuid.uuid4().hex[:8].upper()}"
