import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated, IsAdminUser
from django.db.models import Q, Count
from django.shortcuts import get_object_or_404

from wholesale.core.models import AuditLog
from wholesale.core.permissions import IsBusinessCustomer
from wholesale.core.serializers import UserSerializer, AuditLogSerializer
from wholesale.core.utils import api_response, api_error, create_audit_log, paginate_queryset
from wholesale.core.views import CustomTokenObtainPairSerializer
from wholesale.orders.serializers import OrderListSerializer
from .models import Customer, CreditApplication, Supplier
from .serializers import (
    CustomerSerializer, CustomerDetailSerializer, CustomerRegistrationSerializer,
    BusinessDocumentSerializer, VerificationSubmitSerializer, CustomerStatusSerializer,
    CreditApplicationSerializer, CreditApprovalSerializer, CreditRejectionSerializer,
    SupplierSerializer,
)
from . import services

logger = logging.getLogger(__name__)

RECENT_ORDERS_LIMIT = 10
CUSTOMER_ORDERS_LIMIT = 20


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Register a business account and return a token pair"""
    serializer = CustomerRegistrationSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid registration', data=serializer.errors)

    customer = serializer.save()
    refresh = CustomTokenObtainPairSerializer.get_token(customer.user)
    create_audit_log(request=request, action='create', model_name='Customer', object_id=customer.id,
                     object_name=customer.company_name, user=customer.user)
    logger.info(f"Registered customer {customer.id} ({customer.company_name})")
    return api_response({
        'refresh': str(refresh),
        'access': str(refresh.access_token),
        'user': UserSerializer(customer.user).data,
        'customer': CustomerSerializer(customer).data,
    }, 'Registration successful', status.HTTP_201_CREATED)


# Self-service views
@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsBusinessCustomer])
def customer_me(request):
    """Retrieve or update the caller's business profile"""
    customer = request.user.customer
    if request.method == 'GET':
        return api_response(CustomerDetailSerializer(customer).data)

    serializer = CustomerSerializer(customer, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        create_audit_log(request=request, action='update', model_name='Customer', object_id=customer.id,
                         object_name=customer.company_name, changes=dict(request.data))
        return api_response(serializer.data, 'Profile updated')
    return api_error('Invalid profile', data=serializer.errors)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBusinessCustomer])
def customer_verification(request):
    """Get verification state or submit verification documents"""
    customer = request.user.customer
    if request.method == 'GET':
        return api_response({
            'status': customer.status,
            'verification_notes': customer.verification_notes,
            'verified_at': customer.verified_at,
            'documents': BusinessDocumentSerializer(customer.documents.all(), many=True).data,
        })

    serializer = VerificationSubmitSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid verification submission', data=serializer.errors)

    customer = services.submit_verification(
        customer, serializer.validated_data['documents'], serializer.business_details()
    )
    create_audit_log(request=request, action='verification_submit', model_name='Customer',
                     object_id=customer.id, object_name=customer.company_name,
                     changes={'documents': len(serializer.validated_data['documents'])})
    return api_response(CustomerDetailSerializer(customer).data, 'Verification submitted')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsBusinessCustomer])
def customer_credit_applications(request):
    """List the caller's credit applications or apply for credit"""
    customer = request.user.customer
    if request.method == 'GET':
        applications = customer.credit_applications.all()
        return api_response(CreditApplicationSerializer(applications, many=True).data)

    serializer = CreditApplicationSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid credit application', data=serializer.errors)

    data = serializer.validated_data
    application = services.apply_for_credit(
        customer, data['requested_amount'], data.get('term', 'DAYS_30'),
        documents=data.get('documents'), notes=data.get('notes', ''),
    )
    create_audit_log(request=request, action='credit_apply', model_name='CreditApplication',
                     object_id=application.id, object_name=customer.company_name,
                     object_reference=str(customer.id),
                     changes={'requested_amount': str(application.requested_amount), 'term': application.term})
    return api_response(CreditApplicationSerializer(application).data, 'Credit application submitted',
                        status.HTTP_201_CREATED)


# Admin customer views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def customer_list(request):
    """List customers with search and status filters"""
    queryset = Customer.objects.select_related('user').annotate(order_count=Count('orders'))

    search = request.query_params.get('search')
    if search:
        queryset = queryset.filter(
            Q(company_name__icontains=search) |
            Q(contact_name__icontains=search) |
            Q(email__icontains=search) |
            Q(phone__icontains=search) |
            Q(tax_id__icontains=search)
        )
    status_filter = request.query_params.get('status')
    if status_filter:
        queryset = queryset.filter(status=status_filter.upper())
    credit_status = request.query_params.get('credit_status')
    if credit_status:
        queryset = queryset.filter(credit_status=credit_status.upper())

    return api_response(paginate_queryset(request, queryset.order_by('-created_at'), CustomerSerializer))


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsAdminUser])
def customer_detail(request, pk):
    """Customer with documents and most recent orders"""
    customer = get_object_or_404(Customer.objects.select_related('user'), pk=pk)
    if request.method == 'PATCH':
        serializer = CustomerSerializer(customer, data=request.data, partial=True)
        if not serializer.is_valid():
            return api_error('Invalid customer', data=serializer.errors)
        serializer.save()
        create_audit_log(request=request, action='update', model_name='Customer', object_id=customer.id,
                         object_name=customer.company_name, changes=dict(request.data))

    data = CustomerDetailSerializer(customer).data
    recent_orders = customer.orders.order_by('-created_at')[:RECENT_ORDERS_LIMIT]
    data['recent_orders'] = OrderListSerializer(recent_orders, many=True).data
    return api_response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def customer_orders(request, pk):
    """Most recent orders of a customer"""
    customer = get_object_or_404(Customer, pk=pk)
    orders = customer.orders.order_by('-created_at')[:CUSTOMER_ORDERS_LIMIT]
    return api_response(OrderListSerializer(orders, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def customer_activity(request, pk):
    """Audit trail of a customer: their own actions and actions on their account"""
    customer = get_object_or_404(Customer, pk=pk)
    logs = AuditLog.objects.filter(
        Q(user=customer.user) |
        Q(model_name='Customer', object_id=str(customer.id)) |
        Q(model_name='CreditApplication', object_reference=str(customer.id))
    ).select_related('user').order_by('-created_at')
    return api_response(paginate_queryset(request, logs, AuditLogSerializer))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminUser])
def customer_status_update(request, pk):
    """Verify or reject a business account"""
    customer = get_object_or_404(Customer, pk=pk)
    serializer = CustomerStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid status', data=serializer.errors)

    new_status = serializer.validated_data['status']
    previous = services.set_verification_status(customer, new_status, serializer.validated_data['notes'])
    create_audit_log(request=request, action='customer_verify', model_name='Customer',
                     object_id=customer.id, object_name=customer.company_name,
                     changes={'status': {'old': previous, 'new': new_status}})
    return api_response(CustomerSerializer(customer).data, f'Customer status set to {new_status}')


# Credit review views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def credit_application_list(request):
    """List credit applications, optionally by status"""
    queryset = CreditApplication.objects.select_related('customer', 'reviewed_by')
    status_filter = request.query_params.get('status')
    if status_filter:
        queryset = queryset.filter(status=status_filter.upper())
    return api_response(paginate_queryset(request, queryset.order_by('-created_at'), CreditApplicationSerializer))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def credit_application_approve(request, pk):
    """Approve a credit application and open the customer's credit line"""
    application = get_object_or_404(CreditApplication, pk=pk)
    serializer = CreditApprovalSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid approval', data=serializer.errors)

    data = serializer.validated_data
    application = services.approve_credit(
        application, request.user, amount=data.get('amount'), term=data.get('term'), notes=data['notes']
    )
    create_audit_log(request=request, action='credit_approve', model_name='CreditApplication',
                     object_id=application.id, object_name=application.customer.company_name,
                     object_reference=str(application.customer_id),
                     changes={'approved_amount': str(application.approved_amount), 'term': application.term})
    return api_response(CreditApplicationSerializer(application).data, 'Credit application approved')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def credit_application_reject(request, pk):
    """Reject a credit application"""
    application = get_object_or_404(CreditApplication, pk=pk)
    serializer = CreditRejectionSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid rejection', data=serializer.errors)

    application = services.reject_credit(application, request.user, serializer.validated_data['reason'])
    create_audit_log(request=request, action='credit_reject', model_name='CreditApplication',
                     object_id=application.id, object_name=application.customer.company_name,
                     object_reference=str(application.customer_id),
                     changes={'reason': application.notes})
    return api_response(CreditApplicationSerializer(application).data, 'Credit application rejected')


# Supplier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def supplier_list_create(request):
    """List all suppliers or create a new supplier"""
    if request.method == 'GET':
        queryset = Supplier.objects.all().order_by('name')
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(contact_name__icontains=search) |
                Q(phone__icontains=search) |
                Q(email__icontains=search)
            )
        active = request.query_params.get('active')
        if active in ('true', 'false'):
            queryset = queryset.filter(is_active=active == 'true')
        return api_response(paginate_queryset(request, queryset, SupplierSerializer))
    else:
        serializer = SupplierSerializer(data=request.data)
        if serializer.is_valid():
            supplier = serializer.save()
            create_audit_log(request=request, action='create', model_name='Supplier',
                             object_id=supplier.id, object_name=supplier.name)
            return api_response(serializer.data, 'Supplier created', status.HTTP_201_CREATED)
        return api_error('Invalid supplier', data=serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    supplier = get_object_or_404(Supplier, pk=pk)

    if request.method == 'GET':
        return api_response(SupplierSerializer(supplier).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return api_response(serializer.data, 'Supplier updated')
        return api_error('Invalid supplier', data=serializer.errors)
    else:  # DELETE
        if supplier.orders.exists():
            # Suppliers with purchase history are deactivated instead
            supplier.is_active = False
            supplier.save(update_fields=['is_active', 'updated_at'])
            return api_response(SupplierSerializer(supplier).data, 'Supplier has orders and was deactivated')
        create_audit_log(request=request, action='delete', model_name='Supplier',
                         object_id=supplier.id, object_name=supplier.name)
        supplier.delete()
        return api_response(None, 'Supplier deleted')
