from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from django.shortcuts import get_object_or_404

from wholesale.core.utils import api_response, api_error, create_audit_log, paginate_queryset
from .models import SupplierOrder
from .serializers import SupplierOrderSerializer
from . import services


def supplier_order_queryset():
    return SupplierOrder.objects.select_related('supplier', 'created_by').prefetch_related('items', 'items__product')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def supplier_order_list_create(request):
    """List all supplier orders or create a new one"""
    if request.method == 'GET':
        queryset = supplier_order_queryset()

        supplier = request.query_params.get('supplier', None)
        status_filter = request.query_params.get('status', None)
        date_from = request.query_params.get('date_from', None)
        date_to = request.query_params.get('date_to', None)

        if supplier:
            queryset = queryset.filter(supplier_id=supplier)
        if status_filter:
            queryset = queryset.filter(status=status_filter.upper())
        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)

        queryset = queryset.order_by('-created_at', '-id')
        return api_response(paginate_queryset(request, queryset, SupplierOrderSerializer))

    serializer = SupplierOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid supplier order', data=serializer.errors)

    data = dict(serializer.validated_data)
    items = data.pop('items')
    supplier = data.pop('supplier')
    order = services.create_supplier_order(supplier, items, user=request.user, **data)
    create_audit_log(request=request, action='create', model_name='SupplierOrder', object_id=order.id,
                     object_name=order.order_number, object_reference=order.order_number,
                     changes={'supplier': supplier.name, 'total_amount': str(order.total_amount)})
    return api_response(SupplierOrderSerializer(supplier_order_queryset().get(pk=order.pk)).data,
                        'Supplier order created', status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def supplier_order_detail(request, pk):
    """Retrieve, update or delete a supplier order"""
    order = get_object_or_404(supplier_order_queryset(), pk=pk)

    if request.method == 'GET':
        return api_response(SupplierOrderSerializer(order).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierOrderSerializer(order, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return api_error('Invalid supplier order', data=serializer.errors)
        data = dict(serializer.validated_data)
        items = data.pop('items', None)
        order = services.update_supplier_order(order, items=items, **data)
        create_audit_log(request=request, action='update', model_name='SupplierOrder', object_id=order.id,
                         object_name=order.order_number, object_reference=order.order_number,
                         changes={'status': order.status, 'total_amount': str(order.total_amount)})
        return api_response(SupplierOrderSerializer(supplier_order_queryset().get(pk=order.pk)).data,
                            'Supplier order updated')
    else:  # DELETE
        order_number = order.order_number
        order_id = order.id
        services.delete_supplier_order(order)
        create_audit_log(request=request, action='delete', model_name='SupplierOrder', object_id=order_id,
                         object_name=order_number, object_reference=order_number)
        return api_response(None, 'Supplier order deleted')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def supplier_order_receive(request, pk):
    """Mark a supplier order delivered and add its quantities to stock"""
    order = get_object_or_404(SupplierOrder, pk=pk)
    order, received_units = services.receive_supplier_order(order, user=request.user)
    create_audit_log(
        request=request,
        action='stock_receive',
        model_name='SupplierOrder',
        object_id=order.id,
        object_name=order.order_number,
        object_reference=order.order_number,
        sku=', '.join(item.product.sku for item in order.items.select_related('product') if item.product),
        changes={'status': 'DELIVERED', 'received_units': received_units},
    )
    return api_response(SupplierOrderSerializer(supplier_order_queryset().get(pk=order.pk)).data,
                        f'Supplier order received: {received_units} unit(s) added to stock')
