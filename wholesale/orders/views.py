import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated, IsAdminUser
from django.db.models import Prefetch
from django.shortcuts import get_object_or_404

from wholesale.core.permissions import IsBusinessCustomer
from wholesale.core.utils import api_response, api_error, create_audit_log, paginate_queryset
from .filters import OrderFilter
from .models import CartItem, Order, OrderItem
from .serializers import (
    CartItemSerializer, CartItemInputSerializer, CartItemUpdateSerializer, CheckoutSerializer,
    OrderCreateSerializer, OrderSerializer, OrderListSerializer, OrderStatusSerializer,
    PaymentStatusSerializer, OrderCancelSerializer,
)
from . import services

logger = logging.getLogger(__name__)

CART_SESSION_HEADER = 'HTTP_X_CART_SESSION'


def request_customer(request):
    user = request.user
    if user and user.is_authenticated:
        return getattr(user, 'customer', None)
    return None


def resolve_cart(request, create=True):
    """Cart of the signed-in customer, or the guest cart named by X-Cart-Session"""
    customer = request_customer(request)
    if customer is not None:
        return services.get_cart(customer=customer, create=create)
    return services.get_cart(session_key=request.META.get(CART_SESSION_HEADER), create=create)


def cart_payload(cart):
    """Cart with priced lines and order totals"""
    items = list(cart.items.select_related('product', 'variant').order_by('id'))
    lines = [{'product': i.product, 'variant': i.variant, 'quantity': i.quantity, 'item_id': i.id} for i in items]
    priced, subtotal = services.quote_lines(lines)
    quotes = {line['item_id']: line for line in priced}
    totals = services.compute_totals(subtotal)
    return {
        'id': cart.id,
        'session_key': cart.session_key,
        'items': CartItemSerializer(items, many=True, context={'quotes': quotes}).data,
        'item_count': sum(i.quantity for i in items),
        'subtotal': str(totals['subtotal']),
        'tax': str(totals['tax']),
        'shipping': str(totals['shipping']),
        'total': str(totals['total']),
    }


NO_CART_MESSAGE = 'Sign in as a business customer or send an X-Cart-Session header'


# Cart views
@api_view(['GET'])
@permission_classes([AllowAny])
def cart_detail(request):
    """Get the current cart with priced lines"""
    cart = resolve_cart(request)
    if cart is None:
        return api_error(NO_CART_MESSAGE)
    return api_response(cart_payload(cart))


@api_view(['POST'])
@permission_classes([AllowAny])
def cart_items(request):
    """Add a product (or variant) to the cart"""
    cart = resolve_cart(request)
    if cart is None:
        return api_error(NO_CART_MESSAGE)

    serializer = CartItemInputSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid cart item', data=serializer.errors)

    data = serializer.validated_data
    item = services.add_to_cart(cart, data['product'], data['quantity'], data.get('variant'))
    create_audit_log(request=request, action='cart_add', model_name='Cart', object_id=cart.id,
                     object_name=data['product'].name, sku=item.variant.sku if item.variant else item.product.sku,
                     changes={'quantity': data['quantity']})
    return api_response(cart_payload(cart), 'Item added to cart', status.HTTP_201_CREATED)


@api_view(['PUT', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def cart_item_detail(request, item_id):
    """Update the quantity of a cart line or remove it"""
    cart = resolve_cart(request, create=False)
    if cart is None:
        return api_error('Cart not found', status.HTTP_404_NOT_FOUND)
    item = get_object_or_404(CartItem.objects.select_related('product', 'variant'), pk=item_id, cart=cart)

    if request.method == 'DELETE':
        services.remove_cart_item(item)
        create_audit_log(request=request, action='cart_remove', model_name='Cart', object_id=cart.id,
                         object_name=item.product.name, sku=item.product.sku)
        return api_response(cart_payload(cart), 'Item removed from cart')

    serializer = CartItemUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid quantity', data=serializer.errors)
    services.update_cart_item(item, serializer.validated_data['quantity'])
    create_audit_log(request=request, action='cart_update', model_name='Cart', object_id=cart.id,
                     object_name=item.product.name, sku=item.product.sku,
                     changes={'quantity': item.quantity})
    return api_response(cart_payload(cart), 'Cart updated')


@api_view(['POST'])
@permission_classes([AllowAny])
def cart_clear(request):
    """Remove every line from the cart"""
    cart = resolve_cart(request, create=False)
    if cart is None:
        return api_error('Cart not found', status.HTTP_404_NOT_FOUND)
    services.clear_cart(cart)
    return api_response(cart_payload(cart), 'Cart cleared')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBusinessCustomer])
def cart_merge(request):
    """Merge the guest cart named by X-Cart-Session into the customer's cart"""
    session_key = request.META.get(CART_SESSION_HEADER) or request.data.get('session_key')
    if not session_key:
        return api_error('session_key is required')
    cart, merged = services.merge_guest_cart(request.user.customer, session_key)
    return api_response(cart_payload(cart), f'Merged {merged} item(s) into cart')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsBusinessCustomer])
def cart_checkout(request):
    """Place an order from the cart and empty it"""
    customer = request.user.customer
    cart = services.get_cart(customer=customer)
    serializer = CheckoutSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid checkout', data=serializer.errors)

    lines = services.cart_lines(cart)
    if not lines:
        return api_error('Cart is empty')

    order = services.place_order(customer, lines, user=request.user, **serializer.validated_data)
    services.clear_cart(cart)
    _log_order_placed(request, order)
    return api_response(OrderSerializer(order).data, 'Order placed', status.HTTP_201_CREATED)


def _log_order_placed(request, order):
    skus = ', '.join(order.items.values_list('sku', flat=True))
    create_audit_log(request=request, action='order_place', model_name='Order', object_id=order.id,
                     object_name=order.order_number, object_reference=str(order.customer_id), sku=skus,
                     changes={'total': str(order.total), 'credit_used': str(order.credit_used)})


def order_queryset(request):
    """Admins see every order; customers only their own"""
    queryset = Order.objects.select_related('customer', 'created_by').prefetch_related(
        Prefetch('items', queryset=OrderItem.objects.order_by('id'))
    )
    if request.user.is_staff:
        return queryset
    customer = request_customer(request)
    if customer is None:
        return queryset.none()
    return queryset.filter(customer=customer)


# Order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List orders or place an order from explicit lines"""
    if request.method == 'GET':
        queryset = order_queryset(request)
        filterset = OrderFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return api_error('Invalid filters', data=filterset.errors)
        queryset = filterset.qs.order_by('-created_at')
        return api_response(paginate_queryset(request, queryset, OrderListSerializer))

    customer = request_customer(request)
    if customer is None:
        return api_error('A business customer account is required.', status.HTTP_403_FORBIDDEN)
    serializer = OrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid order', data=serializer.errors)

    data = dict(serializer.validated_data)
    lines = [dict(line) for line in data.pop('items')]
    order = services.place_order(customer, lines, user=request.user, **data)
    _log_order_placed(request, order)
    return api_response(OrderSerializer(order).data, 'Order placed', status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    """Retrieve an order"""
    order = get_object_or_404(order_queryset(request), pk=pk)
    return api_response(OrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_cancel(request, pk):
    """Cancel an order, restock its items and refund used credit"""
    order = get_object_or_404(order_queryset(request), pk=pk)
    serializer = OrderCancelSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid cancellation', data=serializer.errors)

    order = services.cancel_order(order, user=request.user, reason=serializer.validated_data['reason'])
    create_audit_log(request=request, action='order_cancel', model_name='Order', object_id=order.id,
                     object_name=order.order_number, object_reference=str(order.customer_id),
                     changes={'reason': serializer.validated_data['reason'], 'credit_refunded': str(order.credit_used)})
    order = order_queryset(request).get(pk=order.pk)
    return api_response(OrderSerializer(order).data, 'Order cancelled')


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminUser])
def order_status_update(request, pk):
    """Change the fulfilment status of an order"""
    order = get_object_or_404(Order, pk=pk)
    serializer = OrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid status', data=serializer.errors)

    new_status = serializer.validated_data['status']
    previous = services.update_order_status(order, new_status, user=request.user)
    create_audit_log(request=request, action='order_status', model_name='Order', object_id=order.id,
                     object_name=order.order_number, object_reference=str(order.customer_id),
                     changes={'status': {'old': previous, 'new': new_status}})
    order = order_queryset(request).get(pk=order.pk)
    return api_response(OrderSerializer(order).data, f'Order status set to {new_status}')


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminUser])
def order_payment_status_update(request, pk):
    """Change the payment status of an order"""
    order = get_object_or_404(Order, pk=pk)
    serializer = PaymentStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return api_error('Invalid payment status', data=serializer.errors)

    new_status = serializer.validated_data['payment_status']
    previous = services.update_payment_status(order, new_status)
    create_audit_log(request=request, action='payment_status', model_name='Order', object_id=order.id,
                     object_name=order.order_number, object_reference=str(order.customer_id),
                     changes={'payment_status': {'old': previous, 'new': new_status}})
    order = order_queryset(request).get(pk=order.pk)
    return api_response(OrderSerializer(order).data, f'Payment status set to {new_status}')
