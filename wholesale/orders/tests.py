"""
Tests for carts, order totals, order placement and cancellation
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from wholesale.catalog.models import Product, ProductVariant
from wholesale.core.exceptions import CustomerNotVerifiedError, InsufficientStockError, InvalidOperationError
from wholesale.core.models import AuditLog
from wholesale.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wholesale.inventory.models import StockAdjustment
from wholesale.orders import services
from wholesale.orders.models import Cart, CartItem, Order
from wholesale.parties.models import Customer


class TotalsTests(TestCase):

    def test_small_order_pays_shipping(self):
        totals = services.compute_totals(Decimal('100.00'))
        self.assertEqual(totals['tax'], Decimal('8.50'))
        self.assertEqual(totals['shipping'], Decimal('10.00'))
        self.assertEqual(totals['total'], Decimal('118.50'))
        self.assertEqual(totals['amount_due'], Decimal('118.50'))

    def test_free_shipping_above_threshold(self):
        self.assertEqual(services.compute_totals(Decimal('500.00'))['shipping'], Decimal('10.00'))
        totals = services.compute_totals(Decimal('500.01'))
        self.assertEqual(totals['shipping'], Decimal('0.00'))
        self.assertEqual(totals['total'], Decimal('542.51'))

    def test_empty_subtotal(self):
        totals = services.compute_totals(Decimal('0'))
        self.assertEqual(totals['total'], Decimal('0.00'))

    def test_credit_covers_at_most_total(self):
        partial = services.compute_totals(Decimal('100.00'), use_credit=True, available_credit=Decimal('50.00'))
        self.assertEqual(partial['credit_used'], Decimal('50.00'))
        self.assertEqual(partial['amount_due'], Decimal('68.50'))
        full = services.compute_totals(Decimal('100.00'), use_credit=True, available_credit=Decimal('1000.00'))
        self.assertEqual(full['credit_used'], Decimal('118.50'))
        self.assertEqual(full['amount_due'], Decimal('0.00'))

    def test_quote_applies_tiers(self):
        product = TestDataFactory.create_product(price='10.00')
        TestDataFactory.create_tier(product, 10, '9.00')
        priced, subtotal = services.quote_lines([{'product': product, 'quantity': 12}])
        self.assertEqual(priced[0]['unit_price'], Decimal('9.00'))
        self.assertEqual(priced[0]['tier_min_quantity'], 10)
        self.assertEqual(subtotal, Decimal('108.00'))


class CartServiceTests(TestCase):

    def setUp(self):
        self.customer = TestDataFactory.create_customer()
        self.product = TestDataFactory.create_product(price='5.00')
        self.shirt = TestDataFactory.create_product(name='Shirt', price='5.00')
        self.blue = TestDataFactory.create_variant(self.shirt, name='Blue')
        self.red = TestDataFactory.create_variant(self.shirt, name='Red')

    def test_adding_same_line_increments_quantity(self):
        cart = services.get_cart(customer=self.customer)
        services.add_to_cart(cart, self.product, 2)
        item = services.add_to_cart(cart, self.product, 3)
        self.assertEqual(item.quantity, 5)
        self.assertEqual(cart.items.count(), 1)

    def test_each_variant_is_separate_line(self):
        cart = services.get_cart(customer=self.customer)
        services.add_to_cart(cart, self.shirt, 1, variant=self.blue)
        services.add_to_cart(cart, self.shirt, 1, variant=self.red)
        self.assertEqual(cart.items.count(), 2)

    def test_product_with_variants_needs_variant(self):
        cart = services.get_cart(customer=self.customer)
        with self.assertRaises(InvalidOperationError):
            services.add_to_cart(cart, self.shirt, 1)
        ProductVariant.objects.filter(product=self.shirt).update(is_active=False)
        with self.assertRaises(InvalidOperationError):
            services.add_to_cart(cart, self.shirt, 1)
        self.assertFalse(cart.items.exists())

    def test_unpublished_product_rejected(self):
        draft = TestDataFactory.create_product(status='DRAFT')
        cart = services.get_cart(customer=self.customer)
        with self.assertRaises(InvalidOperationError):
            services.add_to_cart(cart, draft, 1)

    def test_variant_of_other_product_rejected(self):
        other = TestDataFactory.create_product()
        cart = services.get_cart(customer=self.customer)
        with self.assertRaises(InvalidOperationError):
            services.add_to_cart(cart, other, 1, variant=self.blue)

    def test_no_identity_means_no_cart(self):
        self.assertIsNone(services.get_cart())
        self.assertIsNone(services.get_cart(session_key='missing', create=False))

    def test_merge_guest_cart(self):
        guest = services.get_cart(session_key='guest-1')
        services.add_to_cart(guest, self.shirt, 4, variant=self.blue)
        services.add_to_cart(guest, self.shirt, 1, variant=self.red)
        cart = services.get_cart(customer=self.customer)
        services.add_to_cart(cart, self.shirt, 1, variant=self.blue)

        cart, merged = services.merge_guest_cart(self.customer, 'guest-1')
        self.assertEqual(merged, 2)
        self.assertEqual(cart.items.get(variant=self.blue).quantity, 5)
        self.assertEqual(cart.items.get(variant=self.red).quantity, 1)
        self.assertFalse(Cart.objects.filter(session_key='guest-1').exists())

    def test_merge_missing_guest_cart(self):
        cart, merged = services.merge_guest_cart(self.customer, 'nope')
        self.assertEqual(merged, 0)
        self.assertEqual(cart.customer, self.customer)


class PlaceOrderTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.customer = TestDataFactory.create_customer(user=self.user, verified=True)
        self.bolt = TestDataFactory.create_product(name='Bolt', price='10.00', stock=100)
        self.glove = TestDataFactory.create_product(name='Glove', price='4.00', stock=10)
        self.large = TestDataFactory.create_variant(self.glove, name='L', price='5.00', stock=5)

    def test_place_order(self):
        order = services.place_order(self.customer, [
            {'product': self.bolt, 'quantity': 10},
            {'product': self.glove, 'variant': self.large, 'quantity': 2},
        ], user=self.user)
        self.assertTrue(order.order_number.startswith('ORD-'))
        self.assertEqual(order.subtotal, Decimal('110.00'))
        self.assertEqual(order.tax, Decimal('9.35'))
        self.assertEqual(order.shipping, Decimal('10.00'))
        self.assertEqual(order.total, Decimal('129.35'))
        self.assertEqual(order.payment_method, 'INVOICE')
        self.assertEqual(order.status, 'PENDING')
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(order.items.get(variant=self.large).sku, self.large.sku)
        self.assertEqual(Product.objects.get(pk=self.bolt.pk).stock, 90)
        self.assertEqual(ProductVariant.objects.get(pk=self.large.pk).stock, 3)
        self.assertEqual(StockAdjustment.objects.filter(reference=order.order_number).count(), 2)

    def test_unverified_customer_blocked(self):
        pending = TestDataFactory.create_customer()
        with self.assertRaises(CustomerNotVerifiedError):
            services.place_order(pending, [{'product': self.bolt, 'quantity': 1}])
        self.assertEqual(Order.objects.count(), 0)

    def test_minimum_order_quantity(self):
        Product.objects.filter(pk=self.bolt.pk).update(min_order=12)
        self.bolt.refresh_from_db()
        with self.assertRaises(InvalidOperationError):
            services.place_order(self.customer, [{'product': self.bolt, 'quantity': 11}])

    def test_cancelled_variant_order_does_not_free_extra_stock(self):
        Product.objects.filter(pk=self.glove.pk).update(stock=0)
        order = services.place_order(self.customer, [{'product': self.glove, 'variant': self.large, 'quantity': 5}])
        services.cancel_order(order)
        self.assertEqual(Product.objects.get(pk=self.glove.pk).stock, 5)

        with self.assertRaises(InvalidOperationError):
            services.place_order(self.customer, [{'product': self.glove, 'quantity': 5}])
        services.place_order(self.customer, [{'product': self.glove, 'variant': self.large, 'quantity': 5}])
        with self.assertRaises(InsufficientStockError):
            services.place_order(self.customer, [{'product': self.glove, 'variant': self.large, 'quantity': 1}])
        self.assertEqual(Product.objects.get(pk=self.glove.pk).stock, 0)

    def test_insufficient_stock_creates_nothing(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            services.place_order(self.customer, [
                {'product': self.bolt, 'quantity': 5},
                {'product': self.glove, 'variant': self.large, 'quantity': 6},
            ])
        self.assertEqual(ctx.exception.shortfalls[0]['requested'], 6)
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(Product.objects.get(pk=self.bolt.pk).stock, 100)

    def test_credit_partially_covers_order(self):
        customer = TestDataFactory.create_customer(verified=True, credit='50.00')
        order = services.place_order(customer, [{'product': self.bolt, 'quantity': 10}], use_credit=True)
        customer.refresh_from_db()
        self.assertEqual(order.credit_used, Decimal('50.00'))
        self.assertEqual(order.payment_method, 'CREDIT')
        self.assertEqual(order.payment_status, 'PENDING')
        self.assertEqual(customer.available_credit, Decimal('0.00'))

    def test_credit_fully_covers_order(self):
        customer = TestDataFactory.create_customer(verified=True, credit='1000.00')
        order = services.place_order(customer, [{'product': self.bolt, 'quantity': 10}], use_credit=True)
        customer.refresh_from_db()
        self.assertEqual(order.credit_used, order.total)
        self.assertEqual(order.payment_status, 'PAID')
        self.assertEqual(customer.available_credit, Decimal('1000.00') - order.total)

    def test_credit_requires_approved_line(self):
        with self.assertRaises(InvalidOperationError):
            services.place_order(self.customer, [{'product': self.bolt, 'quantity': 1}], use_credit=True)
        self.assertEqual(Product.objects.get(pk=self.bolt.pk).stock, 100)

    def test_cancel_restocks_and_refunds(self):
        customer = TestDataFactory.create_customer(verified=True, credit='1000.00')
        order = services.place_order(customer, [{'product': self.bolt, 'quantity': 10}], use_credit=True)
        services.cancel_order(order, reason='Ordered twice')
        order.refresh_from_db()
        customer.refresh_from_db()
        self.assertEqual(order.status, 'CANCELLED')
        self.assertEqual(order.payment_status, 'REFUNDED')
        self.assertIsNotNone(order.cancelled_at)
        self.assertIn('Ordered twice', order.notes)
        self.assertEqual(customer.available_credit, Decimal('1000.00'))
        self.assertEqual(Product.objects.get(pk=self.bolt.pk).stock, 100)

    def test_shipped_order_cannot_be_cancelled(self):
        order = services.place_order(self.customer, [{'product': self.bolt, 'quantity': 1}])
        services.update_order_status(order, 'SHIPPED')
        with self.assertRaises(InvalidOperationError):
            services.cancel_order(order)

    def test_status_change_to_cancelled_restocks(self):
        order = services.place_order(self.customer, [{'product': self.bolt, 'quantity': 3}])
        previous = services.update_order_status(order, 'CANCELLED')
        self.assertEqual(previous, 'PENDING')
        self.assertEqual(order.status, 'CANCELLED')
        self.assertEqual(Product.objects.get(pk=self.bolt.pk).stock, 100)
        with self.assertRaises(InvalidOperationError):
            services.update_order_status(order, 'PROCESSING')


class CartAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.product = TestDataFactory.create_product(price='10.00', stock=50)
        TestDataFactory.create_tier(self.product, 10, '8.00')

    def test_request_without_identity(self):
        response = self.client.get('/api/v1/cart/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_guest_cart_flow(self):
        headers = {'HTTP_X_CART_SESSION': 'guest-abc'}
        response = self.client.post('/api/v1/cart/items/', {'product_id': self.product.id, 'quantity': 4},
                                    format='json', **headers)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['session_key'], 'guest-abc')
        self.assertEqual(data['subtotal'], '40.00')
        self.assertEqual(data['shipping'], '10.00')

        item_id = data['items'][0]['id']
        response = self.client.put(f'/api/v1/cart/items/{item_id}/', {'quantity': 10}, format='json', **headers)
        line = response.data['data']['items'][0]
        self.assertEqual(line['unit_price'], '8.00')
        self.assertEqual(line['tier_min_quantity'], 10)
        self.assertEqual(response.data['data']['total'], '96.80')

        response = self.client.delete(f'/api/v1/cart/items/{item_id}/', **headers)
        self.assertEqual(response.data['data']['items'], [])

    def test_zero_quantity_rejected(self):
        response = self.client.post('/api/v1/cart/items/', {'product_id': self.product.id, 'quantity': 0},
                                    format='json', HTTP_X_CART_SESSION='guest-abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_product_rejected(self):
        response = self.client.post('/api/v1/cart/items/', {'product_id': 999999},
                                    format='json', HTTP_X_CART_SESSION='guest-abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('product_id', response.data['data'])

    def test_other_cart_item_not_found(self):
        other = services.get_cart(session_key='someone-else')
        item = services.add_to_cart(other, self.product, 1)
        services.get_cart(session_key='guest-abc')
        response = self.client.delete(f'/api/v1/cart/items/{item.id}/', HTTP_X_CART_SESSION='guest-abc')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(CartItem.objects.filter(pk=item.pk).exists())

    def test_merge_and_checkout(self):
        guest = services.get_cart(session_key='guest-abc')
        services.add_to_cart(guest, self.product, 3)

        customer = TestDataFactory.create_customer(verified=True)
        self.client.authenticate_user(customer.user)
        response = self.client.post('/api/v1/cart/merge/', {}, format='json', HTTP_X_CART_SESSION='guest-abc')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['item_count'], 3)

        response = self.client.post('/api/v1/cart/checkout/', {'shipping_address': {'city': 'Austin'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['subtotal'], '30.00')
        self.assertEqual(response.data['data']['shipping_address'], {'city': 'Austin'})
        self.assertFalse(CartItem.objects.filter(cart__customer=customer).exists())
        self.assertTrue(AuditLog.objects.filter(action='order_place').exists())

    def test_checkout_empty_cart(self):
        customer = TestDataFactory.create_customer(verified=True)
        self.client.authenticate_user(customer.user)
        response = self.client.post('/api/v1/cart/checkout/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Cart is empty')

    def test_unverified_checkout_forbidden_and_cart_kept(self):
        customer = TestDataFactory.create_customer()
        cart = services.get_cart(customer=customer)
        services.add_to_cart(cart, self.product, 2)
        self.client.authenticate_user(customer.user)
        response = self.client.post('/api/v1/cart/checkout/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['status'], 'error')
        self.assertEqual(cart.items.count(), 1)

    def test_checkout_insufficient_stock(self):
        customer = TestDataFactory.create_customer(verified=True)
        cart = services.get_cart(customer=customer)
        services.add_to_cart(cart, self.product, 60)
        self.client.authenticate_user(customer.user)
        response = self.client.post('/api/v1/cart/checkout/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        shortfall = response.data['data']['insufficient_items'][0]
        self.assertEqual(shortfall['available'], 50)
        self.assertEqual(shortfall['requested'], 60)
        self.assertEqual(cart.items.count(), 1)


class OrderAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.customer = TestDataFactory.create_customer(verified=True, company_name='Acme')
        self.other = TestDataFactory.create_customer(verified=True, company_name='Globex')
        self.product = TestDataFactory.create_product(price='10.00', stock=50)

    def test_place_order_from_lines(self):
        self.client.authenticate_user(self.customer.user)
        response = self.client.post('/api/v1/orders/', {
            'items': [{'product_id': self.product.id, 'quantity': 5}],
            'notes': 'Dock 4',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['total'], '64.25')
        self.assertEqual(response.data['data']['amount_due'], '64.25')
        self.assertEqual(Product.objects.get(pk=self.product.pk).stock, 45)

    def test_empty_order_rejected(self):
        self.client.authenticate_user(self.customer.user)
        response = self.client.post('/api/v1/orders/', {'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_user_without_customer_cannot_order(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/v1/orders/', {
            'items': [{'product_id': self.product.id, 'quantity': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_customers_see_only_their_orders(self):
        mine = TestDataFactory.create_order(self.customer, [(self.product, 1, '10.00')])
        theirs = TestDataFactory.create_order(self.other, [(self.product, 1, '10.00')])
        self.client.authenticate_user(self.customer.user)
        response = self.client.get('/api/v1/orders/')
        self.assertEqual([o['id'] for o in response.data['data']['results']], [mine.id])
        response = self.client.get(f'/api/v1/orders/{theirs.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_filters_orders(self):
        TestDataFactory.create_order(self.customer, [(self.product, 1, '10.00')])
        TestDataFactory.create_order(self.other, [(self.product, 1, '10.00')], status='SHIPPED')
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/orders/', {'status': 'SHIPPED'})
        self.assertEqual(response.data['data']['pagination']['total'], 1)
        response = self.client.get('/api/v1/orders/', {'search': 'acme'})
        self.assertEqual(response.data['data']['results'][0]['company_name'], 'Acme')

    def test_customer_cancels_order(self):
        order = services.place_order(self.customer, [{'product': self.product, 'quantity': 5}])
        self.client.authenticate_user(self.customer.user)
        response = self.client.post(f'/api/v1/orders/{order.id}/cancel/', {'reason': 'Wrong SKU'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'CANCELLED')
        self.assertEqual(Product.objects.get(pk=self.product.pk).stock, 50)

        response = self.client.post(f'/api/v1/orders/{order.id}/cancel/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_updates_admin_only(self):
        order = TestDataFactory.create_order(self.customer, [(self.product, 1, '10.00')])
        self.client.authenticate_user(self.customer.user)
        response = self.client.put(f'/api/v1/orders/{order.id}/status/', {'status': 'SHIPPED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/v1/orders/{order.id}/status/', {'status': 'SHIPPED'}, format='json')
        self.assertEqual(response.data['data']['status'], 'SHIPPED')
        response = self.client.put(f'/api/v1/orders/{order.id}/payment-status/', {'payment_status': 'PAID'}, format='json')
        self.assertEqual(response.data['data']['payment_status'], 'PAID')
        self.assertEqual(AuditLog.objects.filter(model_name='Order', object_id=str(order.id)).count(), 2)

    def test_invalid_status_rejected(self):
        order = TestDataFactory.create_order(self.customer, [(self.product, 1, '10.00')])
        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/v1/orders/{order.id}/status/', {'status': 'LOST'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_credit_order_via_api(self):
        customer = TestDataFactory.create_customer(verified=True, credit='30.00')
        self.client.authenticate_user(customer.user)
        response = self.client.post('/api/v1/orders/', {
            'items': [{'product_id': self.product.id, 'quantity': 2}],
            'use_credit': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['credit_used'], '30.00')
        self.assertEqual(Customer.objects.get(pk=customer.pk).available_credit, Decimal('0.00'))
