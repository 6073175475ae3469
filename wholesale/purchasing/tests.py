"""
Tests for supplier purchase orders and goods receipt
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from wholesale.catalog.models import Product, ProductVariant
from wholesale.core.exceptions import InvalidOperationError
from wholesale.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wholesale.inventory.models import StockAdjustment
from wholesale.parties.models import Supplier
from wholesale.purchasing import services
from wholesale.purchasing.models import SupplierOrder


class SupplierOrderServiceTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.supplier = TestDataFactory.create_supplier(name='Bolt Works')
        self.bolt = TestDataFactory.create_product(name='Bolt', stock=10)
        self.glove = TestDataFactory.create_product(name='Glove', stock=4)
        self.large = TestDataFactory.create_variant(self.glove, name='L', stock=2)

    def create_order(self):
        return services.create_supplier_order(self.supplier, [
            {'product': self.bolt, 'quantity': 100, 'unit_price': Decimal('2.50')},
            {'variant': self.large, 'quantity': 20, 'unit_price': Decimal('3.00')},
            {'product_name': 'Pallet wrap', 'quantity': 2, 'unit_price': Decimal('15.00')},
        ], user=self.admin)

    def test_create_computes_total(self):
        order = self.create_order()
        self.assertTrue(order.order_number.startswith('SO-'))
        self.assertEqual(order.total_amount, Decimal('340.00'))
        self.assertEqual(order.items.count(), 3)
        self.assertEqual(order.items.get(variant=self.large).product, self.glove)
        self.assertEqual(order.created_by, self.admin)

    def test_create_requires_items(self):
        with self.assertRaises(InvalidOperationError):
            services.create_supplier_order(self.supplier, [])

    def test_item_needs_product_or_name(self):
        with self.assertRaises(InvalidOperationError):
            services.create_supplier_order(self.supplier, [{'quantity': 1, 'unit_price': Decimal('1.00')}])

    def test_update_replaces_items(self):
        order = self.create_order()
        order = services.update_supplier_order(
            order, items=[{'product': self.bolt, 'quantity': 10, 'unit_price': Decimal('2.00')}], status='ORDERED'
        )
        self.assertEqual(order.status, 'ORDERED')
        self.assertEqual(order.items.count(), 1)
        self.assertEqual(order.total_amount, Decimal('20.00'))

    def test_update_cannot_mark_delivered(self):
        order = self.create_order()
        with self.assertRaises(InvalidOperationError):
            services.update_supplier_order(order, status='DELIVERED')

    def test_delete_only_pending(self):
        order = self.create_order()
        services.update_supplier_order(order, status='ORDERED')
        with self.assertRaises(InvalidOperationError):
            services.delete_supplier_order(order)
        services.update_supplier_order(order, status='PENDING')
        services.delete_supplier_order(order)
        self.assertFalse(SupplierOrder.objects.filter(pk=order.pk).exists())

    def test_receive_restocks_linked_items(self):
        order = self.create_order()
        order, received = services.receive_supplier_order(order, user=self.admin)
        self.assertEqual(received, 120)
        self.assertEqual(order.status, 'DELIVERED')
        self.assertIsNotNone(order.delivered_at)
        self.assertEqual(Product.objects.get(pk=self.bolt.pk).stock, 110)
        self.assertEqual(ProductVariant.objects.get(pk=self.large.pk).stock, 22)
        self.assertEqual(Product.objects.get(pk=self.glove.pk).stock, 22)
        adjustments = StockAdjustment.objects.filter(reference=order.order_number)
        self.assertEqual(adjustments.count(), 2)
        self.assertTrue(all(a.reason == 'supplier_receipt' for a in adjustments))

    def test_receive_only_once(self):
        order = self.create_order()
        services.receive_supplier_order(order)
        with self.assertRaises(InvalidOperationError):
            services.receive_supplier_order(order)
        self.assertEqual(Product.objects.get(pk=self.bolt.pk).stock, 110)

    def test_delivered_order_is_locked(self):
        order = self.create_order()
        order, _ = services.receive_supplier_order(order)
        with self.assertRaises(InvalidOperationError):
            services.update_supplier_order(order, notes='late')

    def test_cancelled_order_cannot_be_received(self):
        order = self.create_order()
        services.update_supplier_order(order, status='CANCELLED')
        with self.assertRaises(InvalidOperationError):
            services.receive_supplier_order(order)
        self.assertEqual(Product.objects.get(pk=self.bolt.pk).stock, 10)


class SupplierOrderAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.client.authenticate_user(self.admin)
        self.supplier = TestDataFactory.create_supplier()
        self.product = TestDataFactory.create_product(stock=5)

    def payload(self, **overrides):
        data = {
            'supplier': self.supplier.id,
            'notes': 'Restock before season',
            'items': [{'product': self.product.id, 'quantity': 50, 'unit_price': '1.20'}],
        }
        data.update(overrides)
        return data

    def test_create_and_list(self):
        response = self.client.post('/api/v1/supplier-orders/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['total_amount'], '60.00')
        self.assertEqual(response.data['data']['items'][0]['total_price'], '60.00')

        response = self.client.get('/api/v1/supplier-orders/', {'supplier': self.supplier.id, 'status': 'pending'})
        self.assertEqual(response.data['data']['pagination']['total'], 1)

    def test_create_without_items_rejected(self):
        response = self.client.post('/api/v1/supplier-orders/', self.payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_delivered_rejected(self):
        response = self.client.post('/api/v1/supplier-orders/', self.payload(status='DELIVERED'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data['data'])

    def test_patch_and_delete(self):
        order_id = self.client.post('/api/v1/supplier-orders/', self.payload(), format='json').data['data']['id']
        response = self.client.patch(f'/api/v1/supplier-orders/{order_id}/', {'status': 'ORDERED'}, format='json')
        self.assertEqual(response.data['data']['status'], 'ORDERED')
        self.assertEqual(len(response.data['data']['items']), 1)

        response = self.client.delete(f'/api/v1/supplier-orders/{order_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_receive_endpoint(self):
        order_id = self.client.post('/api/v1/supplier-orders/', self.payload(), format='json').data['data']['id']
        response = self.client.post(f'/api/v1/supplier-orders/{order_id}/receive/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'DELIVERED')
        self.assertEqual(Product.objects.get(pk=self.product.pk).stock, 55)

        response = self.client.post(f'/api/v1/supplier-orders/{order_id}/receive/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_supplier_with_orders_is_deactivated_not_deleted(self):
        self.client.post('/api/v1/supplier-orders/', self.payload(), format='json')
        response = self.client.delete(f'/api/v1/suppliers/{self.supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Supplier.objects.get(pk=self.supplier.pk).is_active)

    def test_non_admin_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/supplier-orders/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
