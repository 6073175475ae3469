"""
Tests for stock validation, decrement, restock and absolute stock updates
"""
from django.test import TestCase
from rest_framework import status
from wholesale.catalog.models import Product, ProductVariant
from wholesale.core.exceptions import InsufficientStockError, InvalidOperationError
from wholesale.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wholesale.inventory import services
from wholesale.inventory.models import StockAdjustment


class StockValidationTests(TestCase):

    def setUp(self):
        self.bolt = TestDataFactory.create_product(name='Bolt', stock=5)
        self.glove = TestDataFactory.create_product(name='Glove', stock=20)
        self.large = TestDataFactory.create_variant(self.glove, name='L', stock=3, attributes={'size': 'L'})

    def test_all_lines_available(self):
        lines = [{'product': self.bolt, 'quantity': 5}, {'product': self.glove, 'variant': self.large, 'quantity': 3}]
        self.assertEqual(services.validate_stock_availability(lines), [])

    def test_reports_every_short_line(self):
        lines = [{'product': self.bolt, 'quantity': 6}, {'product': self.glove, 'variant': self.large, 'quantity': 4}]
        shortfalls = services.validate_stock_availability(lines)
        self.assertEqual(len(shortfalls), 2)
        self.assertEqual(shortfalls[0], {
            'product_id': self.bolt.id, 'variant_id': None, 'name': 'Bolt', 'available': 5, 'requested': 6,
        })
        self.assertEqual(shortfalls[1]['name'], 'Glove (L)')
        self.assertEqual(shortfalls[1]['available'], 3)

    def test_duplicate_lines_are_combined(self):
        lines = [{'product': self.bolt, 'quantity': 3}, {'product': self.bolt, 'quantity': 3}]
        shortfalls = services.validate_stock_availability(lines)
        self.assertEqual(shortfalls[0]['requested'], 6)


class StockDecrementTests(TestCase):

    def setUp(self):
        self.bolt = TestDataFactory.create_product(name='Bolt', stock=10)
        self.glove = TestDataFactory.create_product(name='Glove', stock=8)
        self.large = TestDataFactory.create_variant(self.glove, name='L', stock=5)

    def test_decrement_product_and_variant(self):
        services.decrement_stock([
            {'product': self.bolt, 'quantity': 4},
            {'product': self.glove, 'variant': self.large, 'quantity': 2},
        ], reference='ORD-1')
        self.bolt.refresh_from_db()
        self.glove.refresh_from_db()
        self.large.refresh_from_db()
        self.assertEqual(self.bolt.stock, 6)
        self.assertEqual(self.large.stock, 3)
        self.assertEqual(self.glove.stock, 3)
        adjustments = StockAdjustment.objects.filter(reference='ORD-1')
        self.assertEqual(adjustments.count(), 2)
        bolt_adjustment = adjustments.get(product=self.bolt)
        self.assertEqual(bolt_adjustment.previous_stock, 10)
        self.assertEqual(bolt_adjustment.new_stock, 6)
        self.assertEqual(bolt_adjustment.reason, 'sale')

    def test_shortfall_rolls_back_every_line(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            services.decrement_stock([
                {'product': self.bolt, 'quantity': 4},
                {'product': self.glove, 'variant': self.large, 'quantity': 6},
            ], reference='ORD-2')
        self.assertEqual(ctx.exception.shortfalls[0]['variant_id'], self.large.id)
        self.bolt.refresh_from_db()
        self.large.refresh_from_db()
        self.assertEqual(self.bolt.stock, 10)
        self.assertEqual(self.large.stock, 5)
        self.assertFalse(StockAdjustment.objects.filter(reference='ORD-2').exists())

    def test_product_aggregate_follows_variants_through_cancellation(self):
        Product.objects.filter(pk=self.glove.pk).update(stock=0)
        line = {'product': self.glove, 'variant': self.large, 'quantity': 5}
        services.decrement_stock([line], reference='ORD-4')
        self.assertEqual(Product.objects.get(pk=self.glove.pk).stock, 0)
        services.restock([line], reference='ORD-4')
        self.assertEqual(Product.objects.get(pk=self.glove.pk).stock, 5)
        self.assertEqual(ProductVariant.objects.get(pk=self.large.pk).stock, 5)

    def test_zero_quantity_rejected(self):
        with self.assertRaises(InvalidOperationError):
            services.decrement_stock([{'product': self.bolt, 'quantity': 0}])

    def test_restock_adds_back(self):
        services.restock([
            {'product': self.bolt, 'quantity': 5},
            {'product': self.glove, 'variant': self.large, 'quantity': 2},
        ], reference='ORD-3')
        self.bolt.refresh_from_db()
        self.large.refresh_from_db()
        self.glove.refresh_from_db()
        self.assertEqual(self.bolt.stock, 15)
        self.assertEqual(self.large.stock, 7)
        self.assertEqual(self.glove.stock, 7)
        self.assertTrue(StockAdjustment.objects.filter(reference='ORD-3', adjustment_type='in', reason='cancellation').exists())


class SetStockTests(TestCase):

    def setUp(self):
        self.product = TestDataFactory.create_product(stock=10)
        self.glove = TestDataFactory.create_product(name='Glove', stock=30)
        self.small = TestDataFactory.create_variant(self.glove, name='S', stock=4)
        self.large = TestDataFactory.create_variant(self.glove, name='L', stock=6)

    def test_parse_stock_value(self):
        self.assertEqual(services.parse_stock_value(5), 5)
        self.assertEqual(services.parse_stock_value(5.0), 5)
        self.assertEqual(services.parse_stock_value(' 12 '), 12)
        for bad in (-1, '-3', 2.5, 'abc', True, None):
            with self.assertRaises(InvalidOperationError):
                services.parse_stock_value(bad)

    def test_set_product_stock(self):
        adjustment = services.set_stock(self.product, 25)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 25)
        self.assertEqual(adjustment.previous_stock, 10)
        self.assertEqual(adjustment.quantity, 15)
        self.assertEqual(adjustment.adjustment_type, 'set')

    def test_set_variant_stock_recomputes_product_aggregate(self):
        services.set_stock(self.glove, 9, variant=self.small)
        self.small.refresh_from_db()
        self.glove.refresh_from_db()
        self.assertEqual(self.small.stock, 9)
        self.assertEqual(self.glove.stock, 15)

    def test_product_with_variants_is_set_per_variant(self):
        with self.assertRaises(InvalidOperationError):
            services.set_stock(self.glove, 100)
        self.assertFalse(StockAdjustment.objects.exists())


class StockAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.product = TestDataFactory.create_product(stock=10)
        self.glove = TestDataFactory.create_product(name='Glove', stock=4)
        self.variant = TestDataFactory.create_variant(self.glove, stock=4)

    def test_stock_update_requires_admin(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.put(f'/api/v1/products/{self.product.id}/stock/', {'stock': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_product_stock_update(self):
        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/v1/products/{self.product.id}/stock/',
                                   {'stock': 3, 'reason': 'damaged'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['previous_stock'], 10)
        self.assertEqual(response.data['data']['stock'], 3)

    def test_negative_stock_rejected(self):
        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/v1/products/{self.product.id}/stock/', {'stock': -2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Stock cannot be negative')

    def test_variant_stock_update(self):
        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/v1/variants/{self.variant.id}/stock/', {'stock': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(ProductVariant.objects.get(pk=self.variant.pk).stock, 0)
        self.assertEqual(Product.objects.get(pk=self.glove.pk).stock, 0)

    def test_adjustment_list_and_low_stock(self):
        self.client.authenticate_user(self.admin)
        self.client.put(f'/api/v1/variants/{self.variant.id}/stock/', {'stock': 2}, format='json')
        response = self.client.get('/api/v1/stock-adjustments/', {'product': self.glove.id})
        self.assertEqual(response.data['data']['pagination']['total'], 1)

        response = self.client.get('/api/v1/inventory/low-stock/', {'threshold': 5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        item = response.data['data']['items'][0]
        self.assertEqual(item['product_id'], self.glove.id)
        self.assertEqual([v['variant_id'] for v in item['variants']], [self.variant.id])
