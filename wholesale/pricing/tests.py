"""
Tests for bulk pricing tiers and quantity-based price resolution
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from wholesale.core.exceptions import InvalidOperationError
from wholesale.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wholesale.pricing import services
from wholesale.pricing.models import BulkPricing


class TierResolutionTests(TestCase):

    def setUp(self):
        self.product = TestDataFactory.create_product(price='10.00')
        TestDataFactory.create_tier(self.product, 10, '9.00')
        TestDataFactory.create_tier(self.product, 50, '8.00')
        TestDataFactory.create_tier(self.product, 100, '7.00')

    def test_below_first_tier_uses_base_price(self):
        self.assertEqual(services.get_price_for_quantity(self.product.id, 9), Decimal('10.00'))

    def test_exact_threshold_selects_tier(self):
        self.assertEqual(services.get_price_for_quantity(self.product.id, 10), Decimal('9.00'))
        self.assertEqual(services.get_price_for_quantity(self.product.id, 50), Decimal('8.00'))

    def test_between_thresholds_selects_lower_tier(self):
        self.assertEqual(services.get_price_for_quantity(self.product.id, 99), Decimal('8.00'))

    def test_above_last_tier(self):
        self.assertEqual(services.get_price_for_quantity(self.product.id, 10000), Decimal('7.00'))

    def test_missing_product_returns_none(self):
        self.assertIsNone(services.get_price_for_quantity(999999, 5))

    def test_select_tier_ignores_input_order(self):
        tiers = list(BulkPricing.objects.filter(product=self.product).order_by('-min_quantity'))
        self.assertEqual(services.select_tier(tiers, 75).min_quantity, 50)
        self.assertIsNone(services.select_tier(tiers, 1))
        self.assertIsNone(services.select_tier([], 100))

    def test_variant_price_wins_over_tiers(self):
        variant = TestDataFactory.create_variant(self.product, price='12.00')
        unit_price, tier = services.resolve_unit_price(self.product, variant, 100)
        self.assertEqual(unit_price, Decimal('12.00'))
        self.assertIsNone(tier)


class TierManagementTests(TestCase):

    def setUp(self):
        self.product = TestDataFactory.create_product(price='5.00')

    def test_replace_tiers(self):
        TestDataFactory.create_tier(self.product, 5, '4.80')
        tiers = services.replace_product_tiers(self.product, [
            {'min_quantity': 100, 'price': '4.00'},
            {'min_quantity': 20, 'price': '4.50'},
        ])
        self.assertEqual([t.min_quantity for t in tiers], [20, 100])
        self.assertFalse(BulkPricing.objects.filter(product=self.product, min_quantity=5).exists())

    def test_replace_rejects_duplicates_and_keeps_existing(self):
        TestDataFactory.create_tier(self.product, 5, '4.80')
        with self.assertRaises(InvalidOperationError):
            services.replace_product_tiers(self.product, [
                {'min_quantity': 10, 'price': '4.00'},
                {'min_quantity': 10, 'price': '3.00'},
            ])
        self.assertEqual(BulkPricing.objects.filter(product=self.product).count(), 1)

    def test_add_duplicate_tier_rejected(self):
        services.add_tier(self.product, 10, '4.50')
        with self.assertRaises(InvalidOperationError):
            services.add_tier(self.product, 10, '4.00')

    def test_update_tier_clash(self):
        first = services.add_tier(self.product, 10, '4.50')
        services.add_tier(self.product, 20, '4.00')
        with self.assertRaises(InvalidOperationError):
            services.update_tier(first, min_quantity=20)
        services.update_tier(first, price='4.40')
        first.refresh_from_db()
        self.assertEqual(first.price, Decimal('4.40'))


class BulkPricingAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.product = TestDataFactory.create_product(price='5.00')

    def test_public_can_read_tiers(self):
        TestDataFactory.create_tier(self.product, 10, '4.50')
        response = self.client.get(f'/api/v1/products/{self.product.id}/bulk-pricing/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'][0]['price'], '4.50')

    def test_customer_cannot_write_tiers(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post(f'/api/v1/products/{self.product.id}/bulk-pricing/',
                                    {'min_quantity': 10, 'price': '4.50'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_replaces_tiers(self):
        self.client.authenticate_user(self.admin)
        response = self.client.put(
            f'/api/v1/products/{self.product.id}/bulk-pricing/',
            {'tiers': [{'min_quantity': 50, 'price': '4.00'}, {'min_quantity': 10, 'price': '4.50'}]},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t['min_quantity'] for t in response.data['data']], [10, 50])

    def test_admin_put_duplicate_tiers_rejected(self):
        self.client.authenticate_user(self.admin)
        response = self.client.put(
            f'/api/v1/products/{self.product.id}/bulk-pricing/',
            {'tiers': [{'min_quantity': 10, 'price': '4.00'}, {'min_quantity': 10, 'price': '4.50'}]},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['status'], 'error')

    def test_zero_min_quantity_rejected(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post(f'/api/v1/products/{self.product.id}/bulk-pricing/',
                                    {'min_quantity': 0, 'price': '4.50'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_add_returns_error_envelope(self):
        TestDataFactory.create_tier(self.product, 10, '4.50')
        self.client.authenticate_user(self.admin)
        response = self.client.post(f'/api/v1/products/{self.product.id}/bulk-pricing/',
                                    {'min_quantity': 10, 'price': '4.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('already exists', response.data['message'])

    def test_tier_detail_update_and_delete(self):
        tier = TestDataFactory.create_tier(self.product, 10, '4.50')
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/bulk-pricing/{tier.id}/', {'price': '4.25'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['price'], '4.25')

        response = self.client.delete(f'/api/v1/bulk-pricing/{tier.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(BulkPricing.objects.filter(pk=tier.pk).exists())
