"""
Tests for low stock, valuation, turnover and sales reports
"""
from datetime import timedelta
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from wholesale.catalog.models import Product
from wholesale.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wholesale.reports import services


class LowStockReportTests(TestCase):

    def setUp(self):
        self.bolt = TestDataFactory.create_product(name='Bolt', stock=3)
        self.nut = TestDataFactory.create_product(name='Nut', stock=80)
        self.glove = TestDataFactory.create_product(name='Glove', stock=60)
        self.small = TestDataFactory.create_variant(self.glove, name='S', stock=2)
        self.large = TestDataFactory.create_variant(self.glove, name='L', stock=58)
        TestDataFactory.create_product(name='Retired', stock=0, is_active=False)

    def test_groups_low_variants_under_product(self):
        report = services.low_stock_report(10)
        self.assertEqual(report['count'], 2)
        self.assertEqual(report['variant_count'], 1)
        by_name = {item['name']: item for item in report['items']}
        self.assertEqual(set(by_name), {'Bolt', 'Glove'})
        self.assertEqual(by_name['Bolt']['variants'], [])
        self.assertEqual([v['variant_id'] for v in by_name['Glove']['variants']], [self.small.id])

    def test_product_with_only_inactive_variants_uses_own_stock(self):
        mask = TestDataFactory.create_product(name='Mask', stock=4)
        TestDataFactory.create_variant(mask, name='N95', stock=4, is_active=False)
        report = services.low_stock_report(10)
        by_name = {item['name']: item for item in report['items']}
        self.assertIn('Mask', by_name)
        self.assertEqual(by_name['Mask']['variants'], [])
        self.assertEqual(report['count'], 3)

    def test_default_threshold(self):
        report = services.low_stock_report()
        self.assertEqual(report['threshold'], 10)

    def test_threshold_is_inclusive(self):
        report = services.low_stock_report(2)
        self.assertEqual([item['name'] for item in report['items']], ['Glove'])


class ValuationReportTests(TestCase):

    def setUp(self):
        cache.clear()
        tools = TestDataFactory.create_category(name='Tools')
        safety = TestDataFactory.create_category(name='Safety')
        TestDataFactory.create_product(name='Hammer', category=tools, price='12.50', stock=6)
        glove = TestDataFactory.create_product(name='Glove', category=safety, price='3.00', stock=999)
        TestDataFactory.create_variant(glove, name='S', price='3.00', stock=10)
        TestDataFactory.create_variant(glove, name='L', price='4.00', stock=5)

    def test_variants_replace_product_stock(self):
        report = services.inventory_valuation()
        self.assertEqual(report['total_value'], '125.00')
        self.assertEqual(report['total_units'], 21)
        self.assertEqual(report['product_count'], 2)
        self.assertEqual([c['category'] for c in report['categories']], ['Tools', 'Safety'])
        self.assertEqual(report['categories'][1]['total_value'], '50.00')

    def test_stock_change_refreshes_cached_report(self):
        services.inventory_valuation()
        hammer = Product.objects.get(name='Hammer')
        hammer.stock = 8
        hammer.save()
        self.assertEqual(services.inventory_valuation()['total_value'], '150.00')


class SalesReportTests(TestCase):

    def setUp(self):
        self.customer = TestDataFactory.create_customer(verified=True)
        self.bolt = TestDataFactory.create_product(name='Bolt', stock=50)
        self.nut = TestDataFactory.create_product(name='Nut', stock=0)
        TestDataFactory.create_order(self.customer, [(self.bolt, 20, '2.00'), (self.nut, 5, '1.00')], status='DELIVERED')
        TestDataFactory.create_order(self.customer, [(self.bolt, 5, '2.00')], status='SHIPPED')
        TestDataFactory.create_order(self.customer, [(self.bolt, 100, '2.00')], status='CANCELLED')
        TestDataFactory.create_order(self.customer, [(self.bolt, 7, '2.00')], status='PENDING')
        TestDataFactory.create_order(self.customer, [(self.bolt, 40, '2.00')], status='DELIVERED',
                                     created_at=timezone.now() - timedelta(days=60))

    def test_turnover_counts_fulfilled_orders_in_range(self):
        report = services.inventory_turnover()
        bolt, nut = report['items']
        self.assertEqual(bolt['product_id'], self.bolt.id)
        self.assertEqual(bolt['units_sold'], 25)
        self.assertEqual(bolt['order_count'], 2)
        self.assertEqual(bolt['revenue'], '50.00')
        self.assertEqual(bolt['turnover_rate'], '0.50')
        self.assertEqual(nut['turnover_rate'], '5.00')

    def test_turnover_custom_range(self):
        today = timezone.now().date()
        report = services.inventory_turnover(today - timedelta(days=90), today)
        self.assertEqual(report['items'][0]['units_sold'], 65)

    def test_sales_summary(self):
        summary = services.sales_summary()
        self.assertEqual(summary['order_count'], 5)
        self.assertEqual(summary['fulfilled'], {
            'order_count': 3, 'revenue': '135.00', 'average_order_value': '45.00',
        })
        self.assertEqual(summary['by_status']['DELIVERED'], {
            'order_count': 2, 'revenue': '125.00', 'average_order_value': '62.50',
        })
        self.assertEqual(summary['by_status']['PENDING']['average_order_value'], '14.00')
        self.assertEqual(summary['by_status']['CANCELLED']['order_count'], 1)

    def test_sales_summary_date_filter(self):
        today = timezone.now().date()
        summary = services.sales_summary(date_from=today)
        self.assertEqual(summary['order_count'], 4)
        self.assertEqual(summary['fulfilled']['order_count'], 2)
        self.assertEqual(summary['fulfilled']['revenue'], '55.00')

    def test_sales_summary_with_only_pending_orders(self):
        placed = timezone.now() - timedelta(days=200)
        TestDataFactory.create_order(self.customer, [(self.bolt, 5, '2.00')], status='PENDING', created_at=placed)
        TestDataFactory.create_order(self.customer, [(self.bolt, 15, '2.00')], status='PENDING', created_at=placed)
        summary = services.sales_summary(date_from=placed.date(), date_to=placed.date())
        self.assertEqual(summary['order_count'], 2)
        self.assertEqual(summary['fulfilled']['order_count'], 0)
        self.assertEqual(summary['by_status']['PENDING'], {
            'order_count': 2, 'revenue': '40.00', 'average_order_value': '20.00',
        })


class ReportsAPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        TestDataFactory.create_product(stock=1)

    def test_reports_admin_only(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        for url in ('low-stock', 'inventory-valuation', 'inventory-turnover', 'sales-summary'):
            response = self.client.get(f'/api/v1/reports/{url}/')
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_reports_return_envelope(self):
        self.client.authenticate_user(self.admin)
        for url in ('low-stock', 'inventory-valuation', 'inventory-turnover', 'sales-summary'):
            response = self.client.get(f'/api/v1/reports/{url}/')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data['status'], 'success')

    def test_bad_parameters(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/reports/low-stock/', {'threshold': 'many'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/reports/sales-summary/', {'date_from': '01/02/2026'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/reports/inventory-turnover/',
                                   {'date_from': '2026-02-01', 'date_to': '2026-01-01'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
