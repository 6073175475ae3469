"""
Tests for authentication, the response envelope, audit logs and cache helpers
"""
from fnmatch import fnmatchcase
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from wholesale.core.cache_utils import (
    make_cache_key, invalidate_cache_pattern, stale_keys_pattern, PRODUCTS_LIST_PREFIX
)
from wholesale.core.exceptions import InsufficientStockError
from wholesale.core.models import AuditLog
from wholesale.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wholesale.core.utils import create_audit_log, generate_reference


class AuthTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(username='buyer', password='secret-pass-1')

    def test_login_returns_tokens_and_user(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'buyer', 'password': 'secret-pass-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['username'], 'buyer')

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'buyer', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['status'], 'error')

    def test_refresh_token(self):
        login = self.client.post('/api/v1/auth/login/', {'username': 'buyer', 'password': 'secret-pass-1'}, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me_without_customer_profile(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'success')
        self.assertIsNone(response.data['data']['customer'])
        self.assertFalse(response.data['data']['is_admin'])

    def test_me_with_customer_profile(self):
        customer = TestDataFactory.create_customer(user=self.user, verified=True, credit='250.00')
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        data = response.data['data']['customer']
        self.assertEqual(data['id'], customer.id)
        self.assertEqual(data['status'], 'VERIFIED')
        self.assertEqual(data['available_credit'], '250.00')

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['status'], 'error')
        self.assertIsNone(response.data['data'])


class AuditLogTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.user = TestDataFactory.create_user()

    def test_create_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(user=self.admin, action='create', model_name='Product'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_audit_log_list_admin_only(self):
        create_audit_log(user=self.admin, action='create', model_name='Product', object_id=1, sku='ABC')
        create_audit_log(user=self.admin, action='delete', model_name='Category', object_id=2)

        self.client.authenticate_user(self.user)
        self.assertEqual(self.client.get('/api/v1/audit-logs/').status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/audit-logs/', {'model': 'Product'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        results = response.data['data']['results']
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0]['sku'], 'ABC')
        self.assertEqual(response.data['data']['pagination']['total'], 1)

    def test_audit_log_detail_not_found_envelope(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/audit-logs/9999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['message'], 'Not found')


class HelperTests(TestCase):

    def test_generate_reference_format(self):
        reference = generate_reference('ORD')
        prefix, date_part, suffix = reference.split('-')
        self.assertEqual(prefix, 'ORD')
        self.assertEqual(len(date_part), 8)
        self.assertEqual(len(suffix), 8)
        self.assertEqual(suffix, suffix.upper())

    def test_insufficient_stock_error_carries_shortfalls(self):
        shortfalls = [{'product_id': 1, 'variant_id': None, 'name': 'Bolt', 'available': 2, 'requested': 5}]
        error = InsufficientStockError(shortfalls)
        self.assertEqual(error.status_code, 409)
        self.assertEqual(error.data, {'insufficient_items': shortfalls})

    def test_invalidate_cache_pattern_changes_keys(self):
        cache.clear()
        key = make_cache_key(PRODUCTS_LIST_PREFIX, 'page=1')
        cache.set(key, 'stale', 60)
        invalidate_cache_pattern(PRODUCTS_LIST_PREFIX)
        new_key = make_cache_key(PRODUCTS_LIST_PREFIX, 'page=1')
        self.assertNotEqual(key, new_key)
        self.assertIsNone(cache.get(new_key))

    def test_stale_keys_pattern_spares_version_counter(self):
        pattern = stale_keys_pattern(PRODUCTS_LIST_PREFIX)
        self.assertTrue(fnmatchcase(':1:products_list:v3:0a1b2c', pattern))
        self.assertTrue(fnmatchcase(':1:products_list:v12:0a1b2c', pattern))
        self.assertFalse(fnmatchcase(':1:products_list:version', pattern))
