"""
Tests for registration, business verification, trade credit and suppliers
"""
from datetime import timedelta
from decimal import Decimal
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from wholesale.core.exceptions import InvalidOperationError
from wholesale.core.models import AuditLog
from wholesale.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wholesale.parties import services
from wholesale.parties.models import Customer, CreditApplication, Supplier


def document(name='license.pdf', document_type='BUSINESS_LICENSE'):
    return {'document_type': document_type, 'file_name': name, 'file_url': f'https://files.example.com/{name}'}


class RegistrationTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_creates_pending_customer_and_tokens(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'acme', 'email': 'Buyer@Acme.com', 'password': 'Str0ng-passw0rd',
            'company_name': 'Acme Supply', 'contact_name': 'Pat Doe',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertIn('access', data)
        self.assertEqual(data['customer']['status'], 'PENDING')
        customer = Customer.objects.get(user__username='acme')
        self.assertEqual(customer.email, 'buyer@acme.com')
        self.assertEqual(customer.credit_status, 'NONE')

    def test_register_duplicate_username(self):
        TestDataFactory.create_user(username='acme')
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'acme', 'email': 'x@acme.com', 'password': 'Str0ng-passw0rd', 'company_name': 'Acme',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('username', response.data['data'])

    def test_register_short_password(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'acme', 'email': 'x@acme.com', 'password': 'short', 'company_name': 'Acme',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class VerificationServiceTests(TestCase):

    def setUp(self):
        self.customer = TestDataFactory.create_customer()

    def test_submit_stores_documents(self):
        services.submit_verification(self.customer, [document(), document('tax.png', 'TAX_CERTIFICATE')],
                                     {'tax_id': 'TX-1'})
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.documents.count(), 2)
        self.assertEqual(self.customer.tax_id, 'TX-1')
        self.assertEqual(self.customer.status, 'PENDING')

    def test_resubmission_after_rejection_returns_to_pending(self):
        services.set_verification_status(self.customer, 'REJECTED', 'Blurry scan')
        services.submit_verification(self.customer, [document()])
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.status, 'PENDING')
        self.assertEqual(self.customer.verification_notes, '')

    def test_document_count_limits(self):
        with self.assertRaises(InvalidOperationError):
            services.submit_verification(self.customer, [])
        with self.assertRaises(InvalidOperationError):
            services.submit_verification(self.customer, [document(f'doc{i}.pdf') for i in range(5)])

    def test_unsupported_file_type(self):
        with self.assertRaises(InvalidOperationError):
            services.submit_verification(self.customer, [document('license.docx')])
        self.assertEqual(self.customer.documents.count(), 0)

    def test_verify_sets_timestamp(self):
        services.set_verification_status(self.customer, 'VERIFIED')
        self.customer.refresh_from_db()
        self.assertTrue(self.customer.is_verified)
        self.assertIsNotNone(self.customer.verified_at)


class CreditServiceTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.customer = TestDataFactory.create_customer(verified=True)

    def test_apply_marks_customer_pending(self):
        services.apply_for_credit(self.customer, Decimal('5000.00'), 'DAYS_90')
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.credit_status, 'PENDING')

    def test_second_pending_application_rejected(self):
        services.apply_for_credit(self.customer, Decimal('5000.00'), 'DAYS_90')
        with self.assertRaises(InvalidOperationError):
            services.apply_for_credit(self.customer, Decimal('1000.00'), 'DAYS_30')

    def test_approve_opens_credit_line(self):
        application = services.apply_for_credit(self.customer, Decimal('5000.00'), 'DAYS_90')
        before = timezone.now()
        services.approve_credit(application, self.admin, amount=Decimal('4000.00'))
        self.customer.refresh_from_db()
        application.refresh_from_db()
        self.assertEqual(application.status, 'APPROVED')
        self.assertEqual(application.approved_amount, Decimal('4000.00'))
        self.assertEqual(application.reviewed_by, self.admin)
        self.assertEqual(self.customer.credit_status, 'APPROVED')
        self.assertEqual(self.customer.credit_limit, Decimal('4000.00'))
        self.assertEqual(self.customer.available_credit, Decimal('4000.00'))
        self.assertEqual(self.customer.credit_term, 'DAYS_90')
        self.assertGreaterEqual(self.customer.credit_expires_at, before + timedelta(days=90))
        self.assertTrue(services.credit_is_usable(self.customer))

    def test_approve_defaults_to_requested_amount(self):
        application = services.apply_for_credit(self.customer, Decimal('750.00'), 'DAYS_30')
        services.approve_credit(application, self.admin)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.available_credit, Decimal('750.00'))

    def test_reject_stores_reason(self):
        application = services.apply_for_credit(self.customer, Decimal('5000.00'), 'DAYS_30')
        services.reject_credit(application, self.admin, 'Insufficient trading history')
        application.refresh_from_db()
        self.customer.refresh_from_db()
        self.assertEqual(application.status, 'REJECTED')
        self.assertEqual(application.notes, 'Insufficient trading history')
        self.assertEqual(self.customer.credit_status, 'REJECTED')
        self.assertFalse(services.credit_is_usable(self.customer))

    def test_reviewed_application_cannot_be_reviewed_again(self):
        application = services.apply_for_credit(self.customer, Decimal('5000.00'), 'DAYS_30')
        services.reject_credit(application, self.admin)
        with self.assertRaises(InvalidOperationError):
            services.approve_credit(application, self.admin)

    def test_expired_credit_not_usable(self):
        customer = TestDataFactory.create_customer(verified=True, credit='100.00')
        customer.credit_expires_at = timezone.now() - timedelta(days=1)
        self.assertFalse(services.credit_is_usable(customer))


class CustomerSelfServiceAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.customer = TestDataFactory.create_customer(company_name='Acme')
        self.client.authenticate_user(self.customer.user)

    def test_profile_read_and_update(self):
        response = self.client.patch('/api/v1/customers/me/', {'city': 'Austin', 'status': 'VERIFIED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.city, 'Austin')
        self.assertEqual(self.customer.status, 'PENDING')

    def test_user_without_customer_profile_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/customers/me/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_submit_verification(self):
        response = self.client.post('/api/v1/customers/me/verification/',
                                    {'documents': [document()], 'business_type': 'Retail'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']['documents']), 1)
        self.assertTrue(AuditLog.objects.filter(action='verification_submit').exists())

        response = self.client.get('/api/v1/customers/me/verification/')
        self.assertEqual(response.data['data']['status'], 'PENDING')

    def test_submit_verification_bad_extension(self):
        response = self.client.post('/api/v1/customers/me/verification/',
                                    {'documents': [document('notes.txt')]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Unsupported file type', response.data['message'])

    def test_credit_application(self):
        response = self.client.post('/api/v1/customers/me/credit-applications/',
                                    {'requested_amount': '2500.00', 'term': 'DAYS_30'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.post('/api/v1/customers/me/credit-applications/',
                                    {'requested_amount': '100.00', 'term': 'DAYS_30'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/customers/me/credit-applications/')
        self.assertEqual(len(response.data['data']), 1)


class CustomerAdminAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.client.authenticate_user(self.admin)
        self.customer = TestDataFactory.create_customer(company_name='Acme Supply')
        TestDataFactory.create_customer(company_name='Globex', verified=True)

    def test_list_search_and_filter(self):
        response = self.client.get('/api/v1/customers/', {'search': 'acme'})
        self.assertEqual([c['company_name'] for c in response.data['data']['results']], ['Acme Supply'])
        response = self.client.get('/api/v1/customers/', {'status': 'verified'})
        self.assertEqual([c['company_name'] for c in response.data['data']['results']], ['Globex'])

    def test_customer_cannot_list_customers(self):
        self.client.authenticate_user(self.customer.user)
        response = self.client.get('/api/v1/customers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_detail_includes_recent_orders(self):
        product = TestDataFactory.create_product()
        TestDataFactory.create_order(self.customer, [(product, 2, '10.00')])
        response = self.client.get(f'/api/v1/customers/{self.customer.id}/')
        self.assertEqual(len(response.data['data']['recent_orders']), 1)
        response = self.client.get(f'/api/v1/customers/{self.customer.id}/orders/')
        self.assertEqual(response.data['data'][0]['item_count'], 2)

    def test_status_update_and_activity(self):
        response = self.client.put(f'/api/v1/customers/{self.customer.id}/status/',
                                   {'status': 'VERIFIED', 'notes': 'Checked license'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.status, 'VERIFIED')

        response = self.client.get(f'/api/v1/customers/{self.customer.id}/activity/')
        actions = [log['action'] for log in response.data['data']['results']]
        self.assertIn('customer_verify', actions)

    def test_invalid_status(self):
        response = self.client.put(f'/api/v1/customers/{self.customer.id}/status/', {'status': 'BANNED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_credit_review_endpoints(self):
        application = CreditApplication.objects.create(customer=self.customer, requested_amount='1000.00', term='DAYS_30')
        response = self.client.get('/api/v1/credit-applications/', {'status': 'pending'})
        self.assertEqual(response.data['data']['pagination']['total'], 1)

        response = self.client.post(f'/api/v1/credit-applications/{application.id}/approve/',
                                    {'amount': '800.00', 'term': 'DAYS_180'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.available_credit, Decimal('800.00'))
        self.assertEqual(self.customer.credit_term, 'DAYS_180')

        response = self.client.post(f'/api/v1/credit-applications/{application.id}/reject/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SupplierAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.client.authenticate_user(self.admin)

    def test_create_and_search(self):
        response = self.client.post('/api/v1/suppliers/', {'name': 'Bolt Works', 'email': 'sales@boltworks.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        TestDataFactory.create_supplier(name='Paint Co')
        response = self.client.get('/api/v1/suppliers/', {'search': 'bolt'})
        self.assertEqual([s['name'] for s in response.data['data']['results']], ['Bolt Works'])

    def test_update_and_delete(self):
        supplier = TestDataFactory.create_supplier()
        response = self.client.patch(f'/api/v1/suppliers/{supplier.id}/', {'notes': 'Net 30'}, format='json')
        self.assertEqual(response.data['data']['notes'], 'Net 30')
        response = self.client.delete(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Supplier.objects.filter(pk=supplier.pk).exists())

    def test_supplier_endpoints_admin_only(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/suppliers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
