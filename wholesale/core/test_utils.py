"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from wholesale.catalog.models import Category, Collection, Product, ProductVariant
from wholesale.pricing.models import BulkPricing
from wholesale.parties.models import Customer, Supplier
from wholesale.orders.models import Order, OrderItem
from datetime import timedelta
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_admin(username=None):
        return TestDataFactory.create_user(username=username, is_staff=True, is_superuser=True)

    @staticmethod
    def create_category(name=None, description=None, is_active=True):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(
            name=name,
            description=description or f'Test category {name}',
            is_active=is_active
        )

    @staticmethod
    def create_collection(name=None, is_active=True):
        if not name:
            name = f'Collection_{TestDataFactory.random_string(6)}'
        return Collection.objects.create(name=name, is_active=is_active)

    @staticmethod
    def create_product(name=None, sku=None, category=None, price=Decimal('10.00'), stock=100,
                       min_order=1, status='PUBLISHED', is_active=True, **extra):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU-{TestDataFactory.random_string(8).upper()}'
        if not category:
            category = TestDataFactory.create_category()
        return Product.objects.create(
            name=name,
            sku=sku,
            category=category,
            price=Decimal(str(price)),
            stock=stock,
            min_order=min_order,
            status=status,
            is_active=is_active,
            **extra
        )

    @staticmethod
    def create_variant(product, name=None, sku=None, price=None, stock=50, attributes=None, is_active=True):
        """Create a test variant; the product's aggregate stock is left untouched"""
        if not name:
            name = f'Variant_{TestDataFactory.random_string(4)}'
        if not sku:
            sku = f'{product.sku}-{TestDataFactory.random_string(4).upper()}'
        return ProductVariant.objects.create(
            product=product,
            name=name,
            sku=sku,
            price=Decimal(str(price)) if price is not None else product.price,
            stock=stock,
            attributes=attributes or {},
            is_active=is_active
        )

    @staticmethod
    def create_tier(product, min_quantity, price):
        """Create a bulk pricing tier"""
        return BulkPricing.objects.create(product=product, min_quantity=min_quantity, price=Decimal(str(price)))

    @staticmethod
    def create_customer(user=None, company_name=None, verified=False, credit=None, **extra):
        """
        Create a business customer (and its login when user is omitted).

        credit: approve a trade credit line of this amount, valid for 30 days.
        """
        if user is None:
            user = TestDataFactory.create_user()
        if not company_name:
            company_name = f'Company_{TestDataFactory.random_string(6)}'
        fields = {
            'user': user,
            'company_name': company_name,
            'email': user.email or f'{user.username}@test.com',
            'status': 'VERIFIED' if verified else 'PENDING',
            'verified_at': timezone.now() if verified else None,
        }
        if credit is not None:
            now = timezone.now()
            fields.update({
                'credit_status': 'APPROVED',
                'credit_limit': Decimal(str(credit)),
                'available_credit': Decimal(str(credit)),
                'credit_term': 'DAYS_30',
                'credit_approved_at': now,
                'credit_expires_at': now + timedelta(days=30),
            })
        fields.update(extra)
        return Customer.objects.create(**fields)

    @staticmethod
    def create_supplier(name=None, email=None, phone=None):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'9{random.randint(100000000, 999999999)}'
        if not email:
            email = f'{name.lower()}@test.com'
        return Supplier.objects.create(
            name=name,
            phone=phone,
            email=email
        )

    @staticmethod
    def create_order(customer, items, status='PENDING', created_at=None):
        """
        Create an order directly, without touching stock.

        items: list of (product, quantity, unit_price) tuples.
        """
        subtotal = sum((Decimal(str(price)) * qty for _, qty, price in items), Decimal('0.00'))
        order = Order.objects.create(
            order_number=f'ORD-TEST-{TestDataFactory.random_string(8).upper()}',
            customer=customer,
            status=status,
            subtotal=subtotal,
            total=subtotal,
        )
        for product, quantity, unit_price in items:
            OrderItem.objects.create(
                order=order,
                product=product,
                product_name=product.name,
                sku=product.sku,
                quantity=quantity,
                unit_price=Decimal(str(unit_price)),
                total_price=Decimal(str(unit_price)) * quantity,
            )
        if created_at is not None:
            Order.objects.filter(pk=order.pk).update(created_at=created_at)
            order.refresh_from_db()
        return order


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
