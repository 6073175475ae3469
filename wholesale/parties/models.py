from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from wholesale.core.models import User


CREDIT_TERM_CHOICES = [
    ('DAYS_30', 'Net 30'),
    ('DAYS_90', 'Net 90'),
    ('DAYS_180', 'Net 180'),
]

CREDIT_TERM_DAYS = {
    'DAYS_30': 30,
    'DAYS_90': 90,
    'DAYS_180': 180,
}


class Customer(models.Model):
    """Business customers subject to verification before ordering"""
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('VERIFIED', 'Verified'),
        ('REJECTED', 'Rejected'),
    ]
    CREDIT_STATUS_CHOICES = [
        ('NONE', 'None'),
        ('PENDING', 'Pending'),
        ('APPROVED', 'Approved'),
        ('REJECTED', 'Rejected'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='customer')
    company_name = models.CharField(max_length=200, db_index=True)
    contact_name = models.CharField(max_length=200, blank=True)
    email = models.EmailField()
    phone = models.CharField(max_length=20, blank=True)
    business_type = models.CharField(max_length=100, blank=True)
    tax_id = models.CharField(max_length=50, blank=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    postal_code = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDING', db_index=True)
    verification_notes = models.TextField(blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    credit_status = models.CharField(max_length=20, choices=CREDIT_STATUS_CHOICES, default='NONE')
    credit_limit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    available_credit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    credit_term = models.CharField(max_length=20, choices=CREDIT_TERM_CHOICES, blank=True)
    credit_approved_at = models.DateTimeField(null=True, blank=True)
    credit_expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.company_name

    @property
    def is_verified(self):
        return self.status == 'VERIFIED'

    class Meta:
        db_table = 'customers'
        ordering = ['-created_at']


class BusinessDocument(models.Model):
    """Verification document reference submitted by a customer"""
    DOCUMENT_TYPE_CHOICES = [
        ('BUSINESS_LICENSE', 'Business License'),
        ('TAX_CERTIFICATE', 'Tax Certificate'),
        ('INCORPORATION', 'Certificate of Incorporation'),
        ('BANK_STATEMENT', 'Bank Statement'),
        ('OTHER', 'Other'),
    ]

    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='documents')
    document_type = models.CharField(max_length=30, choices=DOCUMENT_TYPE_CHOICES, default='OTHER')
    file_name = models.CharField(max_length=255)
    file_url = models.URLField(max_length=500)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.customer.company_name} - {self.file_name}"

    class Meta:
        db_table = 'business_documents'
        ordering = ['-uploaded_at']


class CreditApplication(models.Model):
    """Trade credit request reviewed by an admin"""
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('APPROVED', 'Approved'),
        ('REJECTED', 'Rejected'),
    ]

    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='credit_applications')
    requested_amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    term = models.CharField(max_length=20, choices=CREDIT_TERM_CHOICES, default='DAYS_30')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDING', db_index=True)
    approved_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    documents = models.JSONField(default=list, blank=True)  # list of document URLs
    notes = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='reviewed_credit_applications')
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.customer.company_name} - {self.requested_amount} ({self.status})"

    class Meta:
        db_table = 'credit_applications'
        ordering = ['-created_at']


class Supplier(models.Model):
    """Suppliers"""
    name = models.CharField(max_length=200)
    contact_name = models.CharField(max_length=200, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    website = models.URLField(blank=True)
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'suppliers'
        ordering = ['name']
