from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.db import transaction
from rest_framework import serializers

from .models import Customer, BusinessDocument, CreditApplication, Supplier, CREDIT_TERM_CHOICES

User = get_user_model()

BUSINESS_DETAIL_FIELDS = [
    'company_name', 'contact_name', 'phone', 'business_type', 'tax_id',
    'address', 'city', 'state', 'postal_code', 'country',
]


class BusinessDocumentSerializer(serializers.ModelSerializer):
    class Meta:
        model = BusinessDocument
        fields = ['id', 'document_type', 'file_name', 'file_url', 'uploaded_at']
        read_only_fields = ['id', 'uploaded_at']


class CustomerSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)
    is_verified = serializers.BooleanField(read_only=True)

    class Meta:
        model = Customer
        fields = [
            'id', 'username', 'company_name', 'contact_name', 'email', 'phone',
            'business_type', 'tax_id', 'address', 'city', 'state', 'postal_code', 'country',
            'status', 'is_verified', 'verification_notes', 'verified_at',
            'credit_status', 'credit_limit', 'available_credit', 'credit_term',
            'credit_approved_at', 'credit_expires_at', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'username', 'email', 'status', 'is_verified', 'verification_notes', 'verified_at',
            'credit_status', 'credit_limit', 'available_credit', 'credit_term',
            'credit_approved_at', 'credit_expires_at', 'created_at', 'updated_at',
        ]


class CustomerDetailSerializer(CustomerSerializer):
    documents = BusinessDocumentSerializer(many=True, read_only=True)

    class Meta(CustomerSerializer.Meta):
        fields = CustomerSerializer.Meta.fields + ['documents']


class CustomerRegistrationSerializer(serializers.Serializer):
    """Create a login and its pending business profile in one step"""
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    company_name = serializers.CharField(max_length=200)
    contact_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    business_type = serializers.CharField(max_length=100, required=False, allow_blank=True)
    tax_id = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate_username(self, value):
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError('A user with this username already exists.')
        return value

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('A user with this email already exists.')
        return value.lower()

    def validate_password(self, value):
        validate_password(value)
        return value

    @transaction.atomic
    def create(self, validated_data):
        user = User.objects.create_user(
            username=validated_data['username'],
            email=validated_data['email'],
            password=validated_data['password'],
            first_name=validated_data.get('contact_name', '')[:150],
        )
        return Customer.objects.create(
            user=user,
            email=validated_data['email'],
            company_name=validated_data['company_name'],
            contact_name=validated_data.get('contact_name', ''),
            phone=validated_data.get('phone', ''),
            business_type=validated_data.get('business_type', ''),
            tax_id=validated_data.get('tax_id', ''),
        )


class VerificationDocumentInputSerializer(serializers.Serializer):
    document_type = serializers.ChoiceField(choices=BusinessDocument.DOCUMENT_TYPE_CHOICES, default='OTHER')
    file_name = serializers.CharField(max_length=255)
    file_url = serializers.URLField(max_length=500)


class VerificationSubmitSerializer(serializers.Serializer):
    documents = VerificationDocumentInputSerializer(many=True)
    company_name = serializers.CharField(max_length=200, required=False)
    business_type = serializers.CharField(max_length=100, required=False, allow_blank=True)
    tax_id = serializers.CharField(max_length=50, required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    postal_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    country = serializers.CharField(max_length=100, required=False, allow_blank=True)

    def business_details(self):
        return {k: v for k, v in self.validated_data.items() if k in BUSINESS_DETAIL_FIELDS}


class CustomerStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Customer.STATUS_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class CreditApplicationSerializer(serializers.ModelSerializer):
    company_name = serializers.CharField(source='customer.company_name', read_only=True)
    reviewed_by_username = serializers.CharField(source='reviewed_by.username', read_only=True, default=None)

    class Meta:
        model = CreditApplication
        fields = [
            'id', 'customer', 'company_name', 'requested_amount', 'term', 'status',
            'approved_amount', 'documents', 'notes', 'reviewed_by', 'reviewed_by_username',
            'reviewed_at', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'customer', 'company_name', 'status', 'approved_amount',
            'reviewed_by', 'reviewed_by_username', 'reviewed_at', 'created_at', 'updated_at',
        ]

    def validate_documents(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError('Documents must be a list of URLs.')
        return value


class CreditApprovalSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    term = serializers.ChoiceField(choices=CREDIT_TERM_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class CreditRejectionSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = [
            'id', 'name', 'contact_name', 'email', 'phone', 'address', 'website',
            'notes', 'is_active', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
