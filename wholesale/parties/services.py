"""
Business customer verification and trade credit workflow
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from wholesale.core.exceptions import InvalidOperationError
from .models import Customer, BusinessDocument, CreditApplication, CREDIT_TERM_DAYS

logger = logging.getLogger(__name__)


def document_extension(file_name):
    return file_name.rsplit('.', 1)[-1].lower() if '.' in file_name else ''


def validate_documents(documents):
    """Check count and file types of a verification submission"""
    max_documents = settings.WHOLESALE_MAX_VERIFICATION_DOCUMENTS
    allowed = settings.WHOLESALE_VERIFICATION_FILE_TYPES
    if not documents:
        raise InvalidOperationError('At least one document is required')
    if len(documents) > max_documents:
        raise InvalidOperationError(f'At most {max_documents} documents can be submitted')
    for document in documents:
        if document_extension(document['file_name']) not in allowed:
            raise InvalidOperationError(
                f"Unsupported file type for {document['file_name']}; allowed: {', '.join(allowed)}"
            )


@transaction.atomic
def submit_verification(customer, documents, business_details=None):
    """
    Replace the customer's verification documents and queue the account for review.

    Rejected and pending accounts go back to PENDING. Verified accounts keep
    their status; the new documents are stored for the record.
    """
    validate_documents(documents)
    for field, value in (business_details or {}).items():
        setattr(customer, field, value)

    customer.documents.all().delete()
    BusinessDocument.objects.bulk_create([
        BusinessDocument(
            customer=customer,
            document_type=document.get('document_type', 'OTHER'),
            file_name=document['file_name'],
            file_url=document['file_url'],
        )
        for document in documents
    ])
    if customer.status != 'VERIFIED':
        customer.status = 'PENDING'
        customer.verification_notes = ''
    customer.save()
    logger.info(f"Verification submitted for customer {customer.id} with {len(documents)} document(s)")
    return customer


def set_verification_status(customer, new_status, notes=''):
    """Admin decision on a business account"""
    valid = {choice for choice, _ in Customer.STATUS_CHOICES}
    if new_status not in valid:
        raise InvalidOperationError(f"Invalid status. Must be one of: {', '.join(sorted(valid))}")
    previous = customer.status
    customer.status = new_status
    customer.verification_notes = notes or ''
    customer.verified_at = timezone.now() if new_status == 'VERIFIED' else None
    customer.save(update_fields=['status', 'verification_notes', 'verified_at', 'updated_at'])
    logger.info(f"Customer {customer.id} status {previous} -> {new_status}")
    return previous


@transaction.atomic
def apply_for_credit(customer, requested_amount, term, documents=None, notes=''):
    if CreditApplication.objects.filter(customer=customer, status='PENDING').exists():
        raise InvalidOperationError('A credit application is already pending review')
    if Decimal(str(requested_amount)) <= 0:
        raise InvalidOperationError('Requested amount must be greater than zero')
    application = CreditApplication.objects.create(
        customer=customer,
        requested_amount=requested_amount,
        term=term,
        documents=documents or [],
        notes=notes,
    )
    customer.credit_status = 'PENDING'
    customer.save(update_fields=['credit_status', 'updated_at'])
    logger.info(f"Credit application {application.id} submitted by customer {customer.id}")
    return application


@transaction.atomic
def approve_credit(application, reviewer, amount=None, term=None, notes=''):
    """
    Approve a pending application and open the customer's credit line.

    The limit and available credit both become the approved amount; the line
    expires after the term's number of days.
    """
    application = CreditApplication.objects.select_for_update().select_related('customer').get(pk=application.pk)
    if application.status != 'PENDING':
        raise InvalidOperationError(f'Application has already been {application.status.lower()}')

    amount = Decimal(str(amount)) if amount is not None else application.requested_amount
    if amount <= 0:
        raise InvalidOperationError('Approved amount must be greater than zero')
    term = term or application.term
    if term not in CREDIT_TERM_DAYS:
        raise InvalidOperationError(f"Invalid term. Must be one of: {', '.join(CREDIT_TERM_DAYS)}")

    now = timezone.now()
    application.status = 'APPROVED'
    application.approved_amount = amount
    application.term = term
    application.reviewed_by = reviewer
    application.reviewed_at = now
    if notes:
        application.notes = notes
    application.save()

    customer = application.customer
    customer.credit_status = 'APPROVED'
    customer.credit_limit = amount
    customer.available_credit = amount
    customer.credit_term = term
    customer.credit_approved_at = now
    customer.credit_expires_at = now + timedelta(days=CREDIT_TERM_DAYS[term])
    customer.save()
    logger.info(f"Credit application {application.id} approved: {amount} on {term}")
    return application


@transaction.atomic
def reject_credit(application, reviewer, reason=''):
    application = CreditApplication.objects.select_for_update().select_related('customer').get(pk=application.pk)
    if application.status != 'PENDING':
        raise InvalidOperationError(f'Application has already been {application.status.lower()}')

    application.status = 'REJECTED'
    application.notes = reason or ''
    application.reviewed_by = reviewer
    application.reviewed_at = timezone.now()
    application.save()

    customer = application.customer
    customer.credit_status = 'REJECTED'
    customer.save(update_fields=['credit_status', 'updated_at'])
    logger.info(f"Credit application {application.id} rejected")
    return application


def credit_is_usable(customer):
    """Approved, unexpired credit line"""
    if customer.credit_status != 'APPROVED':
        return False
    if customer.credit_expires_at and customer.credit_expires_at < timezone.now():
        return False
    return customer.available_credit > 0
