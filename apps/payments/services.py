import logging
import uuid
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError
from apps.notifications.utils import notify
from core.constants import PAYMENT_ACTIVE_STATUSES
from core.exceptions import TransitionDenied
from .models import Payment

logger = logging.getLogger(__name__)

# action -> (statuses it may start from, resulting status)
REVIEW_ACTIONS = {
    'release': (('pending', 'processing'), 'completed'),
    'fail': (('pending', 'processing'), 'failed'),
    'cancel': (('pending', 'processing'), 'cancelled'),
    'refund': (('completed',), 'refunded'),
}


def create_payment_for_job(job):
    """Create the manual payment owed for a completed job, or return the active one."""
    active = Payment.objects.filter(job=job, status__in=PAYMENT_ACTIVE_STATUSES).first()
    if active is not None:
        logger.warning(f"Job {job.id} already has active payment {active.transaction_id}")
        return active

    payment = Payment.objects.create(
        transaction_id=f"MAN-{job.id}-{uuid.uuid4().hex[:10].upper()}",
        job=job,
        payer_id=job.client_id,
        recipient_id=job.worker_id,
        amount=job.payable_amount,
        currency=job.currency,
        payment_method='manual_check',
        description="Manual check to worker after job completion",
    )
    logger.info(f"Created payment {payment.transaction_id} of {payment.amount} {payment.currency} for job {job.id}")
    return payment


def attach_proof(payment_id, job_id, actor_id, image_data, filename='', mime_type='', note='', now=None):
    """Attach the client's proof of payment; a pending payment moves to processing."""
    if not image_data:
        raise ValidationError({'image_data': ["imageData is required"]})
    now = now or timezone.now()

    with transaction.atomic():
        try:
            payment = Payment.objects.select_for_update().get(pk=payment_id, job_id=job_id)
        except Payment.DoesNotExist:
            raise NotFound("Payment not found")

        if payment.payer_id != actor_id:
            raise TransitionDenied('not-owner', "Not authorized to upload proof for this payment")
        if not payment.is_active:
            raise TransitionDenied('wrong-state', f"Cannot upload proof for a {payment.status} payment")

        payment.proof_image = image_data
        payment.proof_filename = filename or ''
        payment.proof_mime_type = mime_type or ''
        payment.proof_note = note or ''
        payment.proof_uploaded_at = now
        payment.proof_uploaded_by_id = actor_id
        if payment.status == 'pending':
            payment.status = 'processing'
        payment.save()

    logger.info(f"Proof uploaded for payment {payment.transaction_id} by user {actor_id}")
    return payment


def review_payment(payment_id, actor_role, actor_id, action, resolution='', now=None):
    """
    Apply an admin decision to a payment.

    Returns ``(payment, changed)``; releasing an already completed payment is
    reported as unchanged rather than as an error.
    """
    if actor_role != 'admin':
        raise TransitionDenied('forbidden-role')
    if action not in REVIEW_ACTIONS:
        raise TransitionDenied('unknown-transition', f"Unknown payment action: {action}")
    now = now or timezone.now()
    from_statuses, next_status = REVIEW_ACTIONS[action]

    with transaction.atomic():
        try:
            payment = Payment.objects.select_for_update().get(pk=payment_id)
        except Payment.DoesNotExist:
            raise NotFound("Payment not found")

        if action == 'release' and payment.status == 'completed':
            return payment, False
        if payment.status not in from_statuses:
            raise TransitionDenied('wrong-state', f"Cannot {action} a {payment.status} payment")

        payment.status = next_status
        payment.resolution = resolution or ''
        payment.resolved_by_id = actor_id
        payment.processed_at = payment.processed_at or now
        if next_status == 'completed':
            payment.completed_at = now
        payment.save()

        amount = f"{payment.currency} {payment.amount:,.2f}"
        if next_status == 'completed' and payment.recipient:
            transaction.on_commit(lambda: notify(
                payment.recipient,
                "Payment Completed",
                f"A manual check payment of {amount} for \"{payment.job.title}\" has been approved.",
                type='payment_received',
                related_job=payment.job,
                related_payment=payment,
            ))
        transaction.on_commit(lambda: notify(
            payment.payer,
            "Payment Reviewed",
            f"Your payment of {amount} for \"{payment.job.title}\" is now {next_status}.",
            type='payment_processed',
            related_job=payment.job,
            related_payment=payment,
        ))

    logger.info(f"Payment {payment.transaction_id} moved to {next_status} by admin {actor_id}")
    return payment, True
