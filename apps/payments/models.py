from django.db import models
from django.conf import settings
from core.constants import PAYMENT_STATUS_CHOICES, PAYMENT_METHOD_CHOICES, PAYMENT_ACTIVE_STATUSES


class Payment(models.Model):
    transaction_id = models.CharField(max_length=100, unique=True)
    job = models.ForeignKey('jobs.Job', on_delete=models.PROTECT, related_name='payments')
    payer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='payments_made')
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments_received'
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='ETB')
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='manual_check')
    description = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')

    # Manual payment proof (client uploads a check image as a data URL)
    proof_image = models.TextField(blank=True)
    proof_filename = models.CharField(max_length=255, blank=True)
    proof_mime_type = models.CharField(max_length=100, blank=True)
    proof_note = models.TextField(blank=True)
    proof_uploaded_at = models.DateTimeField(null=True, blank=True)
    proof_uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )

    resolution = models.TextField(blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['job'], name='payment_job_idx'),
            models.Index(fields=['payer', 'status'], name='payment_payer_status_idx'),
            models.Index(fields=['status', 'created_at'], name='payment_status_created_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['job'],
                condition=models.Q(status__in=PAYMENT_ACTIVE_STATUSES),
                name='one_active_payment_per_job',
            ),
        ]

    def __str__(self):
        return f"Payment {self.transaction_id} for Job {self.job.title}"

    @property
    def has_proof(self):
        return bool(self.proof_image)

    @property
    def is_active(self):
        return self.status in PAYMENT_ACTIVE_STATUSES
