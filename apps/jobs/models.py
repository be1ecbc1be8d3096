from django.db import models
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from core.constants import (
    JOB_STATUS_CHOICES, JOB_WORKER_STATUSES, WORKER_ACCEPTANCE_CHOICES, APPLICATION_STATUS_CHOICES,
    REVIEW_TYPE_CHOICES
)


class Job(models.Model):
    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='posted_jobs')
    title = models.CharField(max_length=200)
    description = models.TextField()
    category = models.CharField(max_length=100)
    budget = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='ETB')
    deadline = models.DateTimeField()
    status = models.CharField(max_length=20, choices=JOB_STATUS_CHOICES, default='posted')
    worker = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_jobs'
    )
    worker_acceptance = models.CharField(max_length=10, choices=WORKER_ACCEPTANCE_CHOICES, default='pending')
    progress = models.PositiveSmallIntegerField(
        default=0, validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    agreed_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    start_date = models.DateTimeField(null=True, blank=True)
    completion_date = models.DateTimeField(null=True, blank=True)
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['client', 'status'], name='job_client_status_idx'),
            models.Index(fields=['worker', 'status'], name='job_worker_status_idx'),
            models.Index(fields=['status', 'created_at'], name='job_status_created_idx'),
            models.Index(fields=['deadline'], name='job_deadline_idx'),
        ]

    def __str__(self):
        return f"{self.title} - {self.client.username}"

    def is_open_at(self, now):
        """A job accepts shortlisting while its deadline has not passed yet."""
        return self.deadline >= now

    @property
    def payable_amount(self):
        return self.agreed_amount if self.agreed_amount is not None else self.budget

    def clean(self):
        errors = {}
        if self.status in JOB_WORKER_STATUSES and self.worker_id is None:
            errors['worker'] = f"A worker is required while the job is {self.status}."
        if self.status in ('posted', 'assigned') and self.progress != 0:
            errors['progress'] = f"Progress must be 0 while the job is {self.status}."
        if self.status == 'completed' and self.progress != 100:
            errors['progress'] = "Progress must be 100 once the job is completed."
        if errors:
            raise ValidationError(errors)


class JobRevision(models.Model):
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name='revisions')
    requested_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    reason = models.TextField(blank=True)
    requested_at = models.DateTimeField()

    class Meta:
        ordering = ['-requested_at']

    def __str__(self):
        return f"Revision for {self.job.title} at {self.requested_at}"


class Application(models.Model):
    job = models.ForeignKey(Job, on_delete=models.PROTECT, related_name='applications')
    worker = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='applications')
    proposal = models.TextField()
    proposed_budget = models.DecimalField(max_digits=12, decimal_places=2)
    estimated_duration = models.CharField(max_length=100, blank=True)
    cover_letter = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=APPLICATION_STATUS_CHOICES, default='pending')
    applied_at = models.DateTimeField(auto_now_add=True)
    shortlisted_at = models.DateTimeField(null=True, blank=True)
    shortlisted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    shortlist_notes = models.TextField(blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    review_notes = models.TextField(blank=True)
    version = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-applied_at']
        unique_together = ('job', 'worker')
        indexes = [
            models.Index(fields=['worker', 'status'], name='application_worker_status_idx'),
            models.Index(fields=['job', 'status'], name='application_job_status_idx'),
            models.Index(fields=['applied_at'], name='application_applied_at_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['job'], condition=models.Q(status='accepted'), name='one_accepted_application_per_job'
            ),
        ]

    def __str__(self):
        return f"{self.worker.username} applied to {self.job.title}"


class Review(models.Model):
    job = models.ForeignKey(Job, on_delete=models.PROTECT, related_name='reviews')
    reviewer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reviews_given')
    reviewee = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reviews_received')
    review_type = models.CharField(max_length=20, choices=REVIEW_TYPE_CHOICES)
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        # One review per party per job
        unique_together = ('job', 'reviewer')

    def __str__(self):
        return f"{self.rating}/5 from {self.reviewer.username} on {self.job.title}"
