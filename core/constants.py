# core/constants.py
USER_ROLE_CHOICES = (
    ('client', 'Client'),
    ('worker', 'Worker'),
    ('admin', 'Admin'),
)

JOB_STATUS_CHOICES = (
    ('posted', 'Posted'),                          # Open for applications
    ('assigned', 'Assigned'),                      # An application was accepted, worker must confirm
    ('in_progress', 'In Progress'),                # Worker started the work
    ('submitted', 'Submitted'),                    # Worker delivered, awaiting client decision
    ('revision_requested', 'Revision Requested'),  # Client sent the work back
    ('completed', 'Completed'),                    # Client accepted the delivery
    ('cancelled', 'Cancelled'),
)

JOB_TERMINAL_STATUSES = ('completed', 'cancelled')

# Statuses in which a job must carry an assigned worker
JOB_WORKER_STATUSES = ('assigned', 'in_progress', 'submitted', 'revision_requested', 'completed')

WORKER_ACCEPTANCE_CHOICES = (
    ('pending', 'Pending'),
    ('accepted', 'Accepted'),
    ('declined', 'Declined'),
)

APPLICATION_STATUS_CHOICES = (
    ('pending', 'Pending'),          # Worker applied, awaiting client response
    ('reviewed', 'Reviewed'),
    ('shortlisted', 'Shortlisted'),
    ('accepted', 'Accepted'),        # Client accepted worker's application
    ('rejected', 'Rejected'),        # Client rejected worker's application
    ('withdrawn', 'Withdrawn'),      # Worker pulled the application
)

# Applications that are still competing for a job
APPLICATION_OPEN_STATUSES = ('pending', 'reviewed', 'shortlisted')

PAYMENT_STATUS_CHOICES = (
    ('pending', 'Pending'),
    ('processing', 'Processing'),    # Proof uploaded, awaiting admin review
    ('completed', 'Completed'),
    ('failed', 'Failed'),
    ('cancelled', 'Cancelled'),
    ('refunded', 'Refunded'),
)

PAYMENT_ACTIVE_STATUSES = ('pending', 'processing')

PAYMENT_METHOD_CHOICES = (
    ('manual_check', 'Manual Check'),
)

NOTIFICATION_TYPE_CHOICES = (
    ('job_application', 'Job Application'),
    ('application_shortlisted', 'Application Shortlisted'),
    ('application_withdrawn', 'Application Withdrawn'),
    ('job_assigned', 'Job Assigned'),
    ('job_status', 'Job Status'),
    ('job_completed', 'Job Completed'),
    ('job_cancelled', 'Job Cancelled'),
    ('revision_requested', 'Revision Requested'),
    ('payment_received', 'Payment Received'),
    ('payment_processed', 'Payment Processed'),
    ('review_received', 'Review Received'),
    ('general', 'General'),
)

REVIEW_TYPE_CHOICES = (
    ('client_to_worker', 'Client to Worker'),
    ('worker_to_client', 'Worker to Client'),
)
