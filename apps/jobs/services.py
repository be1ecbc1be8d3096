"""
Lifecycle service: one validated status transition per call.

Each call loads the entity, asks ``transitions.can_transition`` for a
decision, writes the change with a version check and applies the cascades
that belong to the transition, all inside one database transaction.
Notifications are sent once that transaction commits.
"""
import logging
from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import NotFound
from apps.notifications.utils import notify
from apps.payments.services import create_payment_for_job
from core.constants import APPLICATION_OPEN_STATUSES
from core.exceptions import Conflict, DuplicateApplication, DuplicateReview, StorageError, TransitionDenied
from .models import Application, Job, JobRevision, Review
from .transitions import assignment_changes, can_transition

logger = logging.getLogger(__name__)

ENTITY_MODELS = {
    'job': Job,
    'application': Application,
}


def _load(entity_kind, entity_id):
    if entity_kind not in ENTITY_MODELS:
        raise ValueError(f"Unknown entity kind: {entity_kind}")
    model = ENTITY_MODELS[entity_kind]
    if model is Application:
        queryset = Application.objects.select_related('job', 'job__client', 'worker')
    else:
        queryset = Job.objects.select_related('client', 'worker')
    try:
        return queryset.get(pk=entity_id)
    except model.DoesNotExist:
        raise NotFound(f"{model.__name__} not found")


def _compare_and_swap(instance, changes, now):
    """Write ``changes`` only if nobody bumped the version since ``instance`` was read."""
    model = type(instance)
    updated = model.objects.filter(pk=instance.pk, version=instance.version).update(
        version=F('version') + 1, updated_at=now, **changes
    )
    if not updated:
        logger.warning(f"Stale write rejected for {model.__name__} {instance.pk} at version {instance.version}")
        raise Conflict()
    for field_name, value in changes.items():
        setattr(instance, field_name, value)
    instance.version += 1
    instance.updated_at = now


def _notify_on_commit(recipient_id, title, message, type, sender_id=None, job=None):
    def send():
        recipient = get_user_model().objects.filter(pk=recipient_id).first()
        if recipient is not None:
            notify(recipient, title, message, type=type, sender_id=sender_id, related_job=job)
    transaction.on_commit(send)


# Side effects, keyed by (entity kind, transition). Each receives the updated
# entity and the values it held before the write.

def _after_accept(application, previous, actor_id, now, options):
    job = application.job
    _compare_and_swap(job, assignment_changes(application), now)
    rejected = Application.objects.filter(
        job_id=job.pk, status__in=APPLICATION_OPEN_STATUSES
    ).exclude(pk=application.pk).update(
        status='rejected', reviewed_at=now, reviewed_by_id=actor_id, updated_at=now, version=F('version') + 1
    )
    logger.info(f"Application {application.pk} accepted for job {job.pk}; {rejected} other applications rejected")
    _notify_on_commit(
        application.worker_id, "Job Assigned",
        f"Your application for \"{job.title}\" was accepted. Please confirm the assignment.",
        'job_assigned', sender_id=actor_id, job=job,
    )


def _after_reject(application, previous, actor_id, now, options):
    _notify_on_commit(
        application.worker_id, "Application Not Selected",
        f"Your application for \"{application.job.title}\" was not selected this time.",
        'job_application', sender_id=actor_id, job=application.job,
    )


def _after_shortlist(application, previous, actor_id, now, options):
    job = application.job
    if job.client_id != actor_id:
        _notify_on_commit(
            job.client_id, "New Shortlisted Candidate",
            f"A new candidate has been shortlisted for your job: {job.title}",
            'application_shortlisted', sender_id=actor_id, job=job,
        )


def _after_withdraw(application, previous, actor_id, now, options):
    job = application.job
    _notify_on_commit(
        job.client_id, "Application Withdrawn",
        f"{application.worker.display_name} has withdrawn their application for job: {job.title}.",
        'application_withdrawn', sender_id=actor_id, job=job,
    )


def _after_accept_assignment(job, previous, actor_id, now, options):
    _notify_on_commit(
        job.client_id, "Assignment Accepted",
        f"The worker accepted the assignment for \"{job.title}\".",
        'job_status', sender_id=actor_id, job=job,
    )


def _after_decline_assignment(job, previous, actor_id, now, options):
    """
    Release the declining worker's accepted application.

    Accepted applications are otherwise never changed. Declining is the one
    exit: a job holds at most one accepted application, so the old one has to
    leave `accepted` before the reopened job can accept somebody else.
    """
    Application.objects.filter(
        job_id=job.pk, worker_id=previous['worker_id'], status='accepted'
    ).update(status='withdrawn', updated_at=now, version=F('version') + 1)
    _notify_on_commit(
        job.client_id, "Assignment Declined",
        f"The assigned worker declined \"{job.title}\". The job is open for applications again.",
        'job_status', sender_id=actor_id, job=job,
    )


def _after_work_status(job, previous, actor_id, now, options):
    if job.status == previous['status']:
        return
    _notify_on_commit(
        job.client_id, "Job Status Updated",
        f"\"{job.title}\" is now {job.get_status_display().lower()} ({job.progress}% done).",
        'job_status', sender_id=actor_id, job=job,
    )


def _after_request_revision(job, previous, actor_id, now, options):
    reason = options.get('reason') or ''
    JobRevision.objects.create(job=job, requested_by_id=actor_id, reason=reason, requested_at=now)
    _notify_on_commit(
        job.worker_id, "Revision Requested",
        f"Client has requested revisions for \"{job.title}\"" + (f": {reason}" if reason else "."),
        'revision_requested', sender_id=actor_id, job=job,
    )


def _create_review(job, reviewer_id, review_type, rating, comment):
    if Review.objects.filter(job_id=job.pk, reviewer_id=reviewer_id).exists():
        raise DuplicateReview()
    if review_type == 'client_to_worker':
        reviewee_id = job.worker_id
    else:
        reviewee_id = job.client_id
    review = Review.objects.create(
        job=job, reviewer_id=reviewer_id, reviewee_id=reviewee_id,
        review_type=review_type, rating=rating, comment=comment or ''
    )
    _notify_on_commit(
        reviewee_id, "New Review",
        f"You received a {rating}/5 review for \"{job.title}\".",
        'review_received', sender_id=reviewer_id, job=job,
    )
    return review


def _after_complete(job, previous, actor_id, now, options):
    if options.get('rating'):
        _create_review(job, actor_id, 'client_to_worker', options['rating'], options.get('review'))
    payment = create_payment_for_job(job)
    _notify_on_commit(
        job.worker_id, "Job Completed",
        f"\"{job.title}\" was marked as completed. Payment {payment.transaction_id} is being processed.",
        'job_completed', sender_id=actor_id, job=job,
    )


def _after_cancel(job, previous, actor_id, now, options):
    if previous['worker_id']:
        _notify_on_commit(
            previous['worker_id'], "Job Cancelled",
            f"The job \"{job.title}\" has been cancelled.",
            'job_cancelled', sender_id=actor_id, job=job,
        )


SIDE_EFFECTS = {
    ('application', 'accept'): _after_accept,
    ('application', 'reject'): _after_reject,
    ('application', 'shortlist'): _after_shortlist,
    ('application', 'withdraw'): _after_withdraw,
    ('job', 'accept-assignment'): _after_accept_assignment,
    ('job', 'decline-assignment'): _after_decline_assignment,
    ('job', 'start-work'): _after_work_status,
    ('job', 'submit-work'): _after_work_status,
    ('job', 'resume-work'): _after_work_status,
    ('job', 'request-revision'): _after_request_revision,
    ('job', 'complete'): _after_complete,
    ('job', 'cancel'): _after_cancel,
}


def apply_transition(entity_id, entity_kind, actor_role, actor_id, transition, now=None, **options):
    """
    Apply ``transition`` to the job or application ``entity_id`` on behalf of
    the actor and return the refreshed entity.

    Raises ``NotFound``, ``TransitionDenied`` (nothing written), ``Conflict``
    when a concurrent request changed the entity first, or ``StorageError``.
    """
    now = now or timezone.now()
    try:
        with transaction.atomic():
            entity = _load(entity_kind, entity_id)
            context = dict(options)
            if entity_kind == 'application' and transition == 'accept':
                context['accepted_application_id'] = (
                    Application.objects.filter(job_id=entity.job_id, status='accepted')
                    .values_list('pk', flat=True).first()
                )

            decision = can_transition(entity, actor_role, actor_id, transition, now, context)
            if not decision.allowed:
                logger.info(
                    f"Denied {transition} on {entity_kind} {entity_id} for {actor_role} {actor_id}: {decision.reason}"
                )
                raise TransitionDenied(decision.reason)
            if decision.is_noop:
                return entity

            previous = {'status': entity.status, 'worker_id': getattr(entity, 'worker_id', None)}
            _compare_and_swap(entity, decision.next_state, now)
            side_effect = SIDE_EFFECTS.get((entity_kind, transition))
            if side_effect is not None:
                side_effect(entity, previous, actor_id, now, options)

        logger.info(f"{actor_role} {actor_id} applied {transition} to {entity_kind} {entity_id}")
        return _load(entity_kind, entity_id)
    except IntegrityError as e:
        logger.warning(f"Integrity error during {transition} on {entity_kind} {entity_id}: {str(e)}")
        raise Conflict() from e
    except DatabaseError as e:
        logger.error(f"Storage error during {transition} on {entity_kind} {entity_id}: {str(e)}")
        raise StorageError() from e


def apply_for_job(job_id, worker, data, now=None):
    """Create a pending application of ``worker`` for a posted, unexpired job."""
    now = now or timezone.now()
    try:
        job = _load('job', job_id)
        if job.status != 'posted':
            raise TransitionDenied('job-not-postable', "Job is no longer accepting applications")
        if not job.is_open_at(now):
            raise TransitionDenied('job-expired', "The deadline for this job has passed")
        if not worker.is_verified:
            raise TransitionDenied('worker-not-verified')
        if Application.objects.filter(job=job, worker=worker).exists():
            raise DuplicateApplication()

        with transaction.atomic():
            application = Application.objects.create(job=job, worker=worker, **data)
            _notify_on_commit(
                job.client_id, "New Job Application",
                f"{worker.display_name} has applied for your job \"{job.title}\"",
                'job_application', sender_id=worker.id, job=job,
            )
    except IntegrityError as e:
        raise DuplicateApplication() from e
    except DatabaseError as e:
        logger.error(f"Storage error creating application for job {job_id}: {str(e)}")
        raise StorageError() from e

    logger.info(f"Worker {worker.id} applied to job {job_id}")
    return application


def submit_review(job_id, actor_role, actor_id, rating, comment=''):
    """
    Record the worker's or the client's review of a completed job.

    Each party reviews a job once. The client can also review while
    completing the job (see ``_after_complete``).
    """
    try:
        with transaction.atomic():
            job = _load('job', job_id)
            if actor_role == 'worker':
                if job.worker_id != actor_id:
                    raise TransitionDenied('not-assigned-worker')
                review_type = 'worker_to_client'
            elif actor_role == 'client':
                if job.client_id != actor_id:
                    raise TransitionDenied('not-owner')
                review_type = 'client_to_worker'
            else:
                raise TransitionDenied('forbidden-role')
            if job.status != 'completed':
                raise TransitionDenied('job-not-completed')
            review = _create_review(job, actor_id, review_type, rating, comment)
    except IntegrityError as e:
        raise DuplicateReview() from e
    except DatabaseError as e:
        logger.error(f"Storage error reviewing job {job_id}: {str(e)}")
        raise StorageError() from e

    logger.info(f"{actor_role} {actor_id} reviewed job {job_id} with {rating}/5")
    return review


def update_job(job_id, actor_id, changes, now=None):
    """Edit a job's posting details. Only the owner may edit, and only while it is posted."""
    now = now or timezone.now()
    try:
        with transaction.atomic():
            job = _load('job', job_id)
            if job.client_id != actor_id:
                raise NotFound("Job not found")
            if job.status != 'posted':
                raise TransitionDenied('job-not-editable')
            if changes:
                _compare_and_swap(job, changes, now)
    except DatabaseError as e:
        logger.error(f"Storage error updating job {job_id}: {str(e)}")
        raise StorageError() from e

    logger.info(f"Client {actor_id} updated job {job_id}: {', '.join(sorted(changes)) or 'no changes'}")
    return job
