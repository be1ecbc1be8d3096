"""
Status transition rules for jobs and applications.

Every function in this module is pure: the caller hands over the entity as
loaded, the acting role and id, the transition name and the current time, and
gets back either ``Allowed`` (carrying the field changes to persist) or
``Denied`` (carrying a reason code). Nothing here touches the database, so
the lifecycle service and the tests can both drive it with fixed timestamps.
"""
from dataclasses import dataclass, field

from core.constants import JOB_TERMINAL_STATUSES
from .models import Application, Job


@dataclass(frozen=True)
class Allowed:
    next_state: dict = field(default_factory=dict)

    allowed = True

    @property
    def is_noop(self):
        return not self.next_state


@dataclass(frozen=True)
class Denied:
    reason: str

    allowed = False


MIN_STARTED_PROGRESS = 10
CLIENT_CANCELLABLE_STATUSES = ('posted', 'assigned', 'in_progress', 'revision_requested')
MODERATABLE_APPLICATION_STATUSES = ('pending', 'shortlisted')


def _clamp_progress(value, low=0, high=100):
    return max(low, min(high, int(value)))


# Job transitions

def _accept_assignment(job, actor_id, now, context):
    if job.status != 'assigned':
        return Denied('wrong-state')
    return Allowed({'worker_acceptance': 'accepted'})


def _decline_assignment(job, actor_id, now, context):
    if job.status != 'assigned':
        return Denied('wrong-state')
    return Allowed({
        'status': 'posted',
        'worker_id': None,
        'worker_acceptance': 'declined',
        'progress': 0,
        'agreed_amount': None,
    })


def _start_work(job, actor_id, now, context):
    if job.status != 'assigned':
        return Denied('wrong-state')
    if job.worker_acceptance != 'accepted':
        return Denied('assignment-not-accepted')
    requested = context.get('progress') or 0
    return Allowed({
        'status': 'in_progress',
        'progress': _clamp_progress(max(MIN_STARTED_PROGRESS, requested), low=MIN_STARTED_PROGRESS),
        'start_date': now,
    })


def _update_progress(job, actor_id, now, context):
    if job.status != 'in_progress':
        return Denied('wrong-state')
    requested = context.get('progress')
    if requested is None:
        return Allowed()
    progress = _clamp_progress(requested, low=MIN_STARTED_PROGRESS)
    if progress == job.progress:
        return Allowed()
    return Allowed({'progress': progress})


def _submit_work(job, actor_id, now, context):
    if job.status != 'in_progress':
        return Denied('wrong-state')
    return Allowed({'status': 'submitted', 'progress': 100})


def _resume_work(job, actor_id, now, context):
    if job.status != 'revision_requested':
        return Denied('wrong-state')
    return Allowed({'status': 'in_progress'})


def _request_revision(job, actor_id, now, context):
    if job.status != 'submitted':
        return Denied('wrong-state')
    return Allowed({'status': 'revision_requested'})


def _complete(job, actor_id, now, context):
    if job.status != 'submitted':
        return Denied('wrong-state')
    return Allowed({'status': 'completed', 'progress': 100, 'completion_date': now})


def _cancel(job, actor_id, now, context):
    if job.status in JOB_TERMINAL_STATUSES:
        return Denied('wrong-state')
    if context.get('actor_role') != 'admin' and job.status not in CLIENT_CANCELLABLE_STATUSES:
        return Denied('wrong-state')
    return Allowed({'status': 'cancelled'})


# Application transitions

def _shortlist(application, actor_id, now, context):
    job = application.job
    # Status is checked before the deadline so an assigned job reads as not postable
    if job.status != 'posted':
        return Denied('job-not-postable')
    if not job.is_open_at(now):
        return Denied('job-expired')
    if application.status != 'pending':
        return Denied('wrong-state')
    changes = {'status': 'shortlisted', 'shortlisted_at': now, 'shortlisted_by_id': actor_id}
    if context.get('notes'):
        changes['shortlist_notes'] = context['notes']
    return Allowed(changes)


def _unshortlist(application, actor_id, now, context):
    if application.status != 'shortlisted':
        return Denied('wrong-state')
    return Allowed({
        'status': 'pending',
        'shortlisted_at': None,
        'shortlisted_by_id': None,
        'shortlist_notes': '',
    })


def _accept(application, actor_id, now, context):
    if application.status == 'accepted':
        return Allowed()
    if application.status not in MODERATABLE_APPLICATION_STATUSES:
        return Denied('wrong-state')
    accepted_id = context.get('accepted_application_id')
    if accepted_id is not None and accepted_id != application.pk:
        return Denied('job-already-assigned')
    if application.job.status != 'posted':
        return Denied('job-not-postable')
    return Allowed({'status': 'accepted', 'reviewed_at': now, 'reviewed_by_id': actor_id})


def _reject(application, actor_id, now, context):
    if application.status not in MODERATABLE_APPLICATION_STATUSES:
        return Denied('wrong-state')
    changes = {'status': 'rejected', 'reviewed_at': now, 'reviewed_by_id': actor_id}
    if context.get('reason'):
        changes['review_notes'] = context['reason']
    return Allowed(changes)


def _withdraw(application, actor_id, now, context):
    if application.status not in MODERATABLE_APPLICATION_STATUSES:
        return Denied('wrong-state')
    return Allowed({'status': 'withdrawn'})


# transition -> (roles allowed, whose identity the actor must match, rule)
# "client" ownership means the actor owns the job; admins skip ownership checks.
JOB_TRANSITIONS = {
    'accept-assignment': (('worker',), 'worker', _accept_assignment),
    'decline-assignment': (('worker',), 'worker', _decline_assignment),
    'start-work': (('worker',), 'worker', _start_work),
    'update-progress': (('worker',), 'worker', _update_progress),
    'submit-work': (('worker',), 'worker', _submit_work),
    'resume-work': (('worker',), 'worker', _resume_work),
    'request-revision': (('client',), 'client', _request_revision),
    'complete': (('client',), 'client', _complete),
    'cancel': (('client', 'admin'), 'client', _cancel),
}

APPLICATION_TRANSITIONS = {
    'shortlist': (('client', 'admin'), 'client', _shortlist),
    'unshortlist': (('client', 'admin'), 'client', _unshortlist),
    'accept': (('client', 'admin'), 'client', _accept),
    'reject': (('client', 'admin'), 'client', _reject),
    'withdraw': (('worker',), 'applicant', _withdraw),
}


def _ownership_denial(entity, ownership, actor_role, actor_id):
    if actor_role == 'admin':
        return None
    job = entity.job if isinstance(entity, Application) else entity
    if ownership == 'client' and job.client_id != actor_id:
        return Denied('not-owner')
    if ownership == 'worker' and job.worker_id != actor_id:
        return Denied('not-assigned-worker')
    if ownership == 'applicant' and entity.worker_id != actor_id:
        return Denied('not-owner')
    return None


def transitions_for(entity):
    if isinstance(entity, Application):
        return APPLICATION_TRANSITIONS
    if isinstance(entity, Job):
        return JOB_TRANSITIONS
    raise TypeError(f"No transitions defined for {type(entity).__name__}")


def can_transition(entity, actor_role, actor_id, transition, now, context=None):
    """
    Decide whether ``actor_role``/``actor_id`` may apply ``transition`` to
    ``entity`` at ``now``.

    ``context`` carries request options (``progress``, ``reason``, ``notes``)
    and facts the caller looked up beforehand, such as
    ``accepted_application_id`` for the job an application belongs to.
    """
    table = transitions_for(entity)
    if transition not in table:
        return Denied('unknown-transition')

    roles, ownership, rule = table[transition]
    if actor_role not in roles:
        return Denied('forbidden-role')

    denial = _ownership_denial(entity, ownership, actor_role, actor_id)
    if denial is not None:
        return denial

    context = dict(context or {}, actor_role=actor_role)
    return rule(entity, actor_id, now, context)


def assignment_changes(application):
    """Job fields written when ``application`` is accepted."""
    return {
        'status': 'assigned',
        'worker_id': application.worker_id,
        'worker_acceptance': 'pending',
        'progress': 0,
        'agreed_amount': application.proposed_budget,
    }


def available_transitions(entity, actor_role, actor_id, now, context=None):
    """Names of the transitions the actor could apply right now."""
    return [
        name for name in transitions_for(entity)
        if can_transition(entity, actor_role, actor_id, name, now, context).allowed
    ]
