import logging

from rest_framework import status
from rest_framework.exceptions import APIException, PermissionDenied, ValidationError
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

FORBIDDEN_REASONS = ('forbidden-role', 'not-owner', 'not-assigned-worker', 'worker-not-verified')

REASON_MESSAGES = {
    'unknown-transition': "This action is not supported.",
    'forbidden-role': "Your role is not allowed to perform this action.",
    'not-owner': "You do not own this resource.",
    'not-assigned-worker': "Only the assigned worker can perform this action.",
    'wrong-state': "This action is not allowed in the current state.",
    'assignment-not-accepted': "The assignment must be accepted before work can start.",
    'job-not-postable': "You can only shortlist candidates for posted jobs.",
    'job-expired': "The job is expired. You cannot shortlist candidates for expired jobs.",
    'job-already-assigned': "Another application has already been accepted for this job.",
    'worker-not-verified': "You must be verified to apply for jobs.",
    'job-not-completed': "Reviews can only be left on completed jobs.",
    'job-not-editable': "Jobs can only be edited while they are posted.",
}


class TransitionDenied(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Transition not allowed."
    default_code = 'denied'

    def __init__(self, reason, detail=None):
        self.reason = reason
        if reason in FORBIDDEN_REASONS:
            self.status_code = status.HTTP_403_FORBIDDEN
        elif reason == 'unknown-transition':
            self.status_code = status.HTTP_400_BAD_REQUEST
        super().__init__(detail or REASON_MESSAGES.get(reason, self.default_detail))


class DuplicateApplication(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "You have already applied for this job."
    default_code = 'duplicate'
    reason = 'duplicate-application'


class DuplicateReview(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "You have already reviewed this job."
    default_code = 'duplicate'
    reason = 'duplicate-review'


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The record was modified by another request. Reload and try again."
    default_code = 'conflict'
    reason = 'stale-version'


class StorageError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "A storage error occurred. Please try again later."
    default_code = 'storage_error'
    reason = 'storage-error'


def _reason_for(exc):
    reason = getattr(exc, 'reason', None)
    if reason:
        return reason
    if isinstance(exc, ValidationError):
        return 'validation-error'
    if isinstance(exc, PermissionDenied):
        return 'forbidden-role'
    return exc.default_code if isinstance(exc, APIException) else None


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    return str(detail)


def envelope_exception_handler(exc, context):
    """Wrap every API error in the {success, message, reason} envelope."""
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, StorageError):
        logger.error(f"Storage failure in {context.get('view').__class__.__name__}: {exc.__cause__ or exc}")

    body = {
        'success': False,
        'message': _first_message(response.data.get('detail', response.data)
                                  if isinstance(response.data, dict) else response.data),
        'reason': _reason_for(exc),
    }
    if isinstance(exc, ValidationError):
        body['errors'] = response.data
    response.data = body
    return response
