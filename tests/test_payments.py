from decimal import Decimal

import pytest
from rest_framework.exceptions import NotFound, ValidationError

from apps.notifications.models import Notification
from apps.payments.models import Payment
from apps.payments.services import attach_proof, create_payment_for_job, review_payment
from core.exceptions import TransitionDenied

pytestmark = pytest.mark.django_db

PROOF = "data:image/png;base64,iVBORw0KGgo="


@pytest.fixture
def completed_job(make_job, worker):
    return make_job(status='completed', worker=worker, progress=100, agreed_amount=Decimal('980.00'))


@pytest.fixture
def payment(completed_job):
    return create_payment_for_job(completed_job)


def test_payment_uses_agreed_amount(payment, completed_job, client_user, worker):
    assert payment.amount == Decimal('980.00')
    assert payment.currency == 'ETB'
    assert payment.payment_method == 'manual_check'
    assert payment.payer_id == client_user.id
    assert payment.recipient_id == worker.id


def test_payment_falls_back_to_budget(make_job, worker):
    job = make_job(status='completed', worker=worker, progress=100)
    assert create_payment_for_job(job).amount == job.budget


def test_only_one_active_payment_per_job(payment, completed_job):
    assert create_payment_for_job(completed_job).pk == payment.pk
    assert Payment.objects.filter(job=completed_job).count() == 1


class TestAttachProof:
    def test_moves_pending_payment_to_processing(self, payment, client_user):
        updated = attach_proof(
            payment.id, payment.job_id, client_user.id, PROOF, filename='check.png',
            mime_type='image/png', note="Check #1042"
        )
        assert updated.status == 'processing'
        assert updated.has_proof
        assert updated.proof_uploaded_by_id == client_user.id
        assert updated.proof_note == "Check #1042"

    def test_requires_image(self, payment, client_user):
        with pytest.raises(ValidationError):
            attach_proof(payment.id, payment.job_id, client_user.id, '')

    def test_only_payer_may_upload(self, payment, other_client):
        with pytest.raises(TransitionDenied) as excinfo:
            attach_proof(payment.id, payment.job_id, other_client.id, PROOF)
        assert excinfo.value.reason == 'not-owner'

    def test_payment_must_belong_to_job(self, payment, client_user):
        with pytest.raises(NotFound):
            attach_proof(payment.id, payment.job_id + 1, client_user.id, PROOF)

    def test_settled_payment(self, payment, client_user):
        Payment.objects.filter(pk=payment.pk).update(status='failed')
        with pytest.raises(TransitionDenied) as excinfo:
            attach_proof(payment.id, payment.job_id, client_user.id, PROOF)
        assert excinfo.value.reason == 'wrong-state'


class TestReviewPayment:
    def test_release(self, payment, admin):
        released, changed = review_payment(payment.id, 'admin', admin.id, 'release', resolution="Check cleared")
        assert changed
        assert released.status == 'completed'
        assert released.completed_at is not None
        assert released.resolved_by_id == admin.id

    def test_release_twice_is_idempotent(self, payment, admin):
        review_payment(payment.id, 'admin', admin.id, 'release')
        again, changed = review_payment(payment.id, 'admin', admin.id, 'release')
        assert not changed
        assert again.status == 'completed'

    def test_refund_only_after_completion(self, payment, admin):
        with pytest.raises(TransitionDenied) as excinfo:
            review_payment(payment.id, 'admin', admin.id, 'refund')
        assert excinfo.value.reason == 'wrong-state'
        review_payment(payment.id, 'admin', admin.id, 'release')
        refunded, _ = review_payment(payment.id, 'admin', admin.id, 'refund')
        assert refunded.status == 'refunded'

    def test_admin_only(self, payment, client_user):
        with pytest.raises(TransitionDenied) as excinfo:
            review_payment(payment.id, 'client', client_user.id, 'release')
        assert excinfo.value.reason == 'forbidden-role'

    def test_unknown_action(self, payment, admin):
        with pytest.raises(TransitionDenied) as excinfo:
            review_payment(payment.id, 'admin', admin.id, 'approve')
        assert excinfo.value.status_code == 400

    def test_release_notifies_both_parties(self, payment, admin, client_user, worker,
                                           django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            review_payment(payment.id, 'admin', admin.id, 'release')
        assert Notification.objects.filter(recipient=worker, type='payment_received').exists()
        assert Notification.objects.filter(recipient=client_user, type='payment_processed').exists()
