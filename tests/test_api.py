from datetime import timedelta

import pytest
from django.db import DatabaseError
from django.db.models import F

from apps.jobs import services
from apps.jobs.models import Job, Review
from apps.notifications.models import Notification
from apps.payments.models import Payment

pytestmark = pytest.mark.django_db

PROOF = "data:image/jpeg;base64,/9j/4AAQSkZJRg=="


def apply_via_api(api_as, worker, job, budget='1000.00'):
    return api_as(worker).post(
        f'/api/jobs/{job.id}/apply/',
        {'proposal': "I have done this before", 'proposed_budget': budget},
        format='json'
    )


def test_login_returns_token(api, make_user):
    make_user('tigist', role='client')
    response = api.post('/api/auth/login/', {'identifier': 'tigist', 'password': 's3cret-pass'}, format='json')
    assert response.status_code == 200
    assert response.data['success'] is True
    assert response.data['data']['token']
    assert response.data['data']['user']['role'] == 'client'


def test_login_with_wrong_password(api, make_user):
    make_user('tigist')
    response = api.post('/api/auth/login/', {'identifier': 'tigist', 'password': 'nope'}, format='json')
    assert response.status_code == 400
    assert response.data['success'] is False
    assert response.data['reason'] == 'validation-error'


def test_profile_requires_authentication(api):
    response = api.get('/api/users/profile/')
    assert response.status_code == 401
    assert response.data['success'] is False


def test_open_jobs_excludes_expired_and_assigned(api, make_job, worker, now):
    open_job = make_job(title="Open")
    make_job(title="Expired", deadline=now - timedelta(days=1))
    make_job(title="Taken", status='assigned', worker=worker)
    response = api.get('/api/jobs/')
    assert response.status_code == 200
    assert [job['id'] for job in response.data['data']] == [open_job.id]


def test_job_detail(api, job):
    response = api.get(f'/api/jobs/{job.id}/')
    assert response.data['data']['title'] == job.title
    assert response.data['data']['allowed_actions'] == []


def test_job_detail_not_found(api):
    response = api.get('/api/jobs/31337/')
    assert response.status_code == 404
    assert response.data['success'] is False


class TestClientJobs:
    def test_post_job(self, api_as, client_user, now):
        response = api_as(client_user).post('/api/client/jobs/', {
            'title': "Build a fence",
            'description': "20 metres, wooden",
            'category': "Carpentry",
            'budget': '3000.00',
            'deadline': (now + timedelta(days=10)).isoformat(),
        }, format='json')
        assert response.status_code == 201
        assert response.data['data']['status'] == 'posted'
        assert Job.objects.get(pk=response.data['data']['id']).client == client_user

    def test_post_job_validation_error(self, api_as, client_user, now):
        response = api_as(client_user).post('/api/client/jobs/', {
            'title': "Build a fence",
            'description': "20 metres",
            'category': "Carpentry",
            'budget': '0',
            'deadline': (now - timedelta(days=1)).isoformat(),
        }, format='json')
        assert response.status_code == 400
        assert response.data['reason'] == 'validation-error'
        assert set(response.data['errors']) == {'budget', 'deadline'}

    def test_worker_cannot_post_jobs(self, api_as, worker):
        response = api_as(worker).post('/api/client/jobs/', {}, format='json')
        assert response.status_code == 403
        assert response.data['reason'] == 'forbidden-role'

    def test_list_own_jobs(self, api_as, client_user, other_client, make_job):
        mine = make_job()
        make_job(client=other_client)
        response = api_as(client_user).get('/api/client/jobs/')
        assert [job['id'] for job in response.data['data']] == [mine.id]
        assert 'cancel' in response.data['data'][0]['allowed_actions']

    def test_edit_posted_job(self, api_as, job, client_user):
        response = api_as(client_user).put(
            f'/api/client/jobs/{job.id}/', {'title': "Paint the whole flat", 'budget': '2200.00'}, format='json'
        )
        assert response.status_code == 200
        assert response.data['data']['title'] == "Paint the whole flat"
        assert response.data['data']['budget'] == '2200.00'
        assert response.data['data']['version'] == job.version + 1

    def test_edit_after_assignment_is_refused(self, api_as, assigned_job, client_user):
        response = api_as(client_user).put(
            f'/api/client/jobs/{assigned_job.id}/', {'budget': '1.00'}, format='json'
        )
        assert response.status_code == 409
        assert response.data['reason'] == 'job-not-editable'
        assigned_job.refresh_from_db()
        assert str(assigned_job.budget) != '1.00'

    def test_edit_someone_elses_job(self, api_as, job, other_client):
        response = api_as(other_client).put(f'/api/client/jobs/{job.id}/', {'title': "Mine"}, format='json')
        assert response.status_code == 404

    def test_edit_cannot_touch_status(self, api_as, job, client_user):
        response = api_as(client_user).put(f'/api/client/jobs/{job.id}/', {'status': 'completed'}, format='json')
        assert response.status_code == 200
        assert response.data['data']['status'] == 'posted'


class TestApplications:
    def test_apply(self, api_as, job, worker):
        response = apply_via_api(api_as, worker, job)
        assert response.status_code == 201
        assert response.data['data']['status'] == 'pending'
        assert response.data['message'] == "Application submitted successfully"

    def test_duplicate_apply(self, api_as, job, worker):
        apply_via_api(api_as, worker, job)
        response = apply_via_api(api_as, worker, job)
        assert response.status_code == 409
        assert response.data['reason'] == 'duplicate-application'

    def test_apply_to_missing_job(self, api_as, worker):
        response = api_as(worker).post(
            '/api/jobs/404/apply/', {'proposal': "x", 'proposed_budget': '10'}, format='json'
        )
        assert response.status_code == 404

    def test_storage_failure_while_applying(self, api_as, job, worker, monkeypatch):
        def broken(entity_kind, entity_id):
            raise DatabaseError("connection lost")

        monkeypatch.setattr(services, '_load', broken)
        response = apply_via_api(api_as, worker, job)
        assert response.status_code == 500
        assert response.data['success'] is False
        assert response.data['reason'] == 'storage-error'

    def test_list_for_owner_only(self, api_as, job, worker, other_client):
        apply_via_api(api_as, worker, job)
        response = api_as(other_client).get(f'/api/client/jobs/{job.id}/applications/')
        assert response.status_code == 404

    def test_accept_and_reject(self, api_as, job, client_user, worker, other_worker):
        first = apply_via_api(api_as, worker, job).data['data']['id']
        second = apply_via_api(api_as, other_worker, job).data['data']['id']
        client = api_as(client_user)

        rejected = client.put(
            f'/api/client/jobs/{job.id}/applications/{second}/reject/', {'reason': "Too far away"}, format='json'
        )
        assert rejected.data['data']['status'] == 'rejected'
        assert rejected.data['data']['review_notes'] == "Too far away"

        accepted = client.put(f'/api/client/jobs/{job.id}/applications/{first}/accept/', format='json')
        assert accepted.status_code == 200
        assert accepted.data['data']['status'] == 'accepted'
        job.refresh_from_db()
        assert job.status == 'assigned'
        assert job.worker == worker

    def test_application_must_belong_to_job(self, api_as, make_job, job, client_user, worker):
        application = apply_via_api(api_as, worker, job).data['data']['id']
        elsewhere = make_job()
        response = api_as(client_user).put(
            f'/api/client/jobs/{elsewhere.id}/applications/{application}/accept/', format='json'
        )
        assert response.status_code == 404

    def test_other_client_cannot_accept(self, api_as, job, other_client, worker):
        application = apply_via_api(api_as, worker, job).data['data']['id']
        response = api_as(other_client).put(
            f'/api/client/jobs/{job.id}/applications/{application}/accept/', format='json'
        )
        assert response.status_code == 403
        assert response.data['reason'] == 'not-owner'

    def test_shortlist_by_admin(self, api_as, job, admin, worker):
        application = apply_via_api(api_as, worker, job).data['data']['id']
        response = api_as(admin).put(
            f'/api/admin/applications/{application}/shortlist/', {'notes': "Good fit"}, format='json'
        )
        assert response.status_code == 200
        assert response.data['data']['status'] == 'shortlisted'
        assert response.data['data']['shortlist_notes'] == "Good fit"

        response = api_as(admin).put(f'/api/admin/applications/{application}/unshortlist/', format='json')
        assert response.data['data']['status'] == 'pending'

    def test_shortlist_expired_job(self, api_as, job, client_user, worker, now):
        application = apply_via_api(api_as, worker, job).data['data']['id']
        Job.objects.filter(pk=job.id).update(deadline=now - timedelta(minutes=5))
        response = api_as(client_user).put(f'/api/admin/applications/{application}/shortlist/', format='json')
        assert response.status_code == 409
        assert response.data['success'] is False
        assert response.data['reason'] == 'job-expired'

    def test_worker_withdraws(self, api_as, job, worker):
        application = apply_via_api(api_as, worker, job).data['data']['id']
        response = api_as(worker).delete(f'/api/worker/applications/{application}/')
        assert response.status_code == 200
        assert response.data['data']['status'] == 'withdrawn'
        listed = api_as(worker).get('/api/worker/applications/')
        assert listed.data['data'][0]['status'] == 'withdrawn'


class TestWorkerJobs:
    def test_start_before_accepting(self, api_as, assigned_job, worker):
        response = api_as(worker).put(
            f'/api/worker/jobs/{assigned_job.id}/status/', {'status': 'in_progress'}, format='json'
        )
        assert response.status_code == 409
        assert response.data['reason'] == 'assignment-not-accepted'

    def test_status_requires_valid_value(self, api_as, assigned_job, worker):
        response = api_as(worker).put(
            f'/api/worker/jobs/{assigned_job.id}/status/', {'status': 'completed'}, format='json'
        )
        assert response.status_code == 400
        assert 'status' in response.data['errors']

    def test_decline(self, api_as, assigned_job, worker):
        response = api_as(worker).put(f'/api/worker/jobs/{assigned_job.id}/decline/', format='json')
        assert response.status_code == 200
        assert response.data['data']['status'] == 'posted'
        assert response.data['data']['worker'] is None

    def test_other_worker_gets_forbidden(self, api_as, assigned_job, other_worker):
        response = api_as(other_worker).put(f'/api/worker/jobs/{assigned_job.id}/accept/', format='json')
        assert response.status_code == 403
        assert response.data['reason'] == 'not-assigned-worker'

    def test_stale_version_is_a_conflict(self, api_as, assigned_job, worker, monkeypatch):
        load = services._load

        def load_then_race(entity_kind, entity_id):
            entity = load(entity_kind, entity_id)
            Job.objects.filter(pk=entity_id).update(version=F('version') + 1)
            return entity

        monkeypatch.setattr(services, '_load', load_then_race)
        response = api_as(worker).put(f'/api/worker/jobs/{assigned_job.id}/accept/', format='json')
        assert response.status_code == 409
        assert response.data['reason'] == 'stale-version'


def test_end_to_end_manual_payment(api_as, job, client_user, worker, admin):
    application = apply_via_api(api_as, worker, job, budget='1400.00').data['data']['id']
    api_as(client_user).put(f'/api/client/jobs/{job.id}/applications/{application}/accept/', format='json')

    worker_api = api_as(worker)
    assert worker_api.get('/api/worker/jobs/').data['data'][0]['id'] == job.id
    worker_api.put(f'/api/worker/jobs/{job.id}/accept/', format='json')
    started = worker_api.put(f'/api/worker/jobs/{job.id}/status/', {'status': 'in_progress', 'progress': 5},
                             format='json')
    assert started.data['data']['progress'] == 10
    progressed = worker_api.put(f'/api/worker/jobs/{job.id}/status/', {'status': 'in_progress', 'progress': 60},
                                format='json')
    assert progressed.data['data']['progress'] == 60
    worker_api.put(f'/api/worker/jobs/{job.id}/status/', {'status': 'submitted'}, format='json')

    client_api = api_as(client_user)
    revision = client_api.put(f'/api/client/jobs/{job.id}/request-revision/', {'reason': "Fix corners"},
                              format='json')
    assert revision.data['data']['status'] == 'revision_requested'

    worker_api = api_as(worker)
    resumed = worker_api.put(f'/api/worker/jobs/{job.id}/status/', {'status': 'in_progress'}, format='json')
    assert resumed.data['data']['status'] == 'in_progress'
    worker_api.put(f'/api/worker/jobs/{job.id}/status/', {'status': 'submitted'}, format='json')

    client_api = api_as(client_user)
    completed = client_api.put(f'/api/client/jobs/{job.id}/complete/', format='json')
    assert completed.status_code == 200
    assert completed.data['data']['job']['status'] == 'completed'
    payment_id = completed.data['data']['payment']['id']
    assert completed.data['data']['payment']['amount'] == '1400.00'

    proof = client_api.post(
        f'/api/client/jobs/{job.id}/payments/{payment_id}/proof/',
        {'imageData': PROOF, 'filename': 'check.jpg', 'mimeType': 'image/jpeg'},
        format='json'
    )
    assert proof.status_code == 200
    assert proof.data['data']['status'] == 'processing'
    assert client_api.get('/api/client/payments/').data['data'][0]['has_proof'] is True

    admin_api = api_as(admin)
    pending_review = admin_api.get('/api/admin/payments/', {'status': 'processing'})
    assert [payment['id'] for payment in pending_review.data['data']] == [payment_id]
    released = admin_api.put(f'/api/admin/payments/{payment_id}/review/', {'action': 'release'}, format='json')
    assert released.data['data']['status'] == 'completed'
    again = admin_api.put(f'/api/admin/payments/{payment_id}/review/', {'action': 'release'}, format='json')
    assert again.status_code == 200
    assert again.data['message'] == "Payment already completed"
    assert Payment.objects.get(pk=payment_id).status == 'completed'


def test_proof_rejects_non_image(api_as, make_job, client_user, worker):
    job = make_job(status='completed', worker=worker, progress=100)
    payment = Payment.objects.create(
        transaction_id='MAN-TEST-1', job=job, payer=client_user, recipient=worker, amount=job.budget
    )
    response = api_as(client_user).post(
        f'/api/client/jobs/{job.id}/payments/{payment.id}/proof/', {'imageData': 'not-an-image'}, format='json'
    )
    assert response.status_code == 400
    assert 'image_data' in response.data['errors']


def test_client_cannot_review_payments(api_as, client_user):
    response = api_as(client_user).put('/api/admin/payments/1/review/', {'action': 'release'}, format='json')
    assert response.status_code == 403


def test_cancel_by_admin_after_submission(api_as, make_job, admin, worker):
    job = make_job(status='submitted', worker=worker, progress=100)
    response = api_as(admin).put(f'/api/client/jobs/{job.id}/cancel/', format='json')
    assert response.status_code == 200
    assert response.data['data']['status'] == 'cancelled'


def test_notification_read_flow(api_as, worker, client_user):
    mine = Notification.objects.create(recipient=worker, title="Hi", message="There")
    Notification.objects.create(recipient=client_user, title="Not yours", message="...")
    api = api_as(worker)
    listed = api.get('/api/notifications/', {'unread': 'true'})
    assert [n['id'] for n in listed.data['data']] == [mine.id]

    read = api.put(f'/api/notifications/{mine.id}/read/', format='json')
    assert read.data['data']['is_read'] is True
    assert api.get('/api/notifications/', {'unread': 'true'}).data['data'] == []


def test_cannot_read_someone_elses_notification(api_as, worker, client_user):
    theirs = Notification.objects.create(recipient=client_user, title="Private", message="...")
    response = api_as(worker).put(f'/api/notifications/{theirs.id}/read/', format='json')
    assert response.status_code == 404


class TestReviews:
    @pytest.fixture
    def submitted_job(self, make_job, worker):
        return make_job(
            status='submitted', worker=worker, worker_acceptance='accepted', progress=100,
            agreed_amount='1300.00'
        )

    def test_complete_with_rating_then_worker_reviews(self, api_as, submitted_job, client_user, worker):
        completed = api_as(client_user).put(
            f'/api/client/jobs/{submitted_job.id}/complete/', {'rating': 4, 'review': "Tidy and on time"},
            format='json'
        )
        assert completed.status_code == 200
        assert completed.data['data']['review']['rating'] == 4
        assert completed.data['data']['review']['review_type'] == 'client_to_worker'
        assert completed.data['data']['payment']['amount'] == '1300.00'

        reviewed = api_as(worker).post(
            f'/api/worker/jobs/{submitted_job.id}/review/', {'rating': 5, 'comment': "Clear brief"}, format='json'
        )
        assert reviewed.status_code == 201
        assert reviewed.data['data']['review_type'] == 'worker_to_client'
        assert reviewed.data['data']['reviewee']['id'] == client_user.id

        profile = api_as(worker).get('/api/users/profile/')
        assert profile.data['data']['rating_stats'] == {
            'average_rating': 4.0, 'rating_count': 1, 'completed_jobs': 1
        }

    def test_complete_rejects_out_of_range_rating(self, api_as, submitted_job, client_user):
        response = api_as(client_user).put(
            f'/api/client/jobs/{submitted_job.id}/complete/', {'rating': 6}, format='json'
        )
        assert response.status_code == 400
        assert 'rating' in response.data['errors']
        submitted_job.refresh_from_db()
        assert submitted_job.status == 'submitted'

    def test_worker_review_before_completion(self, api_as, submitted_job, worker):
        response = api_as(worker).post(f'/api/worker/jobs/{submitted_job.id}/review/', {'rating': 3}, format='json')
        assert response.status_code == 409
        assert response.data['reason'] == 'job-not-completed'
        assert not Review.objects.exists()

    def test_worker_reviews_once(self, api_as, make_job, worker):
        job = make_job(status='completed', worker=worker, progress=100)
        api = api_as(worker)
        api.post(f'/api/worker/jobs/{job.id}/review/', {'rating': 3}, format='json')
        response = api.post(f'/api/worker/jobs/{job.id}/review/', {'rating': 1}, format='json')
        assert response.status_code == 409
        assert response.data['reason'] == 'duplicate-review'
        assert Review.objects.get(job=job).rating == 3

    def test_client_cannot_use_worker_review(self, api_as, make_job, client_user, worker):
        job = make_job(status='completed', worker=worker, progress=100)
        response = api_as(client_user).post(f'/api/worker/jobs/{job.id}/review/', {'rating': 1}, format='json')
        assert response.status_code == 403
        assert response.data['reason'] == 'forbidden-role'
