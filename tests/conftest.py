from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from apps.jobs.models import Application, Job

User = get_user_model()


@pytest.fixture
def now():
    return timezone.now()


@pytest.fixture
def make_user(db):
    def make(username, role='worker', **extra):
        extra.setdefault('email', f"{username}@example.com")
        extra.setdefault('is_verified', True)
        return User.objects.create_user(username=username, password='s3cret-pass', role=role, **extra)
    return make


@pytest.fixture
def client_user(make_user):
    return make_user('abebe', role='client', first_name='Abebe', last_name='Kebede')


@pytest.fixture
def other_client(make_user):
    return make_user('sara', role='client')


@pytest.fixture
def worker(make_user):
    return make_user('hana', role='worker', first_name='Hana', last_name='Tesfaye')


@pytest.fixture
def other_worker(make_user):
    return make_user('dawit', role='worker')


@pytest.fixture
def admin(make_user):
    return make_user('moderator', role='admin')


@pytest.fixture
def make_job(client_user, now):
    def make(**fields):
        fields.setdefault('client', client_user)
        fields.setdefault('title', "Paint the office")
        fields.setdefault('description', "Two rooms, white walls")
        fields.setdefault('category', "Painting")
        fields.setdefault('budget', Decimal('1500.00'))
        fields.setdefault('deadline', now + timedelta(days=7))
        return Job.objects.create(**fields)
    return make


@pytest.fixture
def job(make_job):
    return make_job()


@pytest.fixture
def make_application(job):
    def make(worker, **fields):
        fields.setdefault('job', job)
        fields.setdefault('proposal', "I can start tomorrow")
        fields.setdefault('proposed_budget', Decimal('1200.00'))
        return Application.objects.create(worker=worker, **fields)
    return make


@pytest.fixture
def assigned_job(make_job, worker):
    return make_job(status='assigned', worker=worker, agreed_amount=Decimal('1200.00'))


@pytest.fixture
def api():
    return APIClient()


@pytest.fixture
def api_as(api):
    def authenticate(user):
        api.force_authenticate(user=user)
        return api
    return authenticate
