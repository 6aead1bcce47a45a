from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import CustomUser
from donations.models import Appointment
from donors.models import DonorProfile
from hospitals.models import HospitalProfile

from . import fakes

# Kathmandu; donors below are placed relative to this point
HOSPITAL_POINT = (27.7000, 85.3000)
NEAR_POINT = (27.7200, 85.3200)      # ~3 km
POKHARA_POINT = (28.2096, 83.9856)   # ~140 km


@pytest.fixture
def make_user(db):
    def _make(username, user_type=CustomUser.DONOR, email=None):
        return CustomUser.objects.create_user(
            username=username,
            email=f"{username}@example.com" if email is None else email,
            password='s3cret-pass',
            user_type=user_type,
        )
    return _make


@pytest.fixture
def make_donor(make_user):
    def _make(username='donor', blood_type='O-', point=NEAR_POINT, email=None, **fields):
        user = make_user(username, CustomUser.DONOR, email=email)
        latitude, longitude = point if point is not None else (None, None)
        return DonorProfile.objects.create(
            user=user,
            full_name=username.title(),
            blood_type=blood_type,
            latitude=latitude,
            longitude=longitude,
            **fields,
        )
    return _make


@pytest.fixture
def make_hospital(make_user):
    def _make(username='hospital', point=HOSPITAL_POINT, name=None):
        user = make_user(username, CustomUser.HOSPITAL_ADMIN)
        latitude, longitude = point if point is not None else (None, None)
        return HospitalProfile.objects.create(
            user=user,
            hospital_name=name or f"{username.title()} Hospital",
            latitude=latitude,
            longitude=longitude,
        )
    return _make


@pytest.fixture
def donor(make_donor):
    return make_donor()


@pytest.fixture
def hospital(make_hospital):
    return make_hospital()


@pytest.fixture
def other_hospital(make_hospital):
    return make_hospital('other', point=POKHARA_POINT)


@pytest.fixture
def super_admin(make_user):
    return make_user('root', CustomUser.SUPER_ADMIN)


@pytest.fixture
def appointment(donor, hospital):
    return Appointment.objects.create(
        donor=donor,
        hospital=hospital,
        scheduled_at=timezone.now() + timedelta(days=1),
    )


@pytest.fixture
def fake_senders(settings):
    settings.NOTIFICATION_SENDERS = {
        'email': 'tests.fakes.RecordingSender',
        'sms': 'tests.fakes.RecordingSender',
    }
    fakes.reset()
    yield fakes
    fakes.reset()


@pytest.fixture
def api_client():
    return APIClient()
