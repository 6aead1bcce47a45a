from datetime import datetime, timedelta

import pytest
from django.utils import timezone

from bloodbridge.exceptions import Conflict, Forbidden, InvalidTransition, NotFound, ValidationError
from donations.models import Appointment, Donation
from donations.utils import (
    book_appointment,
    delete_appointment,
    list_appointments,
    transition_appointment,
)
from hospitals.utils import create_need

pytestmark = pytest.mark.django_db


def tomorrow():
    return timezone.now() + timedelta(days=1)


class TestBookAppointment:
    def test_book(self, donor, hospital):
        need = create_need(hospital.user, 'O-', 2, 'normal')
        appointment = book_appointment(donor.user, hospital.pk, tomorrow(), need_id=need.pk, notes='Morning')

        assert appointment.status == Appointment.SCHEDULED
        assert appointment.donor == donor
        assert appointment.blood_need == need
        assert appointment.notes == 'Morning'

    def test_naive_time_is_made_aware(self, donor, hospital):
        appointment = book_appointment(donor.user, hospital.pk, datetime.now() + timedelta(days=2))
        assert timezone.is_aware(appointment.scheduled_at)

    def test_only_donors(self, hospital, super_admin):
        with pytest.raises(Forbidden):
            book_appointment(hospital.user, hospital.pk, tomorrow())
        with pytest.raises(Forbidden):
            book_appointment(super_admin, hospital.pk, tomorrow())

    def test_must_be_in_future(self, donor, hospital):
        with pytest.raises(ValidationError):
            book_appointment(donor.user, hospital.pk, timezone.now() - timedelta(minutes=5))
        with pytest.raises(ValidationError):
            book_appointment(donor.user, hospital.pk, '2030-01-01')

    def test_unknown_hospital(self, donor):
        with pytest.raises(NotFound):
            book_appointment(donor.user, 987654, tomorrow())

    def test_unknown_need(self, donor, hospital):
        with pytest.raises(NotFound):
            book_appointment(donor.user, hospital.pk, tomorrow(), need_id=987654)

    def test_need_from_other_hospital(self, donor, hospital, other_hospital):
        need = create_need(other_hospital.user, 'O-', 1, 'normal')
        with pytest.raises(ValidationError):
            book_appointment(donor.user, hospital.pk, tomorrow(), need_id=need.pk)
        assert not Appointment.objects.exists()


class TestTransitionMatrix:
    @pytest.mark.parametrize('target', [Appointment.CANCELLED, Appointment.RESCHEDULED])
    def test_donor_allowed(self, appointment, donor, target):
        assert transition_appointment(donor.user, appointment.pk, target).status == target

    @pytest.mark.parametrize('target', [Appointment.COMPLETED, Appointment.NO_SHOW, Appointment.SCHEDULED])
    def test_donor_forbidden(self, appointment, donor, target):
        with pytest.raises(Forbidden):
            transition_appointment(donor.user, appointment.pk, target)
        appointment.refresh_from_db()
        assert appointment.status == Appointment.SCHEDULED

    @pytest.mark.parametrize('target', [Appointment.COMPLETED, Appointment.NO_SHOW, Appointment.CANCELLED])
    def test_hospital_allowed(self, appointment, hospital, target):
        assert transition_appointment(hospital.user, appointment.pk, target).status == target

    @pytest.mark.parametrize('target', [Appointment.RESCHEDULED, Appointment.SCHEDULED])
    def test_hospital_forbidden(self, appointment, hospital, target):
        with pytest.raises(Forbidden):
            transition_appointment(hospital.user, appointment.pk, target)

    def test_other_donor_forbidden(self, appointment, make_donor):
        stranger = make_donor('stranger')
        with pytest.raises(Forbidden):
            transition_appointment(stranger.user, appointment.pk, Appointment.CANCELLED)

    def test_other_hospital_forbidden(self, appointment, other_hospital):
        with pytest.raises(Forbidden):
            transition_appointment(other_hospital.user, appointment.pk, Appointment.COMPLETED)

    @pytest.mark.parametrize('target', Appointment.STATUSES)
    def test_super_admin_forbidden(self, appointment, super_admin, target):
        with pytest.raises(Forbidden):
            transition_appointment(super_admin, appointment.pk, target)

    def test_unknown_status(self, appointment, hospital):
        with pytest.raises(ValidationError):
            transition_appointment(hospital.user, appointment.pk, 'done')

    def test_missing_appointment(self, hospital):
        with pytest.raises(NotFound):
            transition_appointment(hospital.user, 424242, Appointment.COMPLETED)

    def test_terminal_status_cannot_change(self, appointment, donor, hospital):
        transition_appointment(donor.user, appointment.pk, Appointment.CANCELLED)

        with pytest.raises(InvalidTransition) as excinfo:
            transition_appointment(hospital.user, appointment.pk, Appointment.COMPLETED)

        assert isinstance(excinfo.value, Conflict)
        assert excinfo.value.status_code == 409
        appointment.refresh_from_db()
        assert appointment.status == Appointment.CANCELLED


class TestDeleteAppointment:
    @pytest.mark.parametrize('actor', ['donor', 'hospital', 'super_admin'])
    def test_allowed(self, request, appointment, actor):
        fixture = request.getfixturevalue(actor)
        user = fixture if actor == 'super_admin' else fixture.user

        delete_appointment(user, appointment.pk)

        assert not Appointment.objects.filter(pk=appointment.pk).exists()

    def test_stranger_forbidden(self, appointment, make_donor, other_hospital):
        with pytest.raises(Forbidden):
            delete_appointment(make_donor('stranger').user, appointment.pk)
        with pytest.raises(Forbidden):
            delete_appointment(other_hospital.user, appointment.pk)
        assert Appointment.objects.filter(pk=appointment.pk).exists()

    def test_with_donation_conflicts(self, appointment, donor, hospital):
        Donation.objects.create(
            donor=donor,
            hospital=hospital,
            appointment=appointment,
            blood_type_donated='O-',
            units_donated=1,
            status=Donation.SUCCESSFUL,
        )
        with pytest.raises(Conflict):
            delete_appointment(hospital.user, appointment.pk)


def test_list_appointments_scoped_to_requester(appointment, donor, hospital, make_donor, other_hospital):
    stranger = make_donor('stranger')
    book_appointment(stranger.user, other_hospital.pk, tomorrow())

    assert list_appointments(donor.user) == [appointment]
    assert list_appointments(hospital.user) == [appointment]
    assert len(list_appointments(other_hospital.user)) == 1
