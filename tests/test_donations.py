from datetime import timedelta

import pytest
from django.db import IntegrityError
from django.utils import timezone

from bloodbridge.exceptions import DuplicateDonation, Forbidden, InsufficientStock, NotFound, ValidationError
from donations import utils as donation_utils
from donations.models import Appointment, Donation
from donations.utils import list_donations, record_donation
from hospitals.inventory import adjust_stock
from hospitals.models import InventoryAdjustment, InventoryEntry
from hospitals.utils import create_need

pytestmark = pytest.mark.django_db


def stock(hospital, blood_type='O-'):
    entry = InventoryEntry.objects.filter(hospital=hospital, blood_type=blood_type).first()
    return entry.units_in_stock if entry else 0


def record(hospital, donor, **kwargs):
    kwargs.setdefault('status', Donation.SUCCESSFUL)
    kwargs.setdefault('blood_type', 'O-')
    if kwargs['status'] == Donation.SUCCESSFUL:
        kwargs.setdefault('units_donated', 1)
    return record_donation(hospital.user, donor.pk, **kwargs)


def test_successful_donation_from_appointment(hospital, donor, appointment):
    donation = record(hospital, donor, appointment_id=appointment.pk)

    appointment.refresh_from_db()
    donor.refresh_from_db()
    assert appointment.status == Appointment.COMPLETED
    assert stock(hospital) == 1
    assert donor.last_donation_date == timezone.localdate()
    assert donation.appointment == appointment

    adjustment = InventoryAdjustment.objects.get()
    assert adjustment.reason == InventoryAdjustment.REASON_DONATION
    assert adjustment.donation == donation


def test_second_donation_for_appointment_rejected(hospital, donor, appointment):
    record(hospital, donor, appointment_id=appointment.pk)

    with pytest.raises(DuplicateDonation) as excinfo:
        record(hospital, donor, appointment_id=appointment.pk)

    assert excinfo.value.status_code == 409
    assert Donation.objects.count() == 1
    assert stock(hospital) == 1


def test_other_integrity_errors_are_not_duplicates(hospital, donor, appointment, monkeypatch):
    def rejected_insert(self, *args, **kwargs):
        raise IntegrityError("CHECK constraint failed: units_donated")

    monkeypatch.setattr(Donation, 'save', rejected_insert)

    with pytest.raises(IntegrityError):
        record(hospital, donor, appointment_id=appointment.pk)

    appointment.refresh_from_db()
    assert appointment.status == Appointment.SCHEDULED
    assert stock(hospital) == 0


def test_donation_fulfils_need(hospital, donor, make_donor):
    need = create_need(hospital.user, 'O-', 3, 'urgent')

    record(hospital, donor, need_id=need.pk, units_donated=2)
    need.refresh_from_db()
    assert (need.fulfilled_units, need.is_fulfilled) == (2, False)

    record(hospital, make_donor('second'), need_id=need.pk, units_donated=2)
    need.refresh_from_db()
    assert (need.fulfilled_units, need.is_fulfilled) == (4, True)


def test_deferred_donation_changes_nothing_but_appointment(hospital, donor, appointment):
    need = create_need(hospital.user, 'O-', 1, 'normal')

    donation = record(
        hospital, donor,
        status=Donation.DEFERRED,
        deferral_reason='  Low haemoglobin ',
        units_donated=3,
        appointment_id=appointment.pk,
        need_id=need.pk,
    )

    assert donation.units_donated == 0
    assert donation.deferral_reason == 'Low haemoglobin'
    donor.refresh_from_db()
    need.refresh_from_db()
    appointment.refresh_from_db()
    assert donor.last_donation_date is None
    assert need.fulfilled_units == 0
    assert stock(hospital) == 0
    assert appointment.status == Appointment.COMPLETED


def test_non_scheduled_appointment_left_alone(hospital, donor, appointment):
    Appointment.objects.filter(pk=appointment.pk).update(status=Appointment.NO_SHOW)

    record(hospital, donor, appointment_id=appointment.pk)

    appointment.refresh_from_db()
    assert appointment.status == Appointment.NO_SHOW


def test_walk_in_donation_without_references(hospital, donor):
    donation = record(hospital, donor, units_donated=2, blood_type='O-')
    assert donation.appointment is None
    assert stock(hospital) == 2


@pytest.mark.parametrize('kwargs', [
    {'status': 'lost'},
    {'blood_type': 'AB'},
    {'units_donated': 0},
    {'units_donated': -1},
    {'units_donated': True},
    {'units_donated': 1.5},
    {'units_donated': None},
    {'status': Donation.FAILED},
    {'status': Donation.DEFERRED, 'deferral_reason': '   '},
    {'donation_date': timezone.localdate() + timedelta(days=1)},
    {'donation_date': '2024-01-01'},
])
def test_validation(hospital, donor, kwargs):
    with pytest.raises(ValidationError):
        record(hospital, donor, **kwargs)
    assert not Donation.objects.exists()


def test_only_hospital_admins(donor, super_admin):
    with pytest.raises(Forbidden):
        record_donation(donor.user, donor.pk, Donation.SUCCESSFUL, 'O-', units_donated=1)
    with pytest.raises(Forbidden):
        record_donation(super_admin, donor.pk, Donation.SUCCESSFUL, 'O-', units_donated=1)


def test_unknown_references(hospital, donor):
    with pytest.raises(NotFound):
        record_donation(hospital.user, 999999, Donation.SUCCESSFUL, 'O-', units_donated=1)
    with pytest.raises(NotFound):
        record(hospital, donor, appointment_id=999999)
    with pytest.raises(NotFound):
        record(hospital, donor, need_id=999999)


def test_appointment_of_other_hospital(other_hospital, donor, appointment):
    with pytest.raises(Forbidden):
        record(other_hospital, donor, appointment_id=appointment.pk)


def test_appointment_of_other_donor(hospital, appointment, make_donor):
    with pytest.raises(ValidationError):
        record(hospital, make_donor('someone'), appointment_id=appointment.pk)


def test_need_of_other_hospital(hospital, other_hospital, donor):
    need = create_need(other_hospital.user, 'O-', 1, 'normal')
    with pytest.raises(Forbidden):
        record(hospital, donor, need_id=need.pk)


def test_failure_rolls_back_everything(hospital, donor, appointment, monkeypatch):
    need = create_need(hospital.user, 'O-', 2, 'normal')

    def broken_adjust(*args, **kwargs):
        adjust_stock(*args, **kwargs)
        raise InsufficientStock("simulated")

    monkeypatch.setattr(donation_utils, 'adjust_stock', broken_adjust)

    with pytest.raises(InsufficientStock):
        record(hospital, donor, appointment_id=appointment.pk, need_id=need.pk)

    donor.refresh_from_db()
    need.refresh_from_db()
    appointment.refresh_from_db()
    assert not Donation.objects.exists()
    assert stock(hospital) == 0
    assert donor.last_donation_date is None
    assert need.fulfilled_units == 0
    assert appointment.status == Appointment.SCHEDULED


def test_list_donations_scoped(hospital, other_hospital, donor, make_donor):
    mine = record(hospital, donor)
    record(other_hospital, make_donor('stranger'))

    assert list_donations(donor.user) == [mine]
    assert list_donations(hospital.user) == [mine]
