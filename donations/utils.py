import logging
from datetime import date, datetime

from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction
from django.utils import timezone

from accounts.decorators import require_role
from accounts.models import CustomUser
from bloodbridge.exceptions import (
    Conflict,
    DuplicateDonation,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from donors.models import DonorProfile
from hospitals.inventory import adjust_stock, validate_blood_type, validate_integer
from hospitals.models import BloodNeed, HospitalProfile, InventoryAdjustment
from hospitals.utils import get_acting_hospital
from .models import Appointment, Donation

# Logger setup
logger = logging.getLogger(__name__)

# Target statuses each role may move a scheduled appointment to
DONOR_TRANSITIONS = (Appointment.CANCELLED, Appointment.RESCHEDULED)
HOSPITAL_TRANSITIONS = (Appointment.COMPLETED, Appointment.NO_SHOW, Appointment.CANCELLED)


def get_acting_donor(user, using=DEFAULT_DB_ALIAS):
    require_role(user, CustomUser.DONOR)
    donor = DonorProfile.objects.using(using).filter(user=user).first()
    if donor is None:
        raise Forbidden("No donor profile is linked to this account.")
    return donor


# ============================================
# DONATION RECORDER
# ============================================

def _validate_donation_input(status, blood_type, units_donated, deferral_reason, donation_date):
    if status not in Donation.STATUSES:
        raise ValidationError(f"Invalid donation status: {status!r}.")
    validate_blood_type(blood_type)

    if status == Donation.SUCCESSFUL:
        if units_donated is None:
            raise ValidationError("Units donated is required for a successful donation.")
        validate_integer(units_donated, 'Units donated')
        if units_donated <= 0:
            raise ValidationError("Units donated must be a positive whole number.")
    else:
        if not deferral_reason or not str(deferral_reason).strip():
            raise ValidationError("A deferral reason is required when the donation was not successful.")
        units_donated = 0

    if donation_date is None:
        donation_date = timezone.localdate()
    elif isinstance(donation_date, datetime) or not isinstance(donation_date, date):
        raise ValidationError("Donation date must be a calendar date.")
    elif donation_date > timezone.localdate():
        raise ValidationError("Donation date cannot be in the future.")

    return units_donated, donation_date


def record_donation(user, donor_id, status, blood_type, units_donated=None, deferral_reason=None,
                    appointment_id=None, need_id=None, donation_date=None, using=DEFAULT_DB_ALIAS):
    """
    Record the outcome of a donation at the acting hospital.

    A successful donation updates, in the same transaction:
        - the donor's last donation date
        - the hospital inventory for the donated blood type
        - fulfilled units of the referenced need
        - the referenced appointment (scheduled -> completed)

    Raises:
        ValidationError, Forbidden, NotFound
        DuplicateDonation: the appointment already has a donation
    """
    hospital = get_acting_hospital(user, using)
    units_donated, donation_date = _validate_donation_input(
        status, blood_type, units_donated, deferral_reason, donation_date
    )

    with transaction.atomic(using=using):
        donor = DonorProfile.objects.using(using).select_for_update().filter(pk=donor_id).first()
        if donor is None:
            raise NotFound("Donor not found.")

        appointment = None
        if appointment_id is not None:
            appointment = (
                Appointment.objects.using(using)
                .select_for_update()
                .filter(pk=appointment_id)
                .first()
            )
            if appointment is None:
                raise NotFound("Appointment not found.")
            if appointment.hospital_id != hospital.pk:
                raise Forbidden("This appointment belongs to another hospital.")
            if appointment.donor_id != donor.pk:
                raise ValidationError("This appointment was booked by a different donor.")
            if Donation.objects.using(using).filter(appointment=appointment).exists():
                raise DuplicateDonation()

        blood_need = None
        if need_id is not None:
            blood_need = BloodNeed.objects.using(using).select_for_update().filter(pk=need_id).first()
            if blood_need is None:
                raise NotFound("Blood need not found.")
            if blood_need.hospital_id != hospital.pk:
                raise Forbidden("This blood need belongs to another hospital.")

        try:
            with transaction.atomic(using=using):
                donation = Donation.objects.using(using).create(
                    donor=donor,
                    hospital=hospital,
                    appointment=appointment,
                    blood_need=blood_need,
                    donation_date=donation_date,
                    blood_type_donated=blood_type,
                    units_donated=units_donated,
                    status=status,
                    deferral_reason='' if status == Donation.SUCCESSFUL else str(deferral_reason).strip(),
                )
        except IntegrityError:
            # Only a concurrent donation for the same appointment is a duplicate
            if (
                appointment is not None
                and Donation.objects.using(using).filter(appointment=appointment).exists()
            ):
                raise DuplicateDonation()
            raise

        if status == Donation.SUCCESSFUL:
            donor.last_donation_date = donation_date
            donor.save(using=using, update_fields=['last_donation_date', 'updated_at'])

            adjust_stock(
                hospital,
                blood_type,
                units_donated,
                reason=InventoryAdjustment.REASON_DONATION,
                donation=donation,
                using=using,
            )

            if blood_need is not None:
                blood_need.fulfilled_units += units_donated
                blood_need.refresh_fulfillment()
                blood_need.save(using=using, update_fields=['fulfilled_units', 'is_fulfilled', 'last_updated_at'])

        if appointment is not None and appointment.status == Appointment.SCHEDULED:
            appointment.status = Appointment.COMPLETED
            appointment.save(using=using, update_fields=['status', 'last_updated_at'])

    logger.info(
        f"Donation {donation.pk} recorded at hospital {hospital.pk}: donor {donor.pk}, "
        f"{units_donated} x {blood_type} ({status})"
    )
    return donation


def list_donations(user, using=DEFAULT_DB_ALIAS):
    require_role(user, CustomUser.DONOR, CustomUser.HOSPITAL_ADMIN)
    queryset = Donation.objects.using(using).select_related('donor', 'hospital')
    if user.is_donor:
        queryset = queryset.filter(donor__user=user)
    else:
        queryset = queryset.filter(hospital=get_acting_hospital(user, using))
    return list(queryset.order_by('-donation_date', '-created_at'))


# ============================================
# APPOINTMENT LEDGER
# ============================================

def _normalize_schedule(scheduled_at):
    if not isinstance(scheduled_at, datetime):
        raise ValidationError("Scheduled time must be a date and time.")
    if timezone.is_naive(scheduled_at):
        scheduled_at = timezone.make_aware(scheduled_at)
    if scheduled_at <= timezone.now():
        raise ValidationError("Appointments must be scheduled in the future.")
    return scheduled_at


def book_appointment(user, hospital_id, scheduled_at, need_id=None, notes=None, using=DEFAULT_DB_ALIAS):
    """Book a donation slot for the acting donor"""
    donor = get_acting_donor(user, using)
    scheduled_at = _normalize_schedule(scheduled_at)

    with transaction.atomic(using=using):
        hospital = HospitalProfile.objects.using(using).filter(pk=hospital_id).first()
        if hospital is None:
            raise NotFound("Hospital not found.")

        blood_need = None
        if need_id is not None:
            blood_need = BloodNeed.objects.using(using).filter(pk=need_id).first()
            if blood_need is None:
                raise NotFound("Blood need not found.")
            if blood_need.hospital_id != hospital.pk:
                raise ValidationError("The blood need was not posted by this hospital.")

        appointment = Appointment.objects.using(using).create(
            donor=donor,
            hospital=hospital,
            blood_need=blood_need,
            scheduled_at=scheduled_at,
            notes=notes or '',
        )

    logger.info(f"Donor {donor.pk} booked appointment {appointment.pk} at hospital {hospital.pk} for {scheduled_at}")
    return appointment


def _may_transition(user, appointment, status, using):
    if user.is_donor:
        return status in DONOR_TRANSITIONS and appointment.donor.user_id == user.pk
    if user.is_hospital_admin:
        hospital = HospitalProfile.objects.using(using).filter(user=user).first()
        return (
            status in HOSPITAL_TRANSITIONS
            and hospital is not None
            and appointment.hospital_id == hospital.pk
        )
    return False


def transition_appointment(user, appointment_id, status, using=DEFAULT_DB_ALIAS):
    """
    Move a scheduled appointment to its next status.

    Donors may cancel or reschedule their own appointments; hospital admins
    may complete, cancel or mark no-show appointments at their hospital.
    """
    require_role(user, CustomUser.DONOR, CustomUser.HOSPITAL_ADMIN, CustomUser.SUPER_ADMIN)
    if status not in Appointment.STATUSES:
        raise ValidationError(f"Invalid appointment status: {status!r}.")

    with transaction.atomic(using=using):
        appointment = (
            Appointment.objects.using(using)
            .select_for_update()
            .select_related('donor')
            .filter(pk=appointment_id)
            .first()
        )
        if appointment is None:
            raise NotFound("Appointment not found.")

        if not _may_transition(user, appointment, status, using):
            raise Forbidden(f"You are not allowed to mark this appointment as {status}.")

        if appointment.status != Appointment.SCHEDULED:
            raise InvalidTransition(
                f"Appointment is already {appointment.status} and cannot become {status}."
            )

        previous = appointment.status
        appointment.status = status
        appointment.save(using=using, update_fields=['status', 'last_updated_at'])

    logger.info(f"Appointment {appointment.pk}: {previous} -> {status} by user {user.pk}")
    return appointment


def delete_appointment(user, appointment_id, using=DEFAULT_DB_ALIAS):
    require_role(user, CustomUser.DONOR, CustomUser.HOSPITAL_ADMIN, CustomUser.SUPER_ADMIN)

    with transaction.atomic(using=using):
        appointment = (
            Appointment.objects.using(using)
            .select_for_update()
            .select_related('donor', 'hospital')
            .filter(pk=appointment_id)
            .first()
        )
        if appointment is None:
            raise NotFound("Appointment not found.")

        allowed = (
            user.is_super_admin
            or (user.is_donor and appointment.donor.user_id == user.pk)
            or (user.is_hospital_admin and appointment.hospital.user_id == user.pk)
        )
        if not allowed:
            raise Forbidden("You are not allowed to delete this appointment.")

        if Donation.objects.using(using).filter(appointment=appointment).exists():
            raise Conflict("A donation has been recorded for this appointment; it cannot be deleted.")

        appointment.delete(using=using)

    logger.info(f"Appointment {appointment_id} deleted by user {user.pk}")


def list_appointments(user, using=DEFAULT_DB_ALIAS):
    require_role(user, CustomUser.DONOR, CustomUser.HOSPITAL_ADMIN)
    queryset = Appointment.objects.using(using).select_related('donor', 'hospital')
    if user.is_donor:
        queryset = queryset.filter(donor__user=user)
    else:
        queryset = queryset.filter(hospital=get_acting_hospital(user, using))
    return list(queryset.order_by('-scheduled_at', '-created_at'))
