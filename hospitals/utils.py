import logging
import math
from datetime import datetime

from django.db import DEFAULT_DB_ALIAS, transaction
from django.db.models import Q
from django.utils import timezone

from accounts.decorators import require_role
from accounts.models import CustomUser
from algorithms.haversine import bounding_box, haversine_distance, haversine_distances
from algorithms.priority import rank_needs
from bloodbridge.exceptions import Forbidden, NotFound, ValidationError
from donors.models import DonorProfile
from donors.utils import validate_coordinates
from .inventory import validate_blood_type, validate_integer
from .models import BloodNeed, HospitalProfile

# Logger setup
logger = logging.getLogger(__name__)

UPDATABLE_NEED_FIELDS = ('units_needed', 'urgency_level', 'details', 'expires_at', 'fulfilled_units')


def get_acting_hospital(user, using=DEFAULT_DB_ALIAS):
    """Hospital profile administered by the user; Forbidden for anyone else."""
    require_role(user, CustomUser.HOSPITAL_ADMIN)
    hospital = HospitalProfile.objects.using(using).filter(user=user).first()
    if hospital is None:
        raise Forbidden("No hospital profile is linked to this account.")
    return hospital


def get_requesting_donor(user, using=DEFAULT_DB_ALIAS):
    """Donor profile of a donor requester, None for every other role."""
    if not user.is_donor:
        return None
    return DonorProfile.objects.using(using).filter(user=user).first()


def distance_km(donor, hospital):
    """Great-circle distance, or None when either side has no stored point."""
    if donor is None or not donor.has_location or not hospital.has_location:
        return None
    return haversine_distance(donor.latitude, donor.longitude, hospital.latitude, hospital.longitude)


# ============================================
# VALIDATION
# ============================================

def validate_positive_units(value, field='Units needed'):
    validate_integer(value, field)
    if value <= 0:
        raise ValidationError(f"{field} must be a positive whole number.")


def validate_urgency(urgency_level):
    if urgency_level not in BloodNeed.URGENCY_LEVELS:
        raise ValidationError(f"Invalid urgency level: {urgency_level!r}.")


def normalize_expiry(expires_at):
    if expires_at is None:
        return None
    if not isinstance(expires_at, datetime):
        raise ValidationError("Expiry must be a date and time.")
    if timezone.is_naive(expires_at):
        expires_at = timezone.make_aware(expires_at)
    if expires_at <= timezone.now():
        raise ValidationError("Expiry must be in the future.")
    return expires_at


def validate_max_distance(max_distance_km):
    if max_distance_km is None:
        return None
    if isinstance(max_distance_km, bool) or not isinstance(max_distance_km, (int, float)):
        raise ValidationError("Maximum distance must be a number of kilometers.")
    if not math.isfinite(max_distance_km) or max_distance_km <= 0:
        raise ValidationError("Maximum distance must be a positive number of kilometers.")
    return float(max_distance_km)


# ============================================
# NEED REGISTRY
# ============================================

def create_need(user, blood_type, units_needed, urgency_level, details=None, expires_at=None,
                using=DEFAULT_DB_ALIAS):
    """
    Post a new blood need for the acting hospital.

    Urgent and critical needs are broadcast to nearby donors once the row is
    committed (see hospitals.signals); the broadcast never affects creation.
    """
    hospital = get_acting_hospital(user, using)
    validate_blood_type(blood_type)
    validate_positive_units(units_needed)
    validate_urgency(urgency_level)
    expires_at = normalize_expiry(expires_at)

    with transaction.atomic(using=using):
        need = BloodNeed(
            hospital=hospital,
            blood_type=blood_type,
            units_needed=units_needed,
            urgency_level=urgency_level,
            details=details or '',
            expires_at=expires_at,
        )
        need.refresh_fulfillment()
        need.save(using=using)

    logger.info(f"Hospital {hospital.pk} posted need {need.pk}: {units_needed} x {blood_type} ({urgency_level})")
    return need


def _locked_own_need(user, need_id, using):
    hospital = get_acting_hospital(user, using)
    need = (
        BloodNeed.objects.using(using)
        .select_for_update()
        .filter(pk=need_id)
        .first()
    )
    if need is None:
        raise NotFound("Blood need not found.")
    if need.hospital_id != hospital.pk:
        raise Forbidden("You can only manage blood needs posted by your hospital.")
    return need


def update_need(user, need_id, using=DEFAULT_DB_ALIAS, **fields):
    """
    Partial update of a need by its hospital. is_fulfilled is recomputed
    from the counters, never taken from input.
    """
    unknown = set(fields) - set(UPDATABLE_NEED_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}.")
    if not fields:
        raise ValidationError("No fields provided for update.")

    if 'units_needed' in fields:
        validate_positive_units(fields['units_needed'])
    if 'urgency_level' in fields:
        validate_urgency(fields['urgency_level'])
    if 'fulfilled_units' in fields:
        validate_integer(fields['fulfilled_units'], 'Fulfilled units')
        if fields['fulfilled_units'] < 0:
            raise ValidationError("Fulfilled units cannot be negative.")
    if 'expires_at' in fields:
        fields['expires_at'] = normalize_expiry(fields['expires_at'])
    if 'details' in fields and fields['details'] is None:
        fields['details'] = ''

    with transaction.atomic(using=using):
        need = _locked_own_need(user, need_id, using)
        for name, value in fields.items():
            setattr(need, name, value)
        need.refresh_fulfillment()
        need.save(using=using)

    logger.info(f"Need {need.pk} updated: {', '.join(sorted(fields))}")
    return need


def delete_need(user, need_id, using=DEFAULT_DB_ALIAS):
    with transaction.atomic(using=using):
        need = _locked_own_need(user, need_id, using)
        need.delete(using=using)
    logger.info(f"Need {need_id} deleted")


def get_need(user, need_id, using=DEFAULT_DB_ALIAS):
    need = BloodNeed.objects.using(using).select_related('hospital').filter(pk=need_id).first()
    if need is None:
        raise NotFound("Blood need not found.")
    need.distance_km = distance_km(get_requesting_donor(user, using), need.hospital)
    return need


def list_hospital_needs(user, using=DEFAULT_DB_ALIAS):
    hospital = get_acting_hospital(user, using)
    needs = list(
        BloodNeed.objects.using(using)
        .select_related('hospital')
        .filter(hospital=hospital)
        .order_by('-posted_at')
    )
    for need in needs:
        need.distance_km = None
    return needs


# ============================================
# MATCHING QUERY
# ============================================

def active_needs_queryset(using=DEFAULT_DB_ALIAS):
    """Not fulfilled and not expired"""
    return (
        BloodNeed.objects.using(using)
        .select_related('hospital')
        .filter(is_fulfilled=False)
        .filter(Q(expires_at__isnull=True) | Q(expires_at__gt=timezone.now()))
    )


def list_active_needs(user, blood_type=None, max_distance_km=None, using=DEFAULT_DB_ALIAS):
    """
    Active blood needs for a requester, each annotated with ``distance_km``.

    Donors get distances from their stored location and may restrict results
    to max_distance_km (needs with unknown distance are then excluded).
    Other roles get no distances and the radius filter is ignored.
    Ordering: urgency, then distance (donors only), then newest first.
    """
    if blood_type is not None:
        validate_blood_type(blood_type)
    max_distance_km = validate_max_distance(max_distance_km)

    queryset = active_needs_queryset(using)
    if blood_type:
        queryset = queryset.filter(blood_type=blood_type)

    donor = get_requesting_donor(user, using)
    if donor is None:
        needs = list(queryset)
        for need in needs:
            need.distance_km = None
        return rank_needs(needs, by_distance=False)

    if max_distance_km is not None:
        if not donor.has_location:
            return []
        min_lat, max_lat, min_lon, max_lon = bounding_box(donor.latitude, donor.longitude, max_distance_km)
        queryset = queryset.filter(
            hospital__latitude__gte=min_lat,
            hospital__latitude__lte=max_lat,
            hospital__longitude__gte=min_lon,
            hospital__longitude__lte=max_lon,
        )

    needs = list(queryset)
    _annotate_distances(donor, needs)

    if max_distance_km is not None:
        needs = [need for need in needs if need.distance_km is not None and need.distance_km <= max_distance_km]

    return rank_needs(needs, by_distance=True)


def _annotate_distances(donor, needs):
    for need in needs:
        need.distance_km = None
    if not donor.has_location:
        return

    located = [need for need in needs if need.hospital.has_location]
    if not located:
        return

    distances = haversine_distances(
        donor.latitude,
        donor.longitude,
        [need.hospital.latitude for need in located],
        [need.hospital.longitude for need in located],
    )
    for need, distance in zip(located, distances):
        need.distance_km = float(distance)


# ============================================
# HOSPITAL PROFILE
# ============================================

UPDATABLE_HOSPITAL_FIELDS = (
    'hospital_name',
    'address',
    'phone',
    'contact_person',
    'contact_email',
    'latitude',
    'longitude',
)


def get_hospital_profile(user, using=DEFAULT_DB_ALIAS):
    require_role(user, CustomUser.HOSPITAL_ADMIN)
    hospital = HospitalProfile.objects.using(using).filter(user=user).first()
    if hospital is None:
        raise NotFound("Hospital profile not found.")
    return hospital


def update_hospital_profile(user, using=DEFAULT_DB_ALIAS, **fields):
    """Partial update of the acting hospital's profile; coordinates change together."""
    unknown = set(fields) - set(UPDATABLE_HOSPITAL_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}.")
    if not fields:
        raise ValidationError("No fields provided for update.")

    for name in ('hospital_name', 'address', 'phone', 'contact_person', 'contact_email'):
        if name in fields:
            fields[name] = (fields[name] or '').strip()
    if 'hospital_name' in fields and not fields['hospital_name']:
        raise ValidationError("Hospital name cannot be blank.")
    if 'latitude' in fields or 'longitude' in fields:
        if 'latitude' not in fields or 'longitude' not in fields:
            raise ValidationError("Latitude and longitude must be provided together.")
        validate_coordinates(fields['latitude'], fields['longitude'])

    with transaction.atomic(using=using):
        hospital = get_hospital_profile(user, using)
        for name, value in fields.items():
            setattr(hospital, name, value)
        hospital.save(using=using, update_fields=[*fields, 'updated_at'])

    logger.info(f"Hospital profile {hospital.pk} updated: {', '.join(sorted(fields))}")
    return hospital
