import logging
import math

from django.db import DEFAULT_DB_ALIAS, transaction
from django.db.models import Q

from accounts.decorators import require_role
from accounts.models import CustomUser
from algorithms.eligibility import is_donor_eligible, last_eligible_donation_date
from algorithms.haversine import bounding_box, find_nearby
from bloodbridge.exceptions import NotFound, ValidationError
from donors.models import DonorProfile
from hospitals.inventory import validate_blood_type

# Logger setup
logger = logging.getLogger(__name__)


def eligible_donors_queryset(blood_need, today=None, using=DEFAULT_DB_ALIAS):
    """
    SQL side of the eligibility rules (see algorithms.eligibility):
    same blood type, opted in to alerts, recovered from the last donation,
    and located.
    """
    return (
        DonorProfile.objects.using(using)
        .select_related('user')
        .filter(
            blood_type=blood_need.blood_type,
            is_available_for_alerts=True,
            latitude__isnull=False,
            longitude__isnull=False,
        )
        .filter(
            Q(last_donation_date__isnull=True) |
            Q(last_donation_date__lt=last_eligible_donation_date(today))
        )
    )


def find_eligible_donors(blood_need, radius_km, today=None, using=DEFAULT_DB_ALIAS):
    """
    Donors who may be alerted for a blood need, nearest first.

    Returns:
        List of tuples: (donor, distance_km)
    """
    hospital = blood_need.hospital
    if not hospital.has_location:
        logger.warning(f"Hospital {hospital.pk} has no location; cannot match donors for need {blood_need.pk}")
        return []

    min_lat, max_lat, min_lon, max_lon = bounding_box(hospital.latitude, hospital.longitude, radius_km)
    candidates = eligible_donors_queryset(blood_need, today, using).filter(
        latitude__gte=min_lat,
        latitude__lte=max_lat,
        longitude__gte=min_lon,
        longitude__lte=max_lon,
    )

    # Re-check in Python so the SQL filter and the policy cannot drift apart
    candidates = [donor for donor in candidates if is_donor_eligible(donor, blood_need, today)]

    matched = find_nearby(hospital.latitude, hospital.longitude, candidates, radius_km)
    logger.info(f"{len(matched)} donors within {radius_km} km for blood need {blood_need.pk}")
    return matched


def choose_channel(donor):
    """
    Contact channel and target for a donor, or (None, None) when the donor
    cannot be reached. SMS needs a phone number; everything else goes by email.
    """
    if donor.preferred_contact_method == DonorProfile.CONTACT_SMS and donor.phone:
        return DonorProfile.CONTACT_SMS, donor.phone
    if donor.user.email:
        return DonorProfile.CONTACT_EMAIL, donor.user.email
    return None, None


def build_alert_message(donor, blood_need, distance):
    hospital = blood_need.hospital
    return (
        f"Urgent need for {blood_need.blood_type} blood at {hospital.hospital_name}. "
        f"{blood_need.units_needed} units required ({blood_need.urgency_level}). "
        f"The hospital is approximately {round(distance)} km away. "
        f"Please consider donating."
    )


def build_alert_subject(blood_need):
    return f"Urgent Blood Donation Needed: {blood_need.blood_type} at {blood_need.hospital.hospital_name}"


# ============================================
# DONOR PROFILE
# ============================================

UPDATABLE_PROFILE_FIELDS = (
    'full_name',
    'blood_type',
    'phone',
    'latitude',
    'longitude',
    'is_available_for_alerts',
    'preferred_contact_method',
)
SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 10


def validate_coordinates(latitude, longitude):
    """
    Both coordinates or neither; latitude within [-90, 90] and longitude
    within [-180, 180].
    """
    if (latitude is None) != (longitude is None):
        raise ValidationError("Latitude and longitude must be provided together.")
    if latitude is None:
        return
    for value, name, limit in ((latitude, 'Latitude', 90), (longitude, 'Longitude', 180)):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValidationError(f"{name} must be a number.")
        if not -limit <= value <= limit:
            raise ValidationError(f"{name} must be between -{limit} and {limit}.")


def get_donor_profile(user, using=DEFAULT_DB_ALIAS):
    require_role(user, CustomUser.DONOR)
    donor = DonorProfile.objects.using(using).select_related('user').filter(user=user).first()
    if donor is None:
        raise NotFound("Donor profile not found.")
    return donor


def update_donor_profile(user, using=DEFAULT_DB_ALIAS, **fields):
    """
    Partial update of the acting donor's own profile.

    A location change needs both coordinates. last_donation_date is only
    written by the donation recorder.
    """
    unknown = set(fields) - set(UPDATABLE_PROFILE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}.")
    if not fields:
        raise ValidationError("No fields provided for update.")

    if 'full_name' in fields:
        fields['full_name'] = (fields['full_name'] or '').strip()
        if not fields['full_name']:
            raise ValidationError("Full name cannot be blank.")
    if 'blood_type' in fields:
        validate_blood_type(fields['blood_type'])
    if 'phone' in fields:
        fields['phone'] = (fields['phone'] or '').strip()
    if 'latitude' in fields or 'longitude' in fields:
        if 'latitude' not in fields or 'longitude' not in fields:
            raise ValidationError("Latitude and longitude must be provided together.")
        validate_coordinates(fields['latitude'], fields['longitude'])
    if 'is_available_for_alerts' in fields and not isinstance(fields['is_available_for_alerts'], bool):
        raise ValidationError("Alert availability must be true or false.")
    if 'preferred_contact_method' in fields:
        methods = [value for value, _ in DonorProfile.CONTACT_METHOD_CHOICES]
        if fields['preferred_contact_method'] not in methods:
            raise ValidationError(f"Invalid contact method: {fields['preferred_contact_method']!r}.")

    with transaction.atomic(using=using):
        donor = get_donor_profile(user, using)
        for name, value in fields.items():
            setattr(donor, name, value)
        donor.save(using=using, update_fields=[*fields, 'updated_at'])

    logger.info(f"Donor profile {donor.pk} updated: {', '.join(sorted(fields))}")
    return donor


def search_donors(user, q, limit=SEARCH_LIMIT, using=DEFAULT_DB_ALIAS):
    """
    Donor lookup for hospital staff: case-insensitive match on name, email
    or phone. The query must have at least two characters after trimming.
    """
    require_role(user, CustomUser.HOSPITAL_ADMIN)
    q = (q or '').strip()
    if len(q) < SEARCH_MIN_LENGTH:
        raise ValidationError(f"Search query must be at least {SEARCH_MIN_LENGTH} characters.")

    return list(
        DonorProfile.objects.using(using)
        .select_related('user')
        .filter(user__user_type=CustomUser.DONOR)
        .filter(
            Q(full_name__icontains=q) |
            Q(user__email__icontains=q) |
            Q(phone__icontains=q)
        )
        .order_by('full_name', 'pk')[:limit]
    )
