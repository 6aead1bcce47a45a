from datetime import timedelta

from django.conf import settings
from django.utils import timezone

# Defaults, overridable from settings
DONATION_INTERVAL_DAYS = 56
NOTIFICATION_RADIUS_KM = {
    'critical': 50,
    'urgent': 100,
}


def donation_interval_days() -> int:
    return getattr(settings, 'DONATION_INTERVAL_DAYS', DONATION_INTERVAL_DAYS)


def last_eligible_donation_date(today=None):
    """
    Latest last_donation_date that still lets a donor give again today.
    A donor is eligible when last_donation_date is strictly before this date.
    """
    today = today or timezone.localdate()
    return today - timedelta(days=donation_interval_days())


def notification_radius_km(urgency_level):
    """
    Alert radius for an urgency level, or None when the level is not broadcast
    (normal needs never trigger donor alerts).
    """
    radii = getattr(settings, 'NOTIFICATION_RADIUS_KM', NOTIFICATION_RADIUS_KM)
    return radii.get(urgency_level)


def has_recovered(donor, today=None) -> bool:
    """True when the donor never donated or the inter-donation interval has passed."""
    if not donor.last_donation_date:
        return True
    return donor.last_donation_date < last_eligible_donation_date(today)


def is_donor_eligible(donor, blood_need, today=None) -> bool:
    """
    Check if a donor may be alerted for a given blood need.

    Criteria:
    - Donor opted in to alerts
    - Donor blood type equals the needed blood type
    - Donor hasn't donated within the inter-donation interval
    - Donor has a stored location

    The distance check is done separately since it needs the alert radius.

    Args:
        donor (DonorProfile): Donor object
        blood_need (BloodNeed): Need being broadcast

    Returns:
        bool: True if eligible, False otherwise
    """
    if not donor.is_available_for_alerts:
        return False

    if donor.blood_type != blood_need.blood_type:
        return False

    if not has_recovered(donor, today):
        return False

    return donor.latitude is not None and donor.longitude is not None
