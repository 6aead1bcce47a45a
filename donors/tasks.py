# donors/tasks.py
"""
Celery tasks for automatic donor notifications
"""
import logging

from celery import shared_task
from django.db import DEFAULT_DB_ALIAS

from algorithms.eligibility import notification_radius_km
from donors.channels import get_sender
from donors.models import Notification
from donors.utils import build_alert_message, build_alert_subject, choose_channel, find_eligible_donors
from hospitals.models import BloodNeed

logger = logging.getLogger(__name__)


@shared_task
def dispatch_need_notifications(need_id, using=DEFAULT_DB_ALIAS):
    """
    Alert eligible donors near the hospital of an urgent or critical need.
    Called after the BloodNeed row is committed on the ``using`` database.

    Each donor is handled on its own: a failing sender or a failing write
    never stops the remaining donors.
    """
    summary = {'need': need_id, 'eligible': 0, 'sent': 0, 'failed': 0, 'skipped': 0}

    blood_need = BloodNeed.objects.using(using).select_related('hospital').filter(pk=need_id).first()
    if blood_need is None:
        logger.warning(f"Blood need {need_id} not found; nothing to dispatch")
        return summary

    radius_km = notification_radius_km(blood_need.urgency_level)
    if radius_km is None:
        logger.info(f"Blood need {need_id} is {blood_need.urgency_level}; no broadcast")
        return summary

    matched = find_eligible_donors(blood_need, radius_km, using=using)
    summary['eligible'] = len(matched)

    senders = {}
    for donor, distance in matched:
        channel, target = choose_channel(donor)
        if channel is None:
            logger.debug(f"Donor {donor.pk} has no reachable contact; skipped")
            summary['skipped'] += 1
            continue

        message = build_alert_message(donor, blood_need, distance)
        try:
            if channel not in senders:
                senders[channel] = get_sender(channel)
            result = senders[channel].send(target, message, subject=build_alert_subject(blood_need))
            success, provider_ref, error = result.success, result.provider_ref, result.error
        except Exception as e:
            logger.exception(f"Sending {channel} alert to donor {donor.pk} raised")
            success, provider_ref, error = False, '', str(e)

        try:
            Notification.objects.using(using).create(
                donor=donor,
                blood_need=blood_need,
                channel=channel,
                message=message,
                status=Notification.STATUS_SENT if success else Notification.STATUS_FAILED,
                distance=distance,
                provider_ref=provider_ref or '',
                error=error or '',
            )
        except Exception:
            logger.exception(f"Could not record notification for donor {donor.pk}, need {need_id}")

        if success:
            summary['sent'] += 1
            logger.info(f"Alerted donor {donor.pk} by {channel} for need {need_id} ({distance:.2f} km)")
        else:
            summary['failed'] += 1
            logger.warning(f"Alert to donor {donor.pk} by {channel} failed: {error}")

    logger.info(
        f"Dispatch for need {need_id}: {summary['eligible']} eligible, "
        f"{summary['sent']} sent, {summary['failed']} failed, {summary['skipped']} skipped"
    )
    return summary
