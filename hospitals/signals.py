# hospitals/signals.py
"""
Hand urgent and critical blood needs to the notification task once committed
"""
import logging
from functools import partial

from django.db import DEFAULT_DB_ALIAS, transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from donors.tasks import dispatch_need_notifications
from hospitals.models import BloodNeed

logger = logging.getLogger(__name__)


@receiver(post_save, sender=BloodNeed)
def broadcast_new_need(sender, instance, created, using, **kwargs):
    """
    Queue donor alerts for a newly created urgent/critical need.
    Runs after the surrounding transaction commits so the worker always sees
    the row, and a rolled back need is never broadcast.
    """
    if created and instance.urgency_level in BloodNeed.BROADCAST_URGENCIES:
        transaction.on_commit(partial(enqueue_need_notifications, instance.pk, using), using=using)


def enqueue_need_notifications(need_id, using=DEFAULT_DB_ALIAS):
    try:
        dispatch_need_notifications.delay(need_id, using=using)
    except Exception:
        # Broker unavailable; the need itself is already committed
        logger.exception(f"Could not queue notifications for blood need #{need_id}")
    else:
        logger.info(f"Auto-notification triggered for blood need #{need_id}")
