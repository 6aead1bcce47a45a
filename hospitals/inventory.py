# hospitals/inventory.py
"""
Inventory ledger: per-hospital, per-blood-type unit counters.

``adjust_stock`` is the only write path.  It runs inside
``transaction.atomic`` so it joins the caller's transaction when called from
the donation recorder, and it locks the (hospital, blood type) row with
SELECT ... FOR UPDATE so concurrent adjustments cannot lose updates.
"""
import logging

from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction

from bloodbridge.exceptions import InsufficientStock, NoSuchInventoryType, ValidationError
from donors.models import BLOOD_TYPES
from .models import InventoryAdjustment, InventoryEntry

logger = logging.getLogger(__name__)


def validate_blood_type(blood_type):
    if blood_type not in BLOOD_TYPES:
        raise ValidationError(f"Invalid blood type: {blood_type!r}.")


def validate_integer(value, field):
    # bool is an int subclass but never a valid unit count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number.")


def adjust_stock(hospital, blood_type, delta, reason=InventoryAdjustment.REASON_MANUAL,
                 donation=None, using=DEFAULT_DB_ALIAS):
    """
    Add (positive delta) or remove (negative delta) units for a blood type.

    Returns the new units_in_stock.

    Raises:
        ValidationError: bad blood type or non-integer delta
        InsufficientStock: deduction larger than the current stock
        NoSuchInventoryType: deduction from a blood type never stocked
    """
    validate_blood_type(blood_type)
    validate_integer(delta, 'Units change')

    with transaction.atomic(using=using):
        entry = (
            InventoryEntry.objects.using(using)
            .select_for_update()
            .filter(hospital=hospital, blood_type=blood_type)
            .first()
        )

        if entry is None:
            if delta < 0:
                raise NoSuchInventoryType(
                    f"Cannot deduct units from {blood_type}: no inventory recorded for this blood type."
                )
            entry = _create_entry(hospital, blood_type, delta, using)
            if entry is None:
                # Lost the creation race; the row exists now, update it instead
                entry = (
                    InventoryEntry.objects.using(using)
                    .select_for_update()
                    .get(hospital=hospital, blood_type=blood_type)
                )
                _apply(entry, delta, using)
        else:
            _apply(entry, delta, using)

        InventoryAdjustment.objects.using(using).create(
            entry=entry,
            delta=delta,
            resulting_stock=entry.units_in_stock,
            reason=reason,
            donation=donation,
        )

    logger.info(
        f"[Inventory Update] Hospital {hospital.pk}, Blood Type {blood_type} "
        f"changed by {delta} to {entry.units_in_stock} units ({reason})."
    )
    return entry.units_in_stock


def _apply(entry, delta, using):
    new_units = entry.units_in_stock + delta
    if new_units < 0:
        raise InsufficientStock(
            f"Cannot deduct {-delta} units of {entry.blood_type}: only {entry.units_in_stock} in stock."
        )
    entry.units_in_stock = new_units
    entry.save(using=using, update_fields=['units_in_stock', 'last_updated_at'])


def _create_entry(hospital, blood_type, units, using):
    try:
        with transaction.atomic(using=using):
            return InventoryEntry.objects.using(using).create(
                hospital=hospital,
                blood_type=blood_type,
                units_in_stock=units,
            )
    except IntegrityError:
        return None


def list_inventory(hospital, using=DEFAULT_DB_ALIAS):
    """Current stock levels of a hospital, ordered by blood type"""
    return list(
        InventoryEntry.objects.using(using)
        .filter(hospital=hospital)
        .order_by('blood_type')
    )
