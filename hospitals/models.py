# hospitals/models.py
from django.conf import settings
from django.db import models
from django.utils import timezone

from donors.models import BLOOD_TYPE_CHOICES


class HospitalProfile(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='hospital_profile'
    )
    hospital_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    contact_person = models.CharField(max_length=200, blank=True)
    contact_email = models.EmailField(blank=True)

    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def __str__(self):
        return self.hospital_name

    class Meta:
        verbose_name = 'Hospital Profile'
        verbose_name_plural = 'Hospital Profiles'


class BloodNeed(models.Model):
    URGENCY_CHOICES = [
        ('critical', 'Critical - Life Threatening'),
        ('urgent', 'Urgent - Within 24 Hours'),
        ('normal', 'Normal - Within 48 Hours'),
    ]
    URGENCY_LEVELS = [value for value, _ in URGENCY_CHOICES]
    BROADCAST_URGENCIES = ('critical', 'urgent')

    hospital = models.ForeignKey(HospitalProfile, on_delete=models.CASCADE, related_name='blood_needs')
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES)
    units_needed = models.PositiveIntegerField()
    urgency_level = models.CharField(max_length=10, choices=URGENCY_CHOICES, default='normal')
    fulfilled_units = models.PositiveIntegerField(default=0)
    is_fulfilled = models.BooleanField(default=False)

    details = models.TextField(blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    posted_at = models.DateTimeField(default=timezone.now)
    last_updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.hospital.hospital_name} - {self.blood_type} ({self.urgency_level})"

    def refresh_fulfillment(self):
        """is_fulfilled always follows the unit counters"""
        self.is_fulfilled = self.fulfilled_units >= self.units_needed

    @property
    def is_active(self):
        if self.is_fulfilled:
            return False
        return self.expires_at is None or self.expires_at > timezone.now()

    @property
    def remaining_units(self):
        return max(self.units_needed - self.fulfilled_units, 0)

    class Meta:
        ordering = ['-posted_at']
        verbose_name = 'Blood Need'
        verbose_name_plural = 'Blood Needs'
        indexes = [
            models.Index(fields=['is_fulfilled', 'blood_type'], name='need_fulfilled_type_idx'),
        ]


class InventoryEntry(models.Model):
    hospital = models.ForeignKey(HospitalProfile, on_delete=models.CASCADE, related_name='inventory')
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES)
    units_in_stock = models.IntegerField(default=0)
    last_updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.hospital.hospital_name} - {self.blood_type}: {self.units_in_stock}"

    class Meta:
        ordering = ['hospital', 'blood_type']
        verbose_name = 'Inventory Entry'
        verbose_name_plural = 'Inventory Entries'
        constraints = [
            models.UniqueConstraint(fields=['hospital', 'blood_type'], name='unique_hospital_blood_type'),
            models.CheckConstraint(condition=models.Q(units_in_stock__gte=0), name='units_in_stock_non_negative'),
        ]


class InventoryAdjustment(models.Model):
    """Append-only history of applied stock changes"""
    REASON_MANUAL = 'manual'
    REASON_DONATION = 'donation'
    REASON_CHOICES = [
        (REASON_MANUAL, 'Manual adjustment'),
        (REASON_DONATION, 'Recorded donation'),
    ]

    entry = models.ForeignKey(InventoryEntry, on_delete=models.CASCADE, related_name='adjustments')
    delta = models.IntegerField()
    resulting_stock = models.IntegerField()
    reason = models.CharField(max_length=10, choices=REASON_CHOICES, default=REASON_MANUAL)
    donation = models.ForeignKey(
        'donations.Donation',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='inventory_adjustments'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        sign = '+' if self.delta >= 0 else ''
        return f"{self.entry} ({sign}{self.delta})"

    class Meta:
        ordering = ['-created_at', '-id']
