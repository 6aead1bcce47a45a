from django.db import models
from django.utils import timezone

from donors.models import BLOOD_TYPE_CHOICES


class Appointment(models.Model):
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    NO_SHOW = 'no_show'
    RESCHEDULED = 'rescheduled'

    STATUS_CHOICES = [
        (SCHEDULED, 'Scheduled'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
        (NO_SHOW, 'No Show'),
        (RESCHEDULED, 'Rescheduled'),
    ]
    STATUSES = [value for value, _ in STATUS_CHOICES]

    donor = models.ForeignKey(
        'donors.DonorProfile',
        on_delete=models.CASCADE,
        related_name='appointments'
    )
    hospital = models.ForeignKey(
        'hospitals.HospitalProfile',
        on_delete=models.CASCADE,
        related_name='appointments'
    )
    blood_need = models.ForeignKey(
        'hospitals.BloodNeed',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='appointments'
    )

    scheduled_at = models.DateTimeField()
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=SCHEDULED)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    last_updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.donor.full_name} @ {self.hospital.hospital_name} on {self.scheduled_at:%Y-%m-%d %H:%M} ({self.status})"

    class Meta:
        ordering = ['-scheduled_at']
        indexes = [
            models.Index(fields=['hospital', 'status'], name='appt_hospital_status_idx'),
            models.Index(fields=['donor', '-scheduled_at'], name='appt_donor_scheduled_idx'),
        ]


class Donation(models.Model):
    SUCCESSFUL = 'successful'
    DEFERRED = 'deferred'
    FAILED = 'failed'

    STATUS_CHOICES = [
        (SUCCESSFUL, 'Successful'),
        (DEFERRED, 'Deferred'),
        (FAILED, 'Failed'),
    ]
    STATUSES = [value for value, _ in STATUS_CHOICES]

    donor = models.ForeignKey(
        'donors.DonorProfile',
        on_delete=models.CASCADE,
        related_name='donations'
    )
    hospital = models.ForeignKey(
        'hospitals.HospitalProfile',
        on_delete=models.CASCADE,
        related_name='donations'
    )
    # unique: at most one donation per appointment
    appointment = models.OneToOneField(
        Appointment,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='donation'
    )
    blood_need = models.ForeignKey(
        'hospitals.BloodNeed',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='donations'
    )

    donation_date = models.DateField(default=timezone.localdate)
    blood_type_donated = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES)
    units_donated = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES)
    deferral_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.donor.full_name} | {self.donation_date} | {self.status}"

    class Meta:
        ordering = ['-donation_date', '-created_at']
