from django.conf import settings
from django.db import models

BLOOD_TYPE_CHOICES = [
    ('A+', 'A+'), ('A-', 'A-'),
    ('B+', 'B+'), ('B-', 'B-'),
    ('O+', 'O+'), ('O-', 'O-'),
    ('AB+', 'AB+'), ('AB-', 'AB-'),
]
BLOOD_TYPES = [value for value, _ in BLOOD_TYPE_CHOICES]


# ---------------------------
# Donor Profile
# ---------------------------
class DonorProfile(models.Model):
    CONTACT_EMAIL = 'email'
    CONTACT_SMS = 'sms'
    CONTACT_METHOD_CHOICES = [
        (CONTACT_EMAIL, 'Email'),
        (CONTACT_SMS, 'SMS'),
    ]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='donor_profile'
    )

    full_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, blank=True, db_index=True)
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES)

    # Geolocation (optional)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    last_donation_date = models.DateField(null=True, blank=True)
    is_available_for_alerts = models.BooleanField(default=True)
    preferred_contact_method = models.CharField(
        max_length=5,
        choices=CONTACT_METHOD_CHOICES,
        default=CONTACT_EMAIL
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def __str__(self):
        return f"{self.full_name} ({self.blood_type})"

    class Meta:
        verbose_name = "Donor Profile"
        verbose_name_plural = "Donor Profiles"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['blood_type', 'is_available_for_alerts'], name='donor_blood_alert_idx'),
            models.Index(fields=['latitude', 'longitude'], name='donor_location_idx'),
        ]


class Notification(models.Model):
    """One row per attempt to alert a donor about a blood need. Never updated."""
    STATUS_SENT = 'sent'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = [
        (STATUS_SENT, 'Sent'),
        (STATUS_FAILED, 'Failed'),
    ]

    donor = models.ForeignKey(
        DonorProfile,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    blood_need = models.ForeignKey(
        'hospitals.BloodNeed',
        on_delete=models.CASCADE,
        related_name='notifications'
    )

    channel = models.CharField(max_length=5, choices=DonorProfile.CONTACT_METHOD_CHOICES)
    message = models.TextField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES)
    distance = models.FloatField(null=True, blank=True, help_text="Distance in km")
    provider_ref = models.CharField(max_length=100, blank=True)
    error = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Notification → {self.donor.full_name} | Need #{self.blood_need_id} via {self.channel} ({self.status})"

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['blood_need', 'status'], name='notification_need_status_idx'),
            models.Index(fields=['donor', '-created_at'], name='notification_donor_idx'),
        ]
