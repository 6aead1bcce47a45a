from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    DONOR = 'donor'
    HOSPITAL_ADMIN = 'hospital_admin'
    SUPER_ADMIN = 'super_admin'

    USER_TYPE_CHOICES = (
        (DONOR, 'Donor'),
        (HOSPITAL_ADMIN, 'Hospital Admin'),
        (SUPER_ADMIN, 'Super Admin'),
    )

    user_type = models.CharField(
        max_length=15,
        choices=USER_TYPE_CHOICES,
        default=DONOR
    )
    email = models.EmailField(unique=True)

    def __str__(self):
        return f"{self.username} ({self.user_type})"

    @property
    def is_donor(self):
        return self.user_type == self.DONOR

    @property
    def is_hospital_admin(self):
        return self.user_type == self.HOSPITAL_ADMIN

    @property
    def is_super_admin(self):
        return self.user_type == self.SUPER_ADMIN
