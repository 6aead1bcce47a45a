# api/serializers.py
"""
Request parsing and response shapes for the REST API.

Input serializers only coerce wire types (numbers, dates); the business rules
live in the engine functions the views call.
"""
from rest_framework import serializers

from donations.models import Appointment, Donation
from donors.models import DonorProfile
from hospitals.models import BloodNeed, HospitalProfile, InventoryEntry


# ============================================
# RESPONSES
# ============================================

class BloodNeedSerializer(serializers.ModelSerializer):
    """
    Serializer for BloodNeed with hospital details and the requester's distance
    """
    hospital_name = serializers.CharField(source='hospital.hospital_name', read_only=True)
    hospital_address = serializers.CharField(source='hospital.address', read_only=True)
    hospital_phone = serializers.CharField(source='hospital.phone', read_only=True)
    remaining_units = serializers.IntegerField(read_only=True)
    distance_km = serializers.SerializerMethodField()

    class Meta:
        model = BloodNeed
        fields = [
            'id',
            'hospital',
            'hospital_name',
            'hospital_address',
            'hospital_phone',
            'blood_type',
            'units_needed',
            'fulfilled_units',
            'remaining_units',
            'is_fulfilled',
            'urgency_level',
            'details',
            'expires_at',
            'posted_at',
            'last_updated_at',
            'distance_km',
        ]
        read_only_fields = fields

    def get_distance_km(self, obj):
        distance = getattr(obj, 'distance_km', None)
        return round(distance, 2) if distance is not None else None


class AppointmentSerializer(serializers.ModelSerializer):
    donor_name = serializers.CharField(source='donor.full_name', read_only=True)
    hospital_name = serializers.CharField(source='hospital.hospital_name', read_only=True)

    class Meta:
        model = Appointment
        fields = [
            'id',
            'donor',
            'donor_name',
            'hospital',
            'hospital_name',
            'blood_need',
            'scheduled_at',
            'status',
            'notes',
            'created_at',
            'last_updated_at',
        ]
        read_only_fields = fields


class DonationSerializer(serializers.ModelSerializer):
    """
    Serializer for Donation
    """
    donor_name = serializers.CharField(source='donor.full_name', read_only=True)
    hospital_name = serializers.CharField(source='hospital.hospital_name', read_only=True)

    class Meta:
        model = Donation
        fields = [
            'id',
            'donor',
            'donor_name',
            'hospital',
            'hospital_name',
            'appointment',
            'blood_need',
            'donation_date',
            'blood_type_donated',
            'units_donated',
            'status',
            'deferral_reason',
            'created_at',
        ]
        read_only_fields = fields


class InventoryEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = InventoryEntry
        fields = ['id', 'blood_type', 'units_in_stock', 'last_updated_at']
        read_only_fields = fields


class DonorProfileSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = DonorProfile
        fields = [
            'id',
            'email',
            'full_name',
            'blood_type',
            'phone',
            'latitude',
            'longitude',
            'last_donation_date',
            'is_available_for_alerts',
            'preferred_contact_method',
            'updated_at',
        ]
        read_only_fields = fields


class DonorSearchResultSerializer(serializers.ModelSerializer):
    """Short donor card shown to hospital staff"""
    email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = DonorProfile
        fields = ['id', 'email', 'full_name', 'blood_type', 'phone', 'last_donation_date']
        read_only_fields = fields


class HospitalProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = HospitalProfile
        fields = [
            'id',
            'hospital_name',
            'address',
            'phone',
            'contact_person',
            'contact_email',
            'latitude',
            'longitude',
            'updated_at',
        ]
        read_only_fields = fields


# ============================================
# REQUESTS
# ============================================

class BloodNeedCreateSerializer(serializers.Serializer):
    blood_type = serializers.CharField()
    units_needed = serializers.IntegerField()
    urgency_level = serializers.CharField()
    details = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)


class BloodNeedUpdateSerializer(serializers.Serializer):
    units_needed = serializers.IntegerField(required=False)
    urgency_level = serializers.CharField(required=False)
    details = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)
    fulfilled_units = serializers.IntegerField(required=False)


class ActiveNeedsQuerySerializer(serializers.Serializer):
    blood_type = serializers.CharField(required=False)
    max_distance_km = serializers.FloatField(required=False)


class AppointmentCreateSerializer(serializers.Serializer):
    hospital_id = serializers.IntegerField()
    scheduled_at = serializers.DateTimeField()
    need_id = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.CharField()


class DonationCreateSerializer(serializers.Serializer):
    donor_id = serializers.IntegerField()
    status = serializers.CharField()
    blood_type = serializers.CharField()
    units_donated = serializers.IntegerField(required=False, allow_null=True)
    deferral_reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    appointment_id = serializers.IntegerField(required=False, allow_null=True)
    need_id = serializers.IntegerField(required=False, allow_null=True)
    donation_date = serializers.DateField(required=False, allow_null=True)


class InventoryAdjustSerializer(serializers.Serializer):
    blood_type = serializers.CharField()
    delta = serializers.IntegerField()


class DonorProfileUpdateSerializer(serializers.Serializer):
    full_name = serializers.CharField(required=False)
    blood_type = serializers.CharField(required=False)
    phone = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    latitude = serializers.FloatField(required=False, allow_null=True)
    longitude = serializers.FloatField(required=False, allow_null=True)
    is_available_for_alerts = serializers.BooleanField(required=False)
    preferred_contact_method = serializers.CharField(required=False)


class HospitalProfileUpdateSerializer(serializers.Serializer):
    hospital_name = serializers.CharField(required=False)
    address = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    phone = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    contact_person = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    contact_email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    latitude = serializers.FloatField(required=False, allow_null=True)
    longitude = serializers.FloatField(required=False, allow_null=True)
