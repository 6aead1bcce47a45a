from django.contrib import admin

from .models import Appointment, Donation


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display  = ['donor', 'hospital', 'scheduled_at', 'status', 'blood_need']
    list_filter   = ['status', 'scheduled_at']
    search_fields = ['donor__full_name', 'hospital__hospital_name']
    ordering      = ['-scheduled_at']
    readonly_fields = ['created_at', 'last_updated_at']


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    """Donations are immutable once recorded"""
    list_display  = ['donor', 'hospital', 'donation_date', 'blood_type_donated', 'units_donated', 'status']
    list_filter   = ['status', 'blood_type_donated', 'donation_date']
    search_fields = ['donor__full_name', 'hospital__hospital_name']
    ordering      = ['-donation_date']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
