from django.contrib import admin

from .models import DonorProfile, Notification


@admin.register(DonorProfile)
class DonorProfileAdmin(admin.ModelAdmin):
    list_display   = ['full_name', 'blood_type', 'last_donation_date', 'is_available_for_alerts', 'preferred_contact_method', 'has_location_display']
    list_filter    = ['blood_type', 'is_available_for_alerts', 'preferred_contact_method']
    search_fields  = ['full_name', 'user__username', 'user__email', 'phone']
    ordering       = ['full_name']
    readonly_fields = ['last_donation_date', 'created_at', 'updated_at']

    fieldsets = (
        ('Personal Info', {
            'fields': ('user', 'full_name', 'phone', 'blood_type')
        }),
        ('Location', {
            'fields': ('latitude', 'longitude')
        }),
        ('Alerts', {
            'fields': ('is_available_for_alerts', 'preferred_contact_method', 'last_donation_date')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    @admin.display(boolean=True, description='Located')
    def has_location_display(self, obj):
        return obj.has_location


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """Dispatch attempts are an audit trail: read only"""
    list_display  = ['donor', 'blood_need', 'channel', 'status', 'distance', 'created_at']
    list_filter   = ['status', 'channel']
    search_fields = ['donor__full_name', 'blood_need__hospital__hospital_name', 'provider_ref']
    ordering      = ['-created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
