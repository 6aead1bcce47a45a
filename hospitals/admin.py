# hospitals/admin.py
from django.contrib import admin
from django.utils.html import format_html

from .models import BloodNeed, HospitalProfile, InventoryAdjustment, InventoryEntry


@admin.register(BloodNeed)
class BloodNeedAdmin(admin.ModelAdmin):
    list_display = [
        'id',
        'hospital_name',
        'blood_type',
        'urgency_level',
        'units_progress',
        'is_fulfilled',
        'expires_at',
        'posted_at',
    ]
    list_filter = ['is_fulfilled', 'urgency_level', 'blood_type', 'posted_at']
    search_fields = ['hospital__hospital_name', 'details']
    readonly_fields = ['is_fulfilled', 'posted_at', 'last_updated_at']

    fieldsets = (
        ('Need', {
            'fields': ('hospital', 'blood_type', 'units_needed', 'fulfilled_units', 'is_fulfilled',
                       'urgency_level', 'details', 'expires_at')
        }),
        ('Timestamps', {
            'fields': ('posted_at', 'last_updated_at'),
            'classes': ('collapse',)
        }),
    )

    def hospital_name(self, obj):
        return obj.hospital.hospital_name
    hospital_name.short_description = 'Hospital'

    def units_progress(self, obj):
        color = 'green' if obj.is_fulfilled else 'orange'
        return format_html(
            '<span style="color: {};">{} / {}</span>',
            color, obj.fulfilled_units, obj.units_needed
        )
    units_progress.short_description = 'Fulfilled'

    def save_model(self, request, obj, form, change):
        obj.refresh_fulfillment()
        super().save_model(request, obj, form, change)


class InventoryAdjustmentInline(admin.TabularInline):
    model = InventoryAdjustment
    extra = 0
    can_delete = False
    readonly_fields = ['delta', 'resulting_stock', 'reason', 'donation', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(InventoryEntry)
class InventoryEntryAdmin(admin.ModelAdmin):
    """Stock only changes through recorded adjustments"""
    list_display = ['hospital', 'blood_type', 'units_in_stock', 'last_updated_at']
    list_filter = ['blood_type']
    search_fields = ['hospital__hospital_name']
    readonly_fields = ['hospital', 'blood_type', 'units_in_stock', 'last_updated_at']
    inlines = [InventoryAdjustmentInline]

    def has_add_permission(self, request):
        return False


@admin.register(HospitalProfile)
class HospitalProfileAdmin(admin.ModelAdmin):
    list_display = ['hospital_name', 'phone', 'address', 'has_location_display', 'total_needs']
    list_filter = ['created_at']
    search_fields = ['hospital_name', 'phone', 'address']

    @admin.display(boolean=True, description='Located')
    def has_location_display(self, obj):
        return obj.has_location

    def total_needs(self, obj):
        total = obj.blood_needs.count()
        open_needs = obj.blood_needs.filter(is_fulfilled=False).count()

        return format_html(
            'Total: {} | Open: {}',
            total, open_needs
        )
    total_needs.short_description = 'Needs'
