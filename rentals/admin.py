from django.contrib import admin
from .models import RentalRequest


@admin.register(RentalRequest)
class RentalRequestAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'customer', 'product', 'status', 'start_date', 'end_date',
        'rental_period_unit', 'rental_period', 'price', 'created_at',
    ]
    list_filter = ['status', 'rental_period_unit', 'start_date', 'created_at'] # noqa
    search_fields = ['customer__email', 'product__title', 'pickup_location']
    readonly_fields = ['id', 'status_changed_at', 'created_at', 'updated_at']
    raw_id_fields = ['customer', 'product']
    date_hierarchy = 'start_date'
    list_per_page = 25

    fieldsets = (
        ('Request', {
            'fields': ('id', 'customer', 'product', 'status',
                       'status_changed_at')
        }),
        ('Rental Period', {
            'fields': ('start_date', 'end_date', 'rental_period_unit',
                       'rental_period')
        }),
        ('Pricing', {
            'fields': ('price',)
        }),
        ('Locations', {
            'fields': ('pickup_location', 'return_location')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
