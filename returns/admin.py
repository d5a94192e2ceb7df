from django.contrib import admin
from .models import DamageAssessment, DamagePhoto, ProductReturn


class DamagePhotoInline(admin.TabularInline):
    model = DamagePhoto
    extra = 0
    readonly_fields = ('created_at',)


@admin.register(ProductReturn)
class ProductReturnAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'rental_request', 'return_status', 'return_date',
        'initiated_by', 'created_at',
    )
    list_filter = ('return_status', 'return_date')
    search_fields = ('rental_request__customer__email',
                     'rental_request__product__title')
    readonly_fields = ('created_at', 'updated_at')
    raw_id_fields = ('rental_request', 'initiated_by')


@admin.register(DamageAssessment)
class DamageAssessmentAdmin(admin.ModelAdmin):
    list_display = (
        'product_return', 'severity', 'repair_cost', 'assessed_by',
        'created_at',
    )
    list_filter = ('severity',)
    raw_id_fields = ('product_return', 'assessed_by')
    inlines = [DamagePhotoInline]
