from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        'title', 'owner', 'category', 'rental_rate', 'currency', 'status',
        'created_at',
    )
    list_filter = ('status', 'category', 'created_at')
    search_fields = ('title', 'description', 'owner__email')
    readonly_fields = ('created_at', 'updated_at')
    raw_id_fields = ('owner',)
    list_per_page = 25
