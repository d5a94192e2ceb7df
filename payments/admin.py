from django.contrib import admin
from .models import Invoice, InvoiceDownload, Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'rental_request', 'payment_method', 'amount', 'currency',
        'payment_status', 'payment_date', 'created_at',
    )
    list_filter = ('payment_status', 'payment_method', 'created_at')
    search_fields = ('transaction_id', 'rental_request__customer__email')
    readonly_fields = ('created_at', 'updated_at')
    raw_id_fields = ('rental_request',)
    list_per_page = 25


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        'invoice_number', 'rental_request', 'amount', 'invoice_status',
        'due_date', 'paid_date',
    )
    list_filter = ('invoice_status', 'due_date')
    search_fields = ('invoice_number', 'rental_request__customer__email')
    readonly_fields = ('invoice_number', 'created_at', 'updated_at')
    raw_id_fields = ('rental_request',)


@admin.register(InvoiceDownload)
class InvoiceDownloadAdmin(admin.ModelAdmin):
    list_display = ('invoice', 'user', 'created_at')
    search_fields = ('invoice__invoice_number', 'user__email')
    raw_id_fields = ('invoice', 'user')
