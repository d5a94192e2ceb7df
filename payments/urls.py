from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    path('', views.PaymentCreateView.as_view(), name='payment-create'),
    path('webhook/', views.PaymentWebhookView.as_view(),
         name='payment-webhook'),
    path('<uuid:payment_id>/', views.PaymentDetailView.as_view(),
         name='payment-detail'),
    path('invoices/<uuid:invoice_id>/', views.InvoiceDetailView.as_view(),
         name='invoice-detail'),
    path('invoices/<uuid:invoice_id>/email/',
         views.InvoiceEmailView.as_view(), name='invoice-email'),
    path('invoices/<uuid:invoice_id>/downloads/',
         views.InvoiceDownloadHistoryView.as_view(),
         name='invoice-downloads'),
]
