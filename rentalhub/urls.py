"""
URL configuration for rentalhub project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from drf_yasg.views import get_schema_view
from drf_yasg import openapi
from rest_framework.permissions import BasePermission, AllowAny
from django.conf.urls.static import static
import os
from dotenv import load_dotenv
load_dotenv()


class DocsAccessPermission(BasePermission):
    """
    Allow access to staff and superusers only.
    """
    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return bool(user.is_staff or user.is_superuser)


API_URL = os.getenv('API_URL', 'http://127.0.0.1:8000')

schema_view = get_schema_view(
    openapi.Info(
        title="RENTALHUB API",
        default_version='v1',
        description=(
            "API documentation for RentalHub: rental requests, payments, "
            "returns and notifications"
        ),
        contact=openapi.Contact(email="contact@example.com"),
        license=openapi.License(name="BSD License"),
    ),
    public=settings.DEBUG,
    permission_classes=(AllowAny,) if settings.DEBUG else (DocsAccessPermission,), # noqa
    url=API_URL,
)

urlpatterns = [
    path('admin/management/', admin.site.urls),
    path('api/v1/users/', include('users.urls', namespace='users')),
    path('api/v1/products/', include('products.urls', namespace='products')),
    path('api/v1/rentals/',
         include('rentals.urls', namespace='rentals')),
    path('api/v1/payments/',
         include('payments.urls', namespace='payments')),
    path('api/v1/returns/',
         include('returns.urls', namespace='returns')),

    # Swagger documentation URLs
    re_path(
        r'^swagger(?P<format>\.json|\.yaml)$',
        schema_view.without_ui(cache_timeout=0),
        name='schema-json'
    ),
    path(
        'swagger/',
        schema_view.with_ui('swagger', cache_timeout=0),
        name='schema-swagger-ui'
    ),
    path(
        'redoc/',
        schema_view.with_ui('redoc', cache_timeout=0),
        name='schema-redoc'
    ),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)  # noqa
    urlpatterns += static(
        settings.STATIC_URL, document_root=settings.STATIC_ROOT
    )  # noqa
