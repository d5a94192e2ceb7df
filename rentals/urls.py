from django.urls import path
from . import views

app_name = 'rentals'

urlpatterns = [
    path('requests/', views.RentalRequestListCreateView.as_view(),
         name='rental-request-list'),
    path('requests/active/', views.ActiveRentalsView.as_view(),
         name='active-rentals'),
    path('requests/<uuid:rental_request_id>/',
         views.RentalRequestDetailView.as_view(),
         name='rental-request-detail'),
    path('availability/', views.AvailabilityView.as_view(),
         name='availability'),
]
