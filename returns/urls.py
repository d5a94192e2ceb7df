from django.urls import path
from . import views

app_name = 'returns'

urlpatterns = [
    path('rentals/<uuid:rental_request_id>/',
         views.ReturnDetailView.as_view(), name='return-detail'),
    path('rentals/<uuid:rental_request_id>/initiate/',
         views.ReturnInitiateView.as_view(), name='return-initiate'),
    path('rentals/<uuid:rental_request_id>/in-progress/',
         views.ReturnInProgressView.as_view(), name='return-in-progress'),
    path('rentals/<uuid:rental_request_id>/confirm/',
         views.ReturnConfirmView.as_view(), name='return-confirm'),
    path('<uuid:return_id>/damage-assessment/',
         views.DamageAssessmentCreateView.as_view(),
         name='damage-assessment-create'),
]
