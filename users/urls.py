from django.urls import path
from . import views

app_name = 'users'

urlpatterns = [
    path('notifications/', views.NotificationListView.as_view(),
         name='notification-list'),
    path('notifications/mark-all-read/',
         views.NotificationMarkAllReadView.as_view(),
         name='notification-mark-all-read'),
    path('notifications/<uuid:notification_id>/',
         views.NotificationDetailView.as_view(),
         name='notification-detail'),
]
