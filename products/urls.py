from django.urls import path
from . import views

app_name = 'products'

urlpatterns = [
    path('', views.ProductListCreateView.as_view(), name='product-list'),
    path('<uuid:product_id>/', views.ProductDetailView.as_view(),
         name='product-detail'),
]
