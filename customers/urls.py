"""
URL routing for customer API endpoints.
"""
from django.urls import path
from . import views

app_name = 'customers'

urlpatterns = [
    path('customers/', views.CustomerListCreateView.as_view(), name='customer-list'),
    path('customers/<int:pk>/', views.CustomerDetailView.as_view(), name='customer-detail'),
    path(
        'customers/<int:customer_id>/addresses/',
        views.CustomerAddressListCreateView.as_view(),
        name='customer-addresses'
    ),
]
