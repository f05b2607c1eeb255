"""
URL routing for courier API endpoints.
"""
from django.urls import path
from . import views

app_name = 'couriers'

urlpatterns = [
    path('couriers/', views.CourierListCreateView.as_view(), name='courier-list'),
    path('couriers/<int:pk>/', views.CourierDetailView.as_view(), name='courier-detail'),
    path(
        'orders/<int:order_id>/delivery/',
        views.OrderDeliveryListCreateView.as_view(),
        name='order-delivery'
    ),
    path('deliveries/<int:pk>/status/', views.DeliveryStatusView.as_view(), name='delivery-status'),
]
