"""
URL routing for payment API endpoints.
"""
from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    path('payments/', views.PaymentListView.as_view(), name='payment-list'),
    path(
        'orders/<int:order_id>/payments/',
        views.OrderPaymentListCreateView.as_view(),
        name='order-payments'
    ),
]
