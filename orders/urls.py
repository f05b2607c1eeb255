"""
URL routing for order API endpoints.
"""
from django.urls import path
from . import views

app_name = 'orders'

urlpatterns = [
    path('orders/', views.OrderListCreateView.as_view(), name='order-list'),
    path('orders/stats/', views.OrderStatsView.as_view(), name='order-stats'),
    path('orders/<int:pk>/', views.OrderDetailView.as_view(), name='order-detail'),
    path('orders/<int:pk>/summary/', views.OrderSummaryView.as_view(), name='order-summary'),
    path('orders/<int:pk>/status/', views.OrderStatusView.as_view(), name='order-status'),
    path(
        'orders/<int:pk>/items/<int:item_id>/',
        views.OrderItemUpdateView.as_view(),
        name='order-item-update'
    ),
    path('dashboard/', views.DashboardView.as_view(), name='dashboard'),
]
