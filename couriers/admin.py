"""
Django Admin configuration for courier models.
"""
from django.contrib import admin
from .models import Courier, OrderDelivery


@admin.register(Courier)
class CourierAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'contact_number', 'api_endpoint', 'status']
    list_filter = ['status']
    search_fields = ['name', 'contact_number']
    ordering = ['name']


@admin.register(OrderDelivery)
class OrderDeliveryAdmin(admin.ModelAdmin):
    list_display = ['id', 'tracking_number', 'order', 'courier', 'status', 'assigned_at']
    list_filter = ['status', 'courier', 'assigned_at']
    search_fields = ['tracking_number', 'order__id', 'courier__name']
    ordering = ['-assigned_at']
    raw_id_fields = ['order', 'courier']
    readonly_fields = ['status', 'assigned_at', 'updated_at']
