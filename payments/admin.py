"""
Django Admin configuration for payment models.
"""
from django.contrib import admin
from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'order', 'kind', 'provider', 'amount', 'status', 'transaction_ref', 'created_at']
    list_filter = ['kind', 'status', 'provider', 'created_at']
    search_fields = ['transaction_ref', 'order__id']
    ordering = ['-created_at']
    raw_id_fields = ['order', 'refund_of']
    readonly_fields = ['order', 'kind', 'amount', 'status', 'transaction_ref', 'refund_of', 'created_at']
