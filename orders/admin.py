"""
Django Admin configuration for order models.

Status, totals and items are read-only here: they change only through
orders.services so stock and payments stay consistent.
"""
from django.contrib import admin
from .models import Order, OrderItem, OrderStatusChange


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'quantity', 'price', 'subtotal']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def subtotal(self, obj):
        return f"${obj.subtotal}"
    subtotal.short_description = 'Subtotal'


class OrderStatusChangeInline(admin.TabularInline):
    model = OrderStatusChange
    extra = 0
    readonly_fields = ['from_status', 'to_status', 'created_at']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer', 'status', 'payment_status', 'total_amount', 'item_count', 'created_at']
    list_filter = ['status', 'payment_status', 'created_at']
    search_fields = ['id', 'customer__name', 'customer__phone_number']
    ordering = ['-created_at']
    raw_id_fields = ['customer', 'address']
    readonly_fields = ['status', 'payment_status', 'total_amount', 'created_at', 'updated_at']
    inlines = [OrderItemInline, OrderStatusChangeInline]

    def item_count(self, obj):
        return obj.items.count()
    item_count.short_description = 'Items'


@admin.register(OrderItem)
class OrderItemAdmin(admin.ModelAdmin):
    list_display = ['id', 'order', 'product', 'quantity', 'price', 'subtotal']
    list_filter = ['order__status']
    search_fields = ['product__name', 'order__id']
    ordering = ['-id']
    raw_id_fields = ['order', 'product']
    readonly_fields = ['order', 'product', 'quantity', 'price']

    def subtotal(self, obj):
        return f"${obj.subtotal}"
    subtotal.short_description = 'Subtotal'
