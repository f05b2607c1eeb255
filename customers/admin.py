"""
Django Admin configuration for customer models.
"""
from django.contrib import admin
from .models import Customer, Address


class AddressInline(admin.TabularInline):
    model = Address
    extra = 0


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'phone_number', 'email', 'created_at']
    search_fields = ['name', 'phone_number', 'email']
    ordering = ['-created_at']
    raw_id_fields = ['default_address']
    inlines = [AddressInline]


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer', 'address_line', 'city', 'postal_code']
    list_filter = ['city']
    search_fields = ['address_line', 'city', 'postal_code', 'customer__name']
    raw_id_fields = ['customer']
