"""
Django Admin configuration for core models.
"""
from django.contrib import admin
from .models import ErrorLog


@admin.register(ErrorLog)
class ErrorLogAdmin(admin.ModelAdmin):
    list_display = ['id', 'error_type', 'order', 'message', 'created_at']
    list_filter = ['error_type', 'created_at']
    search_fields = ['message', 'order__id']
    ordering = ['-created_at']
    raw_id_fields = ['order']
    readonly_fields = ['order', 'error_type', 'message', 'created_at']
