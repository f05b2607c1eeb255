"""
Serializers for core models.
"""
from rest_framework import serializers
from .models import ErrorLog


class ErrorLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = ErrorLog
        fields = ['id', 'order', 'error_type', 'message', 'created_at']
        read_only_fields = fields
