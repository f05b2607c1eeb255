"""
URL routing for core API endpoints.
"""
from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    path('error-logs/', views.ErrorLogListView.as_view(), name='error-log-list'),
]
