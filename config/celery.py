"""
Celery application for background order processing.
"""
import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('delivery_ops')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'daily-order-report': {
        'task': 'orders.tasks.generate_daily_order_report',
        'schedule': crontab(hour=0, minute=15),
    },
    'audit-order-totals': {
        'task': 'orders.tasks.audit_order_totals',
        'schedule': crontab(minute=0),
    },
}
