"""
🚀 ENTERPRISE CELERY CONFIGURATION for the EventHive platform

Async tasks and periodic jobs for the booking system, including the sweep
that releases expired unpaid bookings so held tickets go back on sale.
"""

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('eventhive')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django app configs.
app.autodiscover_tasks()

# 🚀 ENTERPRISE PERIODIC TASKS SCHEDULE
app.conf.beat_schedule = {
    # Critical: release expired pending bookings every 5 minutes
    'release-expired-bookings': {
        'task': 'apps.events.tasks.release_expired_bookings',
        'schedule': crontab(minute='*/5'),
        'options': {
            'queue': 'critical',
            'routing_key': 'critical.release_bookings',
        }
    },
}

# 🚀 ENTERPRISE TASK ROUTING
app.conf.task_routes = {
    'apps.events.tasks.release_expired_bookings': {'queue': 'critical'},
    'apps.events.tasks.issue_booking_ticket': {'queue': 'emails'},
}

# 🚀 ENTERPRISE CELERY CONFIGURATION
app.conf.update(
    timezone='Asia/Kolkata',
    enable_utc=True,

    # Task execution settings
    task_soft_time_limit=240,
    task_time_limit=300,
    task_acks_late=True,       # Acknowledge after task completion
    worker_prefetch_multiplier=1,

    # Result backend settings
    result_expires=3600,

    worker_max_tasks_per_child=1000,

    task_default_queue='default',
    task_default_exchange='default',
    task_default_exchange_type='direct',
    task_default_routing_key='default',
)
