import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'storefront.settings')

app = Celery('storefront')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django app configs.
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'retry-failed-order-notifications': {
        'task': 'ordering.tasks.retry_failed_notifications_task',
        'schedule': crontab(minute='*/10'),
    },
    'cleanup-stale-carts': {
        'task': 'ordering.tasks.cleanup_stale_carts_task',
        'schedule': crontab(hour=4, minute=0),  # Daily at 4 AM
    },
}
