from celery import shared_task
from django.core.management import call_command
from logging import getLogger

logger = getLogger(__name__)


@shared_task
def retry_failed_notifications_task(max_attempts=5):
    """Redeliver order notifications that failed earlier"""
    from .services.notification_service import NotificationService

    delivered = NotificationService.retry_failed(max_attempts=max_attempts)
    if delivered:
        logger.info(f"Redelivered {delivered} notifications")
    return f"Redelivered {delivered} notifications"


@shared_task
def cleanup_stale_carts_task():
    """Celery task to empty carts nobody touched recently"""
    try:
        call_command('cleanup_stale_carts')
        return "Stale carts cleaned up successfully"
    except Exception as e:
        logger.error(f"Error cleaning up stale carts: {str(e)}")
        return f"Error cleaning up stale carts: {str(e)}"
