import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

from ..choices import NotificationStatus


class Notification(models.Model):
    NOTIFICATION_TYPES = (
        ('order_status', 'Order Status Update'),
        ('system', 'System Announcement'),
    )

    notification_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    order = models.ForeignKey('ordering.Order', on_delete=models.CASCADE, null=True, blank=True, related_name='notifications')
    type = models.CharField(max_length=20, choices=NOTIFICATION_TYPES, default='order_status')
    title = models.CharField(max_length=255)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=10, choices=NotificationStatus.choices, default=NotificationStatus.PENDING)
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default='')
    sent_via_email = models.BooleanField(default=False)
    sent_via_websocket = models.BooleanField(default=False)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notif_user_read_idx'),
            models.Index(fields=['status', 'created_at'], name='notif_status_created_idx'),
        ]

    def __str__(self):
        return f"{self.title} - {self.user.username}"

    def mark_sent(self):
        self.status = NotificationStatus.SENT
        self.sent_at = timezone.now()
        self.last_error = ''
        self.save(update_fields=['status', 'sent_at', 'last_error', 'attempts', 'sent_via_email', 'sent_via_websocket'])

    def mark_failed(self, error):
        self.status = NotificationStatus.FAILED
        self.last_error = str(error)
        self.save(update_fields=['status', 'last_error', 'attempts', 'sent_via_email', 'sent_via_websocket'])
