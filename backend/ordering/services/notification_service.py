import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils import timezone
from django.utils.html import strip_tags

from ..choices import NotificationStatus, OrderStatus
from ..exceptions import NotificationError
from ..models import Notification
from .websocket_services import WebSocketService

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    OrderStatus.PENDING: "We received your order and it is awaiting confirmation.",
    OrderStatus.CONFIRMED: "Your order has been confirmed and will be prepared shortly.",
    OrderStatus.PREPARING: "The kitchen is preparing your order.",
    OrderStatus.READY: "Your order is ready.",
    OrderStatus.OUT_FOR_DELIVERY: "Your order is on its way.",
    OrderStatus.DELIVERED: "Your order has been delivered. Enjoy your meal!",
    OrderStatus.CANCELLED: "Your order has been cancelled.",
}


class NotificationService:

    @staticmethod
    def notify_order_status_update(order, old_status, new_status):
        """Record and deliver an order status notification.

        Raises NotificationError when delivery fails. The Notification row is
        kept with status 'failed' so it can be retried later.
        """
        status_display = OrderStatus(new_status).label
        notification = Notification.objects.create(
            user=order.customer,
            order=order,
            type='order_status',
            title=f"Order #{order.order_number} is {status_display}",
            message=STATUS_MESSAGES.get(new_status, f"Your order is now {status_display}"),
            data={
                'order_id': order.order_id,
                'order_number': order.order_number,
                'old_status': old_status,
                'new_status': new_status,
            }
        )
        NotificationService.deliver(notification)
        return notification

    @staticmethod
    def notify_order_placed(order):
        notification = Notification.objects.create(
            user=order.customer,
            order=order,
            type='order_status',
            title=f"Order #{order.order_number} received",
            message=STATUS_MESSAGES[OrderStatus.PENDING],
            data={
                'order_id': order.order_id,
                'order_number': order.order_number,
                'old_status': None,
                'new_status': order.status,
            }
        )
        NotificationService.deliver(notification)
        return notification

    @staticmethod
    def deliver(notification):
        notification.attempts += 1
        try:
            if notification.user.email and not notification.sent_via_email:
                NotificationService.send_email_notification(notification)
                notification.sent_via_email = True
            NotificationService.send_websocket_notification(notification)
            notification.sent_via_websocket = True
        except Exception as e:
            logger.error(f"Error sending notification {notification.notification_id}: {str(e)}")
            notification.mark_failed(e)
            raise NotificationError(f"Notification {notification.notification_id} failed: {str(e)}") from e

        notification.mark_sent()
        return True

    @staticmethod
    def send_email_notification(notification):
        order = notification.order
        user = notification.user
        context = {
            'title': notification.title,
            'message': notification.message,
            'customer_name': user.get_full_name() or user.username,
            'order_number': order.order_number if order else '',
            'status_display': OrderStatus(order.status).label if order else '',
            'total_amount': order.total_amount if order else '',
            'order_url': f"{settings.FRONTEND_URL}/orders/{order.order_id}" if order else settings.FRONTEND_URL,
            'site_name': settings.SITE_NAME,
            'current_year': timezone.now().year,
        }

        html_content = render_to_string('emails/order_status_update.html', context)
        text_content = strip_tags(html_content)

        email = EmailMultiAlternatives(notification.title, text_content, settings.DEFAULT_FROM_EMAIL, [user.email])
        email.attach_alternative(html_content, "text/html")
        email.send()

        logger.info(f"Order status email sent to {user.email}")

    @staticmethod
    def send_websocket_notification(notification):
        message_data = {
            'notification_id': str(notification.notification_id),
            'type': notification.type,
            'title': notification.title,
            'message': notification.message,
            'data': notification.data,
            'created_at': notification.created_at.isoformat(),
            'is_read': notification.is_read
        }
        WebSocketService.broadcast_to_user(notification.user_id, 'notification', message_data)

    @staticmethod
    def retry_failed(max_attempts=5):
        """Redeliver failed notifications; returns how many went through"""
        delivered = 0
        failed = Notification.objects.filter(
            status=NotificationStatus.FAILED,
            attempts__lt=max_attempts
        ).select_related('user', 'order')

        for notification in failed:
            try:
                NotificationService.deliver(notification)
                delivered += 1
            except NotificationError:
                continue
        return delivered
