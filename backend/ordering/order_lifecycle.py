"""
Order status lifecycle.

PENDING -> CONFIRMED -> PREPARING -> READY -> OUT_FOR_DELIVERY -> DELIVERED,
with CANCELLED reachable from any non-terminal status. The transition table
is advisory: administrators may set any status, and moves that do not follow
the forward flow are only logged.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from django.db import transaction

from .choices import OrderStatus
from .exceptions import InvalidStatusError
from .models import Order, OrderTracking
from .services.notification_service import NotificationService
from .services.websocket_services import WebSocketService

logger = logging.getLogger(__name__)

FORWARD_FLOW = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

STATUS_DESCRIPTIONS = {
    OrderStatus.PENDING: 'Order placed by customer',
    OrderStatus.CONFIRMED: 'Order confirmed by restaurant',
    OrderStatus.PREPARING: 'Kitchen started preparing order',
    OrderStatus.READY: 'Order is ready for pickup/delivery',
    OrderStatus.OUT_FOR_DELIVERY: 'Order dispatched for delivery',
    OrderStatus.DELIVERED: 'Order delivered successfully',
    OrderStatus.CANCELLED: 'Order was cancelled',
}


def is_terminal(status):
    return status in TERMINAL_STATUSES


def can_transition(current, new):
    """Whether current -> new follows the lifecycle. Same-status is not a transition."""
    if current == new or is_terminal(current):
        return False
    if new == OrderStatus.CANCELLED:
        return True
    if current in FORWARD_FLOW and new in FORWARD_FLOW:
        return FORWARD_FLOW.index(new) > FORWARD_FLOW.index(current)
    return False


def validate_status(status):
    if status not in OrderStatus.values:
        raise InvalidStatusError(f"Invalid order status: {status}")
    return OrderStatus(status)


@dataclass
class BulkUpdateResult:
    updated_count: int = 0
    changed_ids: List[int] = field(default_factory=list)
    notified_ids: List[int] = field(default_factory=list)
    failed_notification_ids: List[int] = field(default_factory=list)
    missing_ids: List[int] = field(default_factory=list)

    def as_dict(self):
        return {
            'updated_count': self.updated_count,
            'changed_ids': self.changed_ids,
            'notified_ids': self.notified_ids,
            'failed_notification_ids': self.failed_notification_ids,
            'missing_ids': self.missing_ids,
        }


class OrderStatusService:

    @staticmethod
    def _apply(order, new_status, updated_by=None, description=None):
        old_status = order.status
        if not can_transition(old_status, new_status):
            logger.warning(
                f"Order {order.order_number}: {old_status} -> {new_status} does not follow the order lifecycle"
            )
        order.update_status(new_status)
        OrderTracking.objects.create(
            order=order,
            status=new_status,
            previous_status=old_status,
            description=description or STATUS_DESCRIPTIONS.get(new_status, 'Order status updated'),
            updated_by=updated_by
        )
        return old_status

    @staticmethod
    def _dispatch_notification(order, old_status, new_status):
        """Best-effort: a failed notification never undoes the status change"""
        try:
            NotificationService.notify_order_status_update(order, old_status, new_status)
            return True
        except Exception as e:
            logger.error(f"Error sending status notification for order {order.order_number}: {str(e)}")
            return False
        finally:
            WebSocketService.broadcast_order_update(order)

    @staticmethod
    def update_status(order, new_status, updated_by=None, description=None):
        """Set a new status; notify the customer only when it changed. Returns True if it changed."""
        new_status = validate_status(new_status)
        if order.status == new_status:
            return False

        with transaction.atomic():
            old_status = OrderStatusService._apply(order, new_status, updated_by, description)

        logger.info(f"Order {order.order_number} status changed from {old_status} to {new_status}")
        OrderStatusService._dispatch_notification(order, old_status, new_status)
        return True

    @staticmethod
    def bulk_update_status(order_ids, new_status, updated_by=None):
        """Move many orders to one status; notification failures are isolated per order"""
        new_status = validate_status(new_status)
        order_ids = [int(order_id) for order_id in order_ids]
        orders = list(Order.objects.select_related('customer').filter(order_id__in=order_ids))

        result = BulkUpdateResult(updated_count=len(orders))
        found = {order.order_id for order in orders}
        result.missing_ids = [order_id for order_id in order_ids if order_id not in found]

        changed = []
        with transaction.atomic():
            for order in orders:
                if order.status == new_status:
                    continue
                old_status = OrderStatusService._apply(order, new_status, updated_by)
                changed.append((order, old_status))
                result.changed_ids.append(order.order_id)

        for order, old_status in changed:
            if OrderStatusService._dispatch_notification(order, old_status, new_status):
                result.notified_ids.append(order.order_id)
            else:
                result.failed_notification_ids.append(order.order_id)

        logger.info(
            f"Bulk status update to {new_status}: {len(result.changed_ids)} changed, "
            f"{len(result.failed_notification_ids)} notification failures"
        )
        return result


def build_timeline(order):
    """Placed event followed by every recorded status change"""
    customer = order.customer
    timeline = [{
        'id': 'placed',
        'status': OrderStatus.PENDING.value,
        'timestamp': order.created_at.isoformat(),
        'description': STATUS_DESCRIPTIONS[OrderStatus.PENDING],
        'actor': customer.display_name,
    }]

    history = list(order.tracking_history.select_related('updated_by').all())
    for entry in history:
        timeline.append({
            'id': f"tracking-{entry.tracking_id}",
            'status': entry.status,
            'timestamp': entry.created_at.isoformat(),
            'description': entry.description or STATUS_DESCRIPTIONS.get(entry.status, 'Order status updated'),
            'actor': entry.updated_by.display_name if entry.updated_by else 'System',
        })

    # Orders changed outside the lifecycle service have no history rows
    if not history and order.status != OrderStatus.PENDING and order.updated_at > order.created_at:
        timeline.append({
            'id': 'latest',
            'status': order.status,
            'timestamp': order.updated_at.isoformat(),
            'description': STATUS_DESCRIPTIONS.get(order.status, 'Order status updated'),
            'actor': 'Admin',
        })

    return timeline
