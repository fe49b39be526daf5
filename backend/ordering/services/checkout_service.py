import logging
from datetime import timedelta

from django.db import transaction

from ..choices import OrderStatus, PaymentStatus
from ..models import Order, OrderItem
from .cart_service import CartService
from .notification_service import NotificationService
from .websocket_services import WebSocketService

logger = logging.getLogger(__name__)

ESTIMATED_DELIVERY_OFFSET = timedelta(minutes=45)


class CheckoutService:

    @staticmethod
    def place_order(user, data):
        """Create an order from validated checkout data and clear the user's server cart"""
        scheduled_for = data.get('scheduled_for')

        with transaction.atomic():
            order = Order.objects.create(
                customer=user,
                delivery_type=data['delivery_type'],
                delivery_address=data.get('delivery_address') or '',
                contact_phone=data.get('contact_phone') or user.phone_number or '',
                status=OrderStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                special_instructions=data.get('special_instructions') or '',
                subtotal=data['subtotal'],
                tax_amount=data['tax'],
                delivery_fee=data['delivery_fee'],
                tip_amount=data.get('tip') or 0,
                scheduled_for=scheduled_for,
                estimated_delivery=scheduled_for + ESTIMATED_DELIVERY_OFFSET if scheduled_for else None,
            )

            for item in data['items']:
                menu_item = item['menu_item']
                OrderItem.objects.create(
                    order=order,
                    menu_item=menu_item,
                    name=menu_item.name,
                    quantity=item['quantity'],
                    unit_price=item['unit_price'],
                    customizations=[dict(s) for s in item.get('selected_customizations') or []],
                    special_instructions=item.get('special_instructions') or ''
                )

            CartService.clear(user, broadcast=False)

        logger.info(f"Order created: {order.order_number} for {user.username}, total {order.total_amount}")

        # Don't fail the order if the confirmation can't be sent
        try:
            NotificationService.notify_order_placed(order)
        except Exception as e:
            logger.error(f"Failed to send order confirmation for {order.order_number}: {str(e)}")

        WebSocketService.broadcast_order_update(order)
        CartService.broadcast(CartService.get_cart(user))
        return order
