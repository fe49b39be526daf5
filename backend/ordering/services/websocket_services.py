import json
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

logger = logging.getLogger(__name__)


def user_group(user_id):
    return f"user_{user_id}"


def cart_group(user_id):
    return f"cart_{user_id}"


ADMIN_ORDERS_GROUP = 'admin_orders'


class WebSocketService:
    """Channel-layer broadcasts for cart and order events"""

    @staticmethod
    def _group_send(group, message_type, data):
        channel_layer = get_channel_layer()
        if channel_layer is None:
            logger.warning(f"No channel layer configured, dropping {message_type} for {group}")
            return False

        message = {
            'type': message_type,
            # Decimals and datetimes become plain JSON values before hitting the layer
            'data': json.loads(json.dumps(data, cls=DjangoJSONEncoder)),
            'timestamp': timezone.now().isoformat()
        }

        async_to_sync(channel_layer.group_send)(
            group,
            {
                'type': 'send_message',
                'message': message
            }
        )
        logger.debug(f"Broadcast to {group}: {message_type}")
        return True

    @staticmethod
    def broadcast_to_user(user_id, message_type, data):
        return WebSocketService._group_send(user_group(user_id), message_type, data)

    @staticmethod
    def broadcast_cart_update(user_id, cart_data):
        """Tell every open context of a user that the server cart changed"""
        try:
            return WebSocketService._group_send(cart_group(user_id), 'cart_updated', cart_data)
        except Exception as e:
            logger.error(f"Error broadcasting cart update for user {user_id}: {str(e)}")
            return False

    @staticmethod
    def broadcast_order_update(order):
        try:
            data = {
                'order_id': order.order_id,
                'order_number': order.order_number,
                'status': order.status,
                'updated_at': order.updated_at,
            }
            WebSocketService._group_send(ADMIN_ORDERS_GROUP, 'order_updated', data)
            return True
        except Exception as e:
            logger.error(f"Error broadcasting order {order.order_id} update: {str(e)}")
            return False
