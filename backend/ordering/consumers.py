import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from .choices import UserType
from .services.websocket_services import ADMIN_ORDERS_GROUP, cart_group, user_group

logger = logging.getLogger(__name__)


class GroupConsumer(AsyncWebsocketConsumer):
    """Authenticated socket joined to one channel-layer group"""

    def get_group_name(self):
        raise NotImplementedError

    def is_allowed(self):
        return True

    async def connect(self):
        self.user = self.scope['user']
        self.group_name = None

        if self.user.is_anonymous:
            await self.close(code=4401)
            return
        if not self.is_allowed():
            await self.close(code=4403)
            return

        self.group_name = self.get_group_name()
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info(f"WebSocket connected: {self.user.username} -> {self.group_name}")

    async def disconnect(self, close_code):
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data):
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            await self.send_error("Invalid JSON format")
            return

        message_type = data.get('type')
        if message_type == 'ping':
            await self.send(text_data=json.dumps({'type': 'pong'}))
        else:
            await self.handle_message(message_type, data)

    async def handle_message(self, message_type, data):
        await self.send_error("Unknown message type")

    async def send_error(self, error):
        await self.send(text_data=json.dumps({'type': 'error', 'error': error}))

    async def send_message(self, event):
        try:
            await self.send(text_data=json.dumps(event['message']))
        except Exception as e:
            logger.error(f"Error sending WebSocket message: {str(e)}")


class CartSyncConsumer(GroupConsumer):
    """Pushes cart_updated events to every open context of the user"""

    def get_group_name(self):
        return cart_group(self.user.pk)

    async def handle_message(self, message_type, data):
        if message_type == 'get_cart':
            cart = await self.get_cart_data()
            await self.send(text_data=json.dumps({'type': 'cart_updated', 'data': cart}))
        else:
            await self.send_error("Unknown message type")

    @database_sync_to_async
    def get_cart_data(self):
        from django.core.serializers.json import DjangoJSONEncoder
        from .models import Cart
        from .serializers.cartSerializers import CartSerializer
        from .services.cart_service import CartService

        cart = Cart.objects.prefetch_related('items__menu_item').get(pk=CartService.get_cart(self.user).pk)
        return json.loads(json.dumps(CartSerializer(cart).data, cls=DjangoJSONEncoder))


class NotificationConsumer(GroupConsumer):

    def get_group_name(self):
        return user_group(self.user.pk)

    async def handle_message(self, message_type, data):
        if message_type == 'mark_read':
            updated = await self.mark_read(data.get('notification_id'))
            await self.send(text_data=json.dumps({'type': 'marked_read', 'updated': updated}))
        else:
            await self.send_error("Unknown message type")

    @database_sync_to_async
    def mark_read(self, notification_id):
        from django.core.exceptions import ValidationError
        from .models import Notification

        try:
            return Notification.objects.filter(notification_id=notification_id, user=self.user).update(is_read=True)
        except ValidationError:
            return 0


class AdminOrdersConsumer(GroupConsumer):

    def is_allowed(self):
        return self.user.user_type == UserType.ADMIN or self.user.is_superuser

    def get_group_name(self):
        return ADMIN_ORDERS_GROUP
