from django.urls import re_path
from . import consumers

websocket_urlpatterns = [
    re_path(r'ws/cart/$', consumers.CartSyncConsumer.as_asgi()),
    re_path(r'ws/notifications/$', consumers.NotificationConsumer.as_asgi()),
    re_path(r'ws/admin/orders/$', consumers.AdminOrdersConsumer.as_asgi()),
]
