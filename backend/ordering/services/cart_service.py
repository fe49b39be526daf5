import json
import logging

from django.db import transaction

from ..cart.store import normalize_customizations
from ..models import Cart, CartItem, CustomizationOption, MenuItem
from .. import pricing
from .websocket_services import WebSocketService

logger = logging.getLogger(__name__)


def _identity(menu_item_id, selections):
    return (menu_item_id, json.dumps(normalize_customizations(selections), sort_keys=True))


class CartService:
    """Server-held cart of an authenticated user"""

    @staticmethod
    def get_cart(user):
        cart, created = Cart.objects.get_or_create(user=user)
        if created:
            logger.debug(f"Created cart for user {user.username}")
        return cart

    @staticmethod
    def find_matching_item(cart, menu_item_id, selections):
        wanted = _identity(menu_item_id, selections)
        for item in cart.items.all():
            if _identity(item.menu_item_id, item.selected_customizations) == wanted:
                return item
        return None

    @staticmethod
    def add_item(user, menu_item, quantity, unit_price, selected_customizations=None, special_instructions=''):
        """Add a line, merging into an identical existing line"""
        selected_customizations = selected_customizations or []
        cart = CartService.get_cart(user)
        with transaction.atomic():
            item = CartService.find_matching_item(cart, menu_item.item_id, selected_customizations)
            if item:
                item.quantity += quantity
                item.unit_price = unit_price
                if special_instructions:
                    item.special_instructions = special_instructions
                item.save()
            else:
                item = CartItem.objects.create(
                    cart=cart,
                    menu_item=menu_item,
                    quantity=quantity,
                    unit_price=unit_price,
                    selected_customizations=selected_customizations,
                    special_instructions=special_instructions or ''
                )
            cart.save(update_fields=['updated_at'])
        CartService.broadcast(cart)
        return item

    @staticmethod
    def update_item(cart_item, validated_data):
        """Apply a quantity/customization change; quantity <= 0 deletes the line. Returns None when deleted."""
        cart = cart_item.cart
        quantity = validated_data.get('quantity')
        if quantity is not None and quantity <= 0:
            cart_item.delete()
            CartService.broadcast(cart)
            return None

        if quantity is not None:
            cart_item.quantity = quantity
        if 'selected_customizations' in validated_data:
            cart_item.selected_customizations = validated_data['selected_customizations']
            cart_item.unit_price = validated_data['unit_price']
        if 'special_instructions' in validated_data:
            cart_item.special_instructions = validated_data['special_instructions']
        cart_item.save()
        CartService.broadcast(cart)
        return cart_item

    @staticmethod
    def remove_item(cart_item):
        cart = cart_item.cart
        cart_item.delete()
        CartService.broadcast(cart)

    @staticmethod
    def clear(user, broadcast=True):
        cart = CartService.get_cart(user)
        cart.items.all().delete()
        cart.save(update_fields=['updated_at'])
        if broadcast:
            CartService.broadcast(cart)
        return cart

    @staticmethod
    def _price_line(line):
        """Menu item and server-side unit price for a client line, or (None, None) if it can't be ordered."""
        try:
            menu_item = MenuItem.objects.get(item_id=line['menu_item_id'])
        except MenuItem.DoesNotExist:
            return None, None
        if not menu_item.is_orderable:
            return None, None
        try:
            modifiers = menu_item.option_price_modifiers(line.get('selected_customizations'))
        except CustomizationOption.DoesNotExist:
            return None, None
        return menu_item, pricing.calculate_unit_price(menu_item.base_price, modifiers)

    @staticmethod
    def sync(user, lines, mode='merge', last_sync_timestamp=None):
        """Reconcile a client cart snapshot with the server cart.

        merge adds quantities of identical lines (guest to user conversion),
        replace makes the server cart mirror the snapshot. Lines for missing
        or unavailable menu items are skipped. Returns (cart, skipped_lines).
        """
        cart = CartService.get_cart(user)
        skipped = []

        with transaction.atomic():
            if mode == 'replace':
                cart.items.all().delete()

            for line in lines:
                menu_item, unit_price = CartService._price_line(line)
                if menu_item is None:
                    skipped.append(line.get('id') or line['menu_item_id'])
                    continue

                selections = [dict(s) for s in line.get('selected_customizations') or []]
                existing = CartService.find_matching_item(cart, menu_item.item_id, selections)
                if existing:
                    existing.quantity += line['quantity']
                    existing.unit_price = unit_price
                    existing.special_instructions = line.get('special_instructions') or existing.special_instructions
                    existing.save()
                else:
                    CartItem.objects.create(
                        cart=cart,
                        menu_item=menu_item,
                        quantity=line['quantity'],
                        unit_price=unit_price,
                        selected_customizations=selections,
                        special_instructions=line.get('special_instructions') or ''
                    )

            if last_sync_timestamp is not None:
                cart.last_sync_timestamp = max(cart.last_sync_timestamp, last_sync_timestamp)
            cart.save()

        if skipped:
            logger.info(f"Cart sync for {user.username} skipped {len(skipped)} unavailable item(s)")
        CartService.broadcast(cart)
        return cart, skipped

    @staticmethod
    def broadcast(cart):
        from ..serializers.cartSerializers import CartSerializer

        cart = Cart.objects.prefetch_related('items__menu_item').get(pk=cart.pk)
        WebSocketService.broadcast_cart_update(cart.user_id, CartSerializer(cart).data)
