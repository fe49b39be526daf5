from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated

from ..models import Cart, CartItem
from ..responses import success_response
from ..serializers import (
    AddCartItemSerializer, CartItemSerializer, CartSerializer, CartSyncSerializer, UpdateCartItemSerializer
)
from ..services.cart_service import CartService


def _cart_data(user):
    cart = Cart.objects.prefetch_related('items__menu_item').get(pk=CartService.get_cart(user).pk)
    return CartSerializer(cart).data


class CartDetailView(generics.GenericAPIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return success_response(_cart_data(request.user))

    def delete(self, request):
        CartService.clear(request.user)
        return success_response(_cart_data(request.user), message='Cart cleared')


class CartItemCreateView(generics.GenericAPIView):
    serializer_class = AddCartItemSerializer
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        item = CartService.add_item(
            request.user,
            menu_item=data['menu_item'],
            quantity=data['quantity'],
            unit_price=data['unit_price'],
            selected_customizations=[dict(s) for s in data['selected_customizations']],
            special_instructions=data['special_instructions'],
        )
        return success_response(
            {'item': CartItemSerializer(item).data, 'cart': _cart_data(request.user)},
            message='Item added to cart',
            status_code=status.HTTP_201_CREATED,
        )


class CartItemDetailView(generics.GenericAPIView):
    permission_classes = [IsAuthenticated]
    lookup_field = 'cart_item_id'
    lookup_url_kwarg = 'item_id'

    def get_queryset(self):
        return CartItem.objects.filter(cart__user=self.request.user).select_related('cart', 'menu_item')

    def patch(self, request, item_id):
        cart_item = self.get_object()
        serializer = UpdateCartItemSerializer(data=request.data, context={'menu_item': cart_item.menu_item})
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        if 'selected_customizations' in data:
            data['selected_customizations'] = [dict(s) for s in data['selected_customizations']]

        item = CartService.update_item(cart_item, data)
        return success_response(
            {'item': CartItemSerializer(item).data if item else None, 'cart': _cart_data(request.user)},
            message='Cart item updated' if item else 'Cart item removed',
        )

    def delete(self, request, item_id):
        CartService.remove_item(self.get_object())
        return success_response(_cart_data(request.user), message='Cart item removed')


class CartSyncView(generics.GenericAPIView):
    serializer_class = CartSyncSerializer
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        cart, skipped = CartService.sync(
            request.user,
            [dict(line) for line in data['items']],
            mode=data['mode'],
            last_sync_timestamp=data.get('last_sync_timestamp'),
        )
        return success_response(
            _cart_data(request.user),
            message='Cart synced successfully',
            skipped=skipped,
        )
