import logging

from django.http import Http404
from rest_framework import generics, status
from rest_framework.permissions import AllowAny

from ..cart.storage import SessionCartStorage
from ..cart.store import CartStore
from ..exceptions import CartPersistenceError
from ..models import MenuItem
from ..responses import success_response
from ..serializers import AddCartItemSerializer, UpdateCartItemSerializer

logger = logging.getLogger(__name__)


class GuestCartMixin:
    """Cart for anonymous visitors, held in the Django session"""
    permission_classes = [AllowAny]

    def get_store(self):
        store = CartStore(storage=SessionCartStorage(self.request.session))
        try:
            store.rehydrate()
        except CartPersistenceError as e:
            logger.warning(f"Resetting unreadable guest cart: {str(e)}")
            store.storage.remove_item(store.name, source=store)
            store.is_hydrated = True
            store.persistence_error = str(e)
        return store

    def cart_payload(self, store):
        return {
            'items': [item.to_dict() for item in store.items],
            'totals': store.get_totals().as_dict(),
            'last_sync_timestamp': store.last_sync_timestamp,
            'persistence_error': store.persistence_error,
        }


class GuestCartView(GuestCartMixin, generics.GenericAPIView):
    serializer_class = AddCartItemSerializer

    def get(self, request):
        return success_response(self.cart_payload(self.get_store()))

    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        menu_item = data['menu_item']

        store = self.get_store()
        line = store.add_item({
            'menu_item_id': menu_item.item_id,
            'name': menu_item.name,
            'quantity': data['quantity'],
            'unit_price': data['unit_price'],
            'selected_customizations': [dict(s) for s in data['selected_customizations']],
            'special_instructions': data['special_instructions'],
            'image': menu_item.image,
        })
        return success_response(
            {'item': line.to_dict(), 'cart': self.cart_payload(store)},
            message='Item added to cart',
            status_code=status.HTTP_201_CREATED,
        )

    def delete(self, request):
        store = self.get_store()
        store.clear_cart()
        return success_response(self.cart_payload(store), message='Cart cleared')


class GuestCartItemView(GuestCartMixin, generics.GenericAPIView):

    def get_line(self, store, item_id):
        line = store.get_item_by_id(item_id)
        if line is None:
            raise Http404("Cart item not found")
        return line

    def patch(self, request, item_id):
        store = self.get_store()
        line = self.get_line(store, item_id)

        menu_item = MenuItem.objects.filter(item_id=line.menu_item_id).first()
        serializer = UpdateCartItemSerializer(data=request.data, context={'menu_item': menu_item})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if 'selected_customizations' in data:
            store.update_customizations(
                item_id,
                [dict(s) for s in data['selected_customizations']],
                unit_price=data.get('unit_price'),
            )
        if 'special_instructions' in data:
            store.update_special_instructions(item_id, data['special_instructions'])
        if 'quantity' in data:
            store.update_quantity(item_id, data['quantity'])

        return success_response(self.cart_payload(store), message='Cart item updated')

    def delete(self, request, item_id):
        store = self.get_store()
        self.get_line(store, item_id)
        store.remove_item(item_id)
        return success_response(self.cart_payload(store), message='Cart item removed')
