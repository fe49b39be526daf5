from decimal import Decimal
from unittest import mock

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from ordering.choices import ItemStatus
from ordering.models import Cart, CartItem
from ordering.services.cart_service import CartService

from .helpers import add_spice_customization, create_customer, create_menu_item


class CartApiTests(APITestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = create_customer()
        self.curry = create_menu_item('Butter Chicken', '10.00')
        self.customization, self.mild, self.extra_hot = add_spice_customization(self.curry)
        self.naan = create_menu_item('Garlic Naan', '15.00')
        self.client.force_authenticate(user=self.user)

    def spice(self, option):
        return [{'customization_id': self.customization.customization_id, 'option_ids': [option.option_id]}]

    def test_new_user_has_empty_cart(self):
        response = self.client.get(reverse('cart'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['items'], [])
        self.assertEqual(response.data['data']['totals']['total'], '0.00')

    def test_add_item_to_cart(self):
        """Test adding item to cart"""
        response = self.client.post(reverse('cart_items'), {
            'menu_item': self.curry.item_id,
            'quantity': 2,
            'selected_customizations': self.spice(self.mild),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        totals = response.data['data']['cart']['totals']
        self.assertEqual(totals['subtotal'], '20.00')
        self.assertEqual(totals['total_items'], 2)

    def test_option_price_is_added_to_unit_price(self):
        self.client.post(reverse('cart_items'), {
            'menu_item': self.curry.item_id,
            'quantity': 2,
            'selected_customizations': self.spice(self.extra_hot),
        }, format='json')

        item = CartItem.objects.get(cart__user=self.user)
        self.assertEqual(item.unit_price, Decimal('11.50'))
        self.assertEqual(item.total_price, Decimal('23.00'))

    def test_identical_items_merge(self):
        for quantity in (1, 2):
            self.client.post(reverse('cart_items'), {
                'menu_item': self.curry.item_id,
                'quantity': quantity,
                'selected_customizations': self.spice(self.mild),
            }, format='json')

        items = CartItem.objects.filter(cart__user=self.user)
        self.assertEqual(items.count(), 1)
        self.assertEqual(items.get().quantity, 3)

    def test_required_customization_is_enforced(self):
        response = self.client.post(reverse('cart_items'), {'menu_item': self.curry.item_id, 'quantity': 1}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error'], 'Spice Level is required')

    def test_radio_group_accepts_one_option(self):
        response = self.client.post(reverse('cart_items'), {
            'menu_item': self.curry.item_id,
            'selected_customizations': [{
                'customization_id': self.customization.customization_id,
                'option_ids': [self.mild.option_id, self.extra_hot.option_id],
            }],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unavailable_item_is_rejected(self):
        self.naan.status = ItemStatus.SOLD_OUT
        self.naan.save()

        response = self.client.post(reverse('cart_items'), {'menu_item': self.naan.item_id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_quantity(self):
        item = CartService.add_item(self.user, self.naan, 1, Decimal('15.00'))

        response = self.client.patch(
            reverse('cart_item_detail', kwargs={'item_id': item.cart_item_id}), {'quantity': 4}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        item.refresh_from_db()
        self.assertEqual(item.quantity, 4)
        self.assertEqual(item.total_price, Decimal('60.00'))

    def test_update_quantity_zero_removes_item(self):
        item = CartService.add_item(self.user, self.naan, 1, Decimal('15.00'))

        response = self.client.patch(
            reverse('cart_item_detail', kwargs={'item_id': item.cart_item_id}), {'quantity': 0}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['data']['item'])
        self.assertFalse(CartItem.objects.filter(pk=item.pk).exists())

    def test_update_customizations_reprices(self):
        item = CartService.add_item(self.user, self.curry, 1, Decimal('10.00'), self.spice(self.mild))

        self.client.patch(
            reverse('cart_item_detail', kwargs={'item_id': item.cart_item_id}),
            {'selected_customizations': self.spice(self.extra_hot)},
            format='json'
        )

        item.refresh_from_db()
        self.assertEqual(item.unit_price, Decimal('11.50'))

    def test_cannot_touch_other_users_items(self):
        other = create_customer('other')
        item = CartService.add_item(other, self.naan, 1, Decimal('15.00'))

        response = self.client.delete(reverse('cart_item_detail', kwargs={'item_id': item.cart_item_id}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_clear_cart(self):
        CartService.add_item(self.user, self.naan, 2, Decimal('15.00'))

        response = self.client.delete(reverse('cart'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(CartItem.objects.filter(cart__user=self.user).count(), 0)

    def test_cart_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(reverse('cart'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])


class CartSyncApiTests(APITestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = create_customer()
        self.curry = create_menu_item('Butter Chicken', '10.00')
        self.naan = create_menu_item('Garlic Naan', '15.00')
        self.retired = create_menu_item('Old Special', '9.00', status=ItemStatus.INACTIVE)
        self.client.force_authenticate(user=self.user)

    def line(self, menu_item, quantity, line_id, unit_price=None):
        return {
            'id': line_id,
            'menu_item_id': menu_item.item_id,
            'name': menu_item.name,
            'quantity': quantity,
            'unit_price': unit_price or str(menu_item.base_price),
        }

    def test_merge_adds_quantities_and_skips_unavailable(self):
        CartService.add_item(self.user, self.curry, 1, Decimal('10.00'))

        response = self.client.post(reverse('cart_sync'), {
            'mode': 'merge',
            'items': [self.line(self.curry, 2, 'a'), self.line(self.retired, 1, 'b')],
            'last_sync_timestamp': 1700000000000,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['skipped'], ['b'])
        item = CartItem.objects.get(cart__user=self.user)
        self.assertEqual(item.quantity, 3)
        self.assertEqual(Cart.objects.get(user=self.user).last_sync_timestamp, 1700000000000)

    def test_replace_mirrors_snapshot(self):
        CartService.add_item(self.user, self.curry, 1, Decimal('10.00'))

        self.client.post(reverse('cart_sync'), {
            'mode': 'replace',
            'items': [self.line(self.naan, 2, 'n')],
        }, format='json')

        items = list(CartItem.objects.filter(cart__user=self.user))
        self.assertEqual([(item.menu_item_id, item.quantity) for item in items], [(self.naan.item_id, 2)])

    def test_server_prices_win(self):
        self.client.post(reverse('cart_sync'), {
            'mode': 'replace',
            'items': [self.line(self.naan, 1, 'n', unit_price='0.50')],
        }, format='json')

        self.assertEqual(CartItem.objects.get(cart__user=self.user).unit_price, Decimal('15.00'))

    def test_sync_broadcasts_cart_update(self):
        with mock.patch('ordering.services.cart_service.WebSocketService.broadcast_cart_update') as broadcast:
            self.client.post(reverse('cart_sync'), {'items': [self.line(self.naan, 1, 'n')]}, format='json')

        broadcast.assert_called_once()
        user_id, cart_data = broadcast.call_args[0]
        self.assertEqual(user_id, self.user.pk)
        self.assertEqual(cart_data['totals']['total_items'], 1)

    def test_invalid_snapshot_is_rejected(self):
        response = self.client.post(reverse('cart_sync'), {
            'items': [{'menu_item_id': self.naan.item_id, 'quantity': 0}],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data['details'])


class GuestCartApiTests(APITestCase):

    def setUp(self):
        self.client = APIClient()
        self.naan = create_menu_item('Garlic Naan', '10.00')
        self.samosa = create_menu_item('Samosa', '15.00')

    def add(self, menu_item, quantity):
        return self.client.post(reverse('guest_cart'), {'menu_item': menu_item.item_id, 'quantity': quantity}, format='json')

    def test_session_cart_scenario(self):
        first = self.add(self.naan, 2)
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.add(self.samosa, 1)

        response = self.client.get(reverse('guest_cart'))
        totals = response.data['data']['totals']
        self.assertEqual(totals['subtotal'], Decimal('35.00'))
        self.assertEqual(totals['tax'], Decimal('4.55'))
        self.assertEqual(totals['total'], Decimal('45.54'))

        item_id = first.data['data']['item']['id']
        response = self.client.delete(reverse('guest_cart_item', kwargs={'item_id': item_id}))
        self.assertEqual(response.data['data']['totals']['subtotal'], Decimal('15.00'))

    def test_update_quantity_zero_removes_line(self):
        item_id = self.add(self.naan, 2).data['data']['item']['id']

        response = self.client.patch(
            reverse('guest_cart_item', kwargs={'item_id': item_id}), {'quantity': 0}, format='json'
        )

        self.assertEqual(response.data['data']['items'], [])
        self.assertEqual(response.data['data']['totals']['total'], Decimal('0.00'))

    def test_unknown_line_returns_404(self):
        response = self.client.patch(
            reverse('guest_cart_item', kwargs={'item_id': 'missing'}), {'quantity': 1}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_clear(self):
        self.add(self.naan, 2)
        response = self.client.delete(reverse('guest_cart'))
        self.assertEqual(response.data['data']['items'], [])

    def test_carts_are_isolated_per_session(self):
        self.add(self.naan, 2)
        other = APIClient()
        response = other.get(reverse('guest_cart'))
        self.assertEqual(response.data['data']['items'], [])

    def test_update_special_instructions(self):
        item_id = self.add(self.naan, 2).data['data']['item']['id']

        response = self.client.patch(
            reverse('guest_cart_item', kwargs={'item_id': item_id}),
            {'special_instructions': 'Extra butter'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['items'][0]['special_instructions'], 'Extra butter')
        self.assertEqual(response.data['data']['items'][0]['quantity'], 2)

    def test_unreadable_session_cart_is_reset(self):
        session = self.client.session
        session['cart-storage'] = '[]'
        session.save()

        response = self.client.get(reverse('guest_cart'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['items'], [])
        self.assertIn('Failed to load cart', response.data['data']['persistence_error'])
        self.assertEqual(self.add(self.naan, 1).status_code, status.HTTP_201_CREATED)
