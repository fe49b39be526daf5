from decimal import Decimal

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from ordering.choices import ItemStatus
from ordering.models import MenuCategory, Package, PackageItem

from .helpers import add_spice_customization, create_menu_item


class MenuApiTests(APITestCase):

    def setUp(self):
        self.mains = MenuCategory.objects.create(name='Mains', display_order=1)
        self.sides = MenuCategory.objects.create(name='Sides', display_order=2)
        self.curry = create_menu_item('Butter Chicken', '16.99', category=self.mains)
        self.naan = create_menu_item('Garlic Naan', '3.49', category=self.sides)
        self.hidden = create_menu_item('Lamb Vindaloo', '18.99', category=self.mains, status=ItemStatus.INACTIVE)
        add_spice_customization(self.curry)

    def test_categories_count_active_items(self):
        response = self.client.get(reverse('menu_categories'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        counts = {category['name']: category['item_count'] for category in response.data['data']}
        self.assertEqual(counts, {'Mains': 1, 'Sides': 1})

    def test_items_default_to_active(self):
        response = self.client.get(reverse('menu_items'))
        names = [item['name'] for item in response.data['data']]
        self.assertEqual(names, ['Butter Chicken', 'Garlic Naan'])

    def test_items_filtered_by_category_name_or_id(self):
        by_name = self.client.get(reverse('menu_items'), {'category': 'sides'})
        by_id = self.client.get(reverse('menu_items'), {'category': self.mains.category_id})

        self.assertEqual([item['name'] for item in by_name.data['data']], ['Garlic Naan'])
        self.assertEqual([item['name'] for item in by_id.data['data']], ['Butter Chicken'])

    def test_items_search(self):
        response = self.client.get(reverse('menu_items'), {'search': 'naan'})
        self.assertEqual(len(response.data['data']), 1)

    def test_item_detail_includes_customizations(self):
        response = self.client.get(reverse('menu_item_detail', kwargs={'slug': self.curry.slug}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        customization = response.data['data']['customizations'][0]
        self.assertEqual(customization['name'], 'Spice Level')
        self.assertEqual(len(customization['options']), 2)

    def test_unknown_item_returns_enveloped_404(self):
        response = self.client.get(reverse('menu_item_detail', kwargs={'slug': 'nope'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])


class PackageApiTests(APITestCase):

    def setUp(self):
        curry = create_menu_item('Butter Chicken', '16.99')
        naan = create_menu_item('Garlic Naan', '3.49')
        self.package = Package.objects.create(name='Date Night', slug='date-night', price=Decimal('35.00'))
        PackageItem.objects.create(package=self.package, menu_item=curry, quantity=2)
        PackageItem.objects.create(package=self.package, menu_item=naan, quantity=2)
        Package.objects.create(name='Retired', slug='retired', price=Decimal('10.00'), is_active=False)

    def test_list_only_active_packages(self):
        response = self.client.get(reverse('packages'))
        self.assertEqual([package['name'] for package in response.data['data']], ['Date Night'])

    def test_package_detail_by_id_and_slug(self):
        by_id = self.client.get(reverse('package_detail', kwargs={'package_id': self.package.package_id}))
        by_slug = self.client.get(reverse('package_by_slug', kwargs={'slug': 'date-night'}))

        self.assertEqual(by_id.data['data']['package_id'], self.package.package_id)
        self.assertEqual(by_slug.data['data']['package_id'], self.package.package_id)
        self.assertEqual(len(by_id.data['data']['included_items']), 2)

    def test_inactive_package_is_hidden(self):
        response = self.client.get(reverse('package_by_slug', kwargs={'slug': 'retired'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
