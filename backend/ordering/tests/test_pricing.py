from decimal import Decimal

from django.test import SimpleTestCase

from ordering import pricing


class PricingTests(SimpleTestCase):

    def test_subtotal_is_sum_of_line_totals(self):
        items = [
            {'unit_price': Decimal('10.00'), 'quantity': 2},
            {'unit_price': Decimal('15.00'), 'quantity': 1},
        ]
        self.assertEqual(pricing.calculate_subtotal(items), Decimal('35.00'))

    def test_scenario_totals(self):
        """Two lines worth 35.00 -> 4.55 tax, 5.99 delivery, 45.54 total"""
        totals = pricing.calculate_totals([
            {'unit_price': '10.00', 'quantity': 2},
            {'unit_price': '15.00', 'quantity': 1},
        ])
        self.assertEqual(totals.subtotal, Decimal('35.00'))
        self.assertEqual(totals.tax, Decimal('4.55'))
        self.assertEqual(totals.delivery_fee, Decimal('5.99'))
        self.assertEqual(totals.total, Decimal('45.54'))
        self.assertEqual(totals.total_items, 3)

    def test_total_is_exact_sum_of_parts(self):
        totals = pricing.calculate_totals([{'unit_price': '7.33', 'quantity': 3}])
        self.assertEqual(totals.total, totals.subtotal + totals.tax + totals.delivery_fee)

    def test_empty_cart_is_all_zero(self):
        totals = pricing.calculate_totals([])
        self.assertEqual(totals.subtotal, Decimal('0.00'))
        self.assertEqual(totals.tax, Decimal('0.00'))
        self.assertEqual(totals.delivery_fee, Decimal('0.00'))
        self.assertEqual(totals.total, Decimal('0.00'))
        self.assertEqual(totals.total_items, 0)

    def test_tax_rounds_half_up_to_cents(self):
        # 0.50 * 0.13 = 0.065
        self.assertEqual(pricing.calculate_tax(Decimal('0.50')), Decimal('0.07'))
        self.assertEqual(pricing.calculate_tax(Decimal('19.99')), Decimal('2.60'))

    def test_delivery_fee_only_when_subtotal_positive(self):
        self.assertEqual(pricing.calculate_delivery_fee(Decimal('0.01')), Decimal('5.99'))
        self.assertEqual(pricing.calculate_delivery_fee(Decimal('0')), Decimal('0.00'))

    def test_unit_price_adds_option_modifiers(self):
        unit_price = pricing.calculate_unit_price('12.50', [Decimal('1.50'), '0.75'])
        self.assertEqual(unit_price, Decimal('14.75'))
        self.assertEqual(pricing.calculate_line_total(unit_price, 3), Decimal('44.25'))

    def test_amounts_match_allows_one_cent(self):
        self.assertTrue(pricing.amounts_match('10.00', '10.01'))
        self.assertFalse(pricing.amounts_match('10.00', '10.02'))
