from django.utils import timezone
from rest_framework import serializers
from rest_framework.exceptions import ValidationError

from ..choices import DeliveryType, OrderStatus, PaymentStatus
from ..conf import delivery_fee, get_setting, tax_rate
from ..models import Address, CustomizationOption, MenuItem, Order, OrderItem, OrderTracking
from .. import pricing
from .cartSerializers import SelectedCustomizationSerializer


class CheckoutItemSerializer(serializers.Serializer):
    menu_item_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1, max_value=100)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, max_value=1000)
    total_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, max_value=50000)
    selected_customizations = SelectedCustomizationSerializer(many=True, required=False, default=list)
    special_instructions = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')


class CheckoutSerializer(serializers.Serializer):
    """Frozen cart snapshot submitted at checkout; totals are re-checked against the menu"""
    items = CheckoutItemSerializer(many=True, allow_empty=False)
    delivery_type = serializers.ChoiceField(choices=DeliveryType.choices)
    delivery_address_id = serializers.IntegerField(required=False, allow_null=True)
    delivery_address = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')
    contact_phone = serializers.CharField(required=False, allow_blank=True, max_length=20, default='')
    scheduled_for = serializers.DateTimeField(required=False, allow_null=True)
    special_instructions = serializers.CharField(required=False, allow_blank=True, max_length=500, default='')
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, max_value=50000)
    tax = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, max_value=10000)
    delivery_fee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, max_value=100)
    tip = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, default=0)
    total = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, max_value=50000)

    def validate_items(self, value):
        max_items = get_setting('MAX_ORDER_ITEMS')
        if len(value) > max_items:
            raise ValidationError(f"Too many items in order (maximum {max_items})")
        return value

    def validate_scheduled_for(self, value):
        if value and value <= timezone.now():
            raise ValidationError("Scheduled time must be in the future")
        return value

    def _resolve_address(self, data):
        request = self.context.get('request')
        address_id = data.get('delivery_address_id')
        if address_id:
            try:
                address = Address.objects.get(address_id=address_id, user=request.user)
            except Address.DoesNotExist:
                raise ValidationError({'delivery_address_id': "Delivery address not found"})
            data['delivery_address'] = str(address)

        if data['delivery_type'] == DeliveryType.DELIVERY and not data.get('delivery_address'):
            raise ValidationError({'delivery_address': "Delivery address is required for delivery orders"})

    def validate(self, data):
        self._resolve_address(data)

        ids = {item['menu_item_id'] for item in data['items']}
        menu_items = {
            menu_item.item_id: menu_item
            for menu_item in MenuItem.objects.filter(item_id__in=ids)
            if menu_item.is_orderable
        }
        if len(menu_items) != len(ids):
            raise ValidationError({'items': "Some menu items are not available"})

        calculated_subtotal = pricing.ZERO
        for item in data['items']:
            menu_item = menu_items[item['menu_item_id']]
            if not pricing.amounts_match(pricing.calculate_line_total(item['unit_price'], item['quantity']), item['total_price']):
                raise ValidationError({'items': "Invalid item pricing detected"})

            try:
                modifiers = menu_item.option_price_modifiers(item['selected_customizations'])
            except CustomizationOption.DoesNotExist as e:
                raise ValidationError({'items': str(e)})
            server_unit_price = pricing.calculate_unit_price(menu_item.base_price, modifiers)
            if not pricing.amounts_match(server_unit_price, item['unit_price']):
                raise ValidationError({'items': f"Price of {menu_item.name} has changed"})

            item['menu_item'] = menu_item
            item['unit_price'] = server_unit_price
            calculated_subtotal += pricing.calculate_line_total(server_unit_price, item['quantity'])

        calculated_tax = pricing.calculate_tax(calculated_subtotal, tax_rate())
        calculated_fee = pricing.calculate_delivery_fee(calculated_subtotal, delivery_fee())

        if not pricing.amounts_match(calculated_subtotal, data['subtotal']):
            raise ValidationError({'subtotal': "Invalid order subtotal"})
        if not pricing.amounts_match(calculated_tax, data['tax']):
            raise ValidationError({'tax': "Invalid order tax"})
        if not pricing.amounts_match(calculated_fee, data['delivery_fee']):
            raise ValidationError({'delivery_fee': "Invalid delivery fee"})

        expected_total = data['subtotal'] + data['tax'] + data['delivery_fee'] + data['tip']
        if not pricing.amounts_match(expected_total, data['total']):
            raise ValidationError({'total': "Invalid order total"})

        # Stored amounts are always the server's
        data['subtotal'] = calculated_subtotal
        data['tax'] = calculated_tax
        data['delivery_fee'] = calculated_fee
        return data


class OrderItemSerializer(serializers.ModelSerializer):
    image = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = [
            'order_item_id', 'menu_item', 'name', 'image', 'quantity', 'unit_price',
            'total_price', 'customizations', 'special_instructions'
        ]
        read_only_fields = fields

    def get_image(self, obj):
        return obj.menu_item.image if obj.menu_item else ''


class OrderTrackingSerializer(serializers.ModelSerializer):
    updated_by_name = serializers.CharField(source='updated_by.display_name', read_only=True, default=None)

    class Meta:
        model = OrderTracking
        fields = ['tracking_id', 'status', 'previous_status', 'description', 'updated_by_name', 'created_at']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    customer_name = serializers.CharField(source='customer.display_name', read_only=True)
    customer_email = serializers.CharField(source='customer.email', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Order
        fields = [
            'order_id', 'order_number', 'customer', 'customer_name', 'customer_email',
            'delivery_type', 'delivery_address', 'contact_phone', 'status', 'status_display',
            'payment_status', 'special_instructions', 'subtotal', 'tax_amount', 'delivery_fee',
            'tip_amount', 'total_amount', 'scheduled_for', 'estimated_delivery', 'items',
            'created_at', 'updated_at', 'confirmed_at', 'preparation_started_at', 'ready_at',
            'out_for_delivery_at', 'delivered_at', 'cancelled_at'
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source='customer.display_name', read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'order_id', 'order_number', 'customer_name', 'delivery_type', 'status',
            'payment_status', 'total_amount', 'item_count', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_item_count(self, obj):
        return sum(item.quantity for item in obj.items.all())


class AdminOrderUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)
    estimated_delivery = serializers.DateTimeField(required=False, allow_null=True)
    special_instructions = serializers.CharField(required=False, allow_blank=True, max_length=500)
    note = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate(self, data):
        if not data:
            raise ValidationError("Nothing to update")
        return data


class BulkStatusUpdateSerializer(serializers.Serializer):
    order_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    bulk_action = serializers.BooleanField(default=True)
