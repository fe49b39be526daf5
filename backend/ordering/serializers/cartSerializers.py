from rest_framework import serializers
from rest_framework.exceptions import ValidationError

from ..choices import CustomizationType
from ..models import Cart, CartItem, CustomizationOption, MenuItem
from .. import pricing


class SelectedCustomizationSerializer(serializers.Serializer):
    customization_id = serializers.IntegerField(min_value=1)
    customization_name = serializers.CharField(required=False, allow_blank=True, default='')
    option_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, default=list)
    option_names = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    text_value = serializers.CharField(required=False, allow_blank=True, default='')


class CartLineItemSerializer(serializers.Serializer):
    """Shape of one line in a client-held cart snapshot"""
    id = serializers.CharField(required=False, allow_blank=False, max_length=64)
    menu_item_id = serializers.IntegerField(min_value=1)
    name = serializers.CharField(max_length=255)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    selected_customizations = SelectedCustomizationSerializer(many=True, required=False, default=list)
    special_instructions = serializers.CharField(required=False, allow_blank=True, default='')
    image = serializers.CharField(required=False, allow_blank=True, default='')


def _validate_customizations(menu_item, selections):
    """Check required groups and selection limits; return the option price deltas."""
    selected = {selection['customization_id']: selection for selection in selections}
    for customization in menu_item.customizations.all():
        selection = selected.get(customization.customization_id)
        chosen = (selection or {}).get('option_ids') or []
        text_value = (selection or {}).get('text_value') or ''

        if customization.required and not chosen and not text_value:
            raise ValidationError({'selected_customizations': f"{customization.name} is required"})
        if customization.type == CustomizationType.RADIO and len(chosen) > 1:
            raise ValidationError({'selected_customizations': f"Choose only one option for {customization.name}"})
        if customization.max_selections and len(chosen) > customization.max_selections:
            raise ValidationError({
                'selected_customizations': f"Choose at most {customization.max_selections} options for {customization.name}"
            })

    known_ids = set(menu_item.customizations.values_list('customization_id', flat=True))
    unknown = [cid for cid in selected if cid not in known_ids]
    if unknown:
        raise ValidationError({'selected_customizations': f"Unknown customization(s): {unknown}"})

    try:
        return menu_item.option_price_modifiers(selections)
    except CustomizationOption.DoesNotExist as e:
        raise ValidationError({'selected_customizations': str(e)})


class AddCartItemSerializer(serializers.Serializer):
    menu_item = serializers.PrimaryKeyRelatedField(queryset=MenuItem.objects.select_related('category'))
    quantity = serializers.IntegerField(min_value=1, default=1)
    selected_customizations = SelectedCustomizationSerializer(many=True, required=False, default=list)
    special_instructions = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_menu_item(self, value):
        """Validate that menu item is available"""
        if not value.is_orderable:
            raise ValidationError("This menu item is not available")
        return value

    def validate(self, data):
        modifiers = _validate_customizations(data['menu_item'], data['selected_customizations'])
        data['unit_price'] = pricing.calculate_unit_price(data['menu_item'].base_price, modifiers)
        return data


class UpdateCartItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(required=False)
    selected_customizations = SelectedCustomizationSerializer(many=True, required=False)
    special_instructions = serializers.CharField(required=False, allow_blank=True)

    def validate(self, data):
        if not data:
            raise ValidationError("Nothing to update")
        menu_item = self.context.get('menu_item')
        if menu_item is not None and 'selected_customizations' in data:
            modifiers = _validate_customizations(menu_item, data['selected_customizations'])
            data['unit_price'] = pricing.calculate_unit_price(menu_item.base_price, modifiers)
        return data


class CartSyncSerializer(serializers.Serializer):
    MODE_CHOICES = (
        ('merge', 'Merge into the server cart'),
        ('replace', 'Replace the server cart'),
    )

    items = CartLineItemSerializer(many=True)
    mode = serializers.ChoiceField(choices=MODE_CHOICES, default='merge')
    last_sync_timestamp = serializers.IntegerField(required=False, min_value=0)


class CartItemSerializer(serializers.ModelSerializer):
    menu_item_name = serializers.CharField(source='menu_item.name', read_only=True)
    menu_item_slug = serializers.CharField(source='menu_item.slug', read_only=True)
    image = serializers.CharField(source='menu_item.image', read_only=True)

    class Meta:
        model = CartItem
        fields = [
            'cart_item_id', 'menu_item', 'menu_item_name', 'menu_item_slug', 'image', 'quantity',
            'unit_price', 'total_price', 'selected_customizations', 'special_instructions'
        ]
        read_only_fields = fields


class CartSerializer(serializers.ModelSerializer):
    items = CartItemSerializer(many=True, read_only=True)
    totals = serializers.SerializerMethodField()

    class Meta:
        model = Cart
        fields = ['cart_id', 'items', 'totals', 'last_sync_timestamp', 'updated_at']
        read_only_fields = fields

    def get_totals(self, obj):
        return {key: str(value) if key != 'total_items' else value
                for key, value in obj.get_totals().as_dict().items()}
