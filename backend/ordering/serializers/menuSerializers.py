from rest_framework import serializers

from ..models import Customization, CustomizationOption, MenuCategory, MenuItem, Package, PackageItem


class MenuCategorySerializer(serializers.ModelSerializer):
    item_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = MenuCategory
        fields = ['category_id', 'name', 'description', 'display_order', 'is_active', 'item_count']
        read_only_fields = fields


class CustomizationOptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomizationOption
        fields = ['option_id', 'name', 'price_modifier', 'is_available']
        read_only_fields = fields


class CustomizationSerializer(serializers.ModelSerializer):
    options = CustomizationOptionSerializer(many=True, read_only=True)

    class Meta:
        model = Customization
        fields = ['customization_id', 'name', 'type', 'required', 'max_selections', 'options']
        read_only_fields = fields


class MenuItemSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True)
    customizations = CustomizationSerializer(many=True, read_only=True)

    class Meta:
        model = MenuItem
        fields = [
            'item_id', 'category', 'category_name', 'name', 'slug', 'description',
            'base_price', 'image', 'status', 'tags', 'preparation_time', 'customizations',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class MenuItemSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = MenuItem
        fields = ['item_id', 'name', 'slug', 'base_price', 'image', 'status']
        read_only_fields = fields


class PackageItemSerializer(serializers.ModelSerializer):
    menu_item = MenuItemSummarySerializer(read_only=True)

    class Meta:
        model = PackageItem
        fields = ['package_item_id', 'menu_item', 'quantity', 'included_customizations']
        read_only_fields = fields


class PackageSerializer(serializers.ModelSerializer):
    included_items = PackageItemSerializer(many=True, read_only=True)
    original_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    savings = serializers.DecimalField(source='savings_amount', max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = Package
        fields = [
            'package_id', 'name', 'slug', 'description', 'type', 'price', 'original_price',
            'savings', 'image', 'is_active', 'features', 'included_items', 'created_at', 'updated_at'
        ]
        read_only_fields = fields
