from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from ..choices import CustomizationType, ItemStatus, PackageType


class MenuCategory(models.Model):
    category_id = models.AutoField(primary_key=True)
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True, default='')
    display_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'menu_categories'
        ordering = ['display_order', 'name']
        verbose_name_plural = 'menu categories'

    def __str__(self):
        return self.name


class MenuItem(models.Model):
    item_id = models.AutoField(primary_key=True)
    category = models.ForeignKey(
        'ordering.MenuCategory',
        on_delete=models.PROTECT,
        related_name='menu_items'
    )
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    description = models.TextField(blank=True, default='')
    base_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    image = models.CharField(max_length=500, blank=True, default='')
    status = models.CharField(max_length=20, choices=ItemStatus.choices, default=ItemStatus.ACTIVE)
    tags = models.JSONField(default=list, blank=True)
    preparation_time = models.IntegerField(help_text="Preparation time in minutes", default=15)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'menu_items'
        ordering = ['category__display_order', 'name']
        indexes = [
            models.Index(fields=['status'], name='menu_items_status_idx'),
        ]

    def __str__(self):
        return self.name

    @property
    def is_orderable(self):
        return self.status in (ItemStatus.ACTIVE, ItemStatus.LOW_STOCK)

    def option_price_modifiers(self, selected_customizations):
        """Price deltas of the selected, available options of this item.

        Raises CustomizationOption.DoesNotExist if an option id does not
        belong to this item.
        """
        modifiers = []
        for selection in selected_customizations or []:
            option_ids = selection.get('option_ids') or []
            if not option_ids:
                continue
            options = CustomizationOption.objects.filter(
                customization__menu_item=self,
                customization_id=selection.get('customization_id'),
                option_id__in=option_ids,
                is_available=True,
            )
            if options.count() != len(set(option_ids)):
                raise CustomizationOption.DoesNotExist(
                    f"Invalid option for customization {selection.get('customization_id')}"
                )
            modifiers.extend(option.price_modifier for option in options)
        return modifiers


class Customization(models.Model):
    customization_id = models.AutoField(primary_key=True)
    menu_item = models.ForeignKey(
        'ordering.MenuItem',
        on_delete=models.CASCADE,
        related_name='customizations'
    )
    name = models.CharField(max_length=100)
    type = models.CharField(max_length=10, choices=CustomizationType.choices, default=CustomizationType.RADIO)
    required = models.BooleanField(default=False)
    max_selections = models.IntegerField(null=True, blank=True, validators=[MinValueValidator(1)])

    class Meta:
        db_table = 'customizations'
        ordering = ['customization_id']
        unique_together = ['menu_item', 'name']

    def __str__(self):
        return f"{self.menu_item.name} - {self.name}"


class CustomizationOption(models.Model):
    option_id = models.AutoField(primary_key=True)
    customization = models.ForeignKey(
        'ordering.Customization',
        on_delete=models.CASCADE,
        related_name='options'
    )
    name = models.CharField(max_length=100)
    price_modifier = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    is_available = models.BooleanField(default=True)

    class Meta:
        db_table = 'customization_options'
        ordering = ['option_id']

    def __str__(self):
        return f"{self.customization.name} - {self.name}"


class Package(models.Model):
    package_id = models.AutoField(primary_key=True)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, null=True, blank=True)
    description = models.TextField(blank=True, default='')
    type = models.CharField(max_length=10, choices=PackageType.choices, default=PackageType.DAILY)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    image = models.CharField(max_length=500, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    features = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'packages'
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    @property
    def original_price(self):
        """Sum of the included items bought individually"""
        total = Decimal('0')
        for item in self.included_items.all():
            total += item.menu_item.base_price * item.quantity
        return total

    @property
    def savings_amount(self):
        return max(Decimal('0'), self.original_price - self.price)


class PackageItem(models.Model):
    package_item_id = models.AutoField(primary_key=True)
    package = models.ForeignKey(
        'ordering.Package',
        on_delete=models.CASCADE,
        related_name='included_items'
    )
    menu_item = models.ForeignKey(
        'ordering.MenuItem',
        on_delete=models.PROTECT,
        related_name='package_items'
    )
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    included_customizations = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = 'package_items'
        ordering = ['package', 'package_item_id']

    def __str__(self):
        return f"{self.quantity}x {self.menu_item.name} - {self.package.name}"
