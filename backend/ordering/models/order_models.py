import random
import time
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from ..choices import DeliveryType, OrderStatus, PaymentStatus
from .. import pricing


class Order(models.Model):
    order_id = models.AutoField(primary_key=True)
    order_number = models.CharField(max_length=20, unique=True, editable=False)
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='orders'
    )

    # Order details
    delivery_type = models.CharField(max_length=10, choices=DeliveryType.choices, default=DeliveryType.DELIVERY)
    delivery_address = models.TextField(blank=True, default='')
    contact_phone = models.CharField(max_length=20, blank=True, default='')
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    special_instructions = models.TextField(blank=True, default='')

    # Pricing
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(0)])
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(0)])
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(0)])
    tip_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(0)])
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(0)])

    # Scheduling
    scheduled_for = models.DateTimeField(null=True, blank=True)
    estimated_delivery = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    preparation_started_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    out_for_delivery_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    STATUS_TIMESTAMP_FIELDS = {
        OrderStatus.CONFIRMED: 'confirmed_at',
        OrderStatus.PREPARING: 'preparation_started_at',
        OrderStatus.READY: 'ready_at',
        OrderStatus.OUT_FOR_DELIVERY: 'out_for_delivery_at',
        OrderStatus.DELIVERED: 'delivered_at',
        OrderStatus.CANCELLED: 'cancelled_at',
    }

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='orders_status_idx'),
            models.Index(fields=['created_at'], name='orders_created_at_idx'),
            models.Index(fields=['customer', 'created_at'], name='orders_customer_created_idx'),
        ]

    def __str__(self):
        return f"Order #{self.order_number} - {self.customer.username}"

    @staticmethod
    def generate_order_number():
        """ORD + last six digits of the millisecond clock + three random digits"""
        while True:
            number = f"ORD{str(int(time.time() * 1000))[-6:]}{random.randint(0, 999):03d}"
            if not Order.objects.filter(order_number=number).exists():
                return number

    def save(self, *args, **kwargs):
        if not self.order_number:
            self.order_number = self.generate_order_number()

        self.subtotal = pricing.to_money(self.subtotal)
        self.tax_amount = pricing.to_money(self.tax_amount)
        self.delivery_fee = pricing.to_money(self.delivery_fee)
        self.tip_amount = pricing.to_money(self.tip_amount)
        self.total_amount = self.subtotal + self.tax_amount + self.delivery_fee + self.tip_amount
        super().save(*args, **kwargs)

    def update_status(self, new_status):
        """Update order status and set the matching timestamp"""
        self.status = new_status
        timestamp_field = self.STATUS_TIMESTAMP_FIELDS.get(new_status)
        if timestamp_field:
            setattr(self, timestamp_field, timezone.now())
        self.save()

    @property
    def total_items(self):
        return sum(item.quantity for item in self.items.all())


class OrderItem(models.Model):
    order_item_id = models.AutoField(primary_key=True)
    order = models.ForeignKey(
        'ordering.Order',
        on_delete=models.CASCADE,
        related_name='items'
    )
    menu_item = models.ForeignKey(
        'ordering.MenuItem',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='order_items'
    )

    # Frozen copy of the cart line at checkout
    name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    total_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    customizations = models.JSONField(default=list, blank=True)
    special_instructions = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'order_items'
        ordering = ['order', 'order_item_id']

    def __str__(self):
        return f"{self.quantity}x {self.name} - Order #{self.order.order_number}"

    def save(self, *args, **kwargs):
        self.total_price = pricing.calculate_line_total(self.unit_price, self.quantity)
        super().save(*args, **kwargs)


class OrderTracking(models.Model):
    tracking_id = models.AutoField(primary_key=True)
    order = models.ForeignKey(
        'ordering.Order',
        on_delete=models.CASCADE,
        related_name='tracking_history'
    )

    status = models.CharField(max_length=20, choices=OrderStatus.choices)
    previous_status = models.CharField(max_length=20, choices=OrderStatus.choices, blank=True, default='')
    description = models.TextField(blank=True, default='')

    # Staff who updated the status
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='order_updates'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_tracking'
        ordering = ['order', 'created_at']
        verbose_name_plural = 'order tracking'

    def __str__(self):
        return f"Order #{self.order.order_number} - {self.status} at {self.created_at}"


class Cart(models.Model):
    cart_id = models.AutoField(primary_key=True)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='cart'
    )
    last_sync_timestamp = models.BigIntegerField(default=0, help_text="Client clock (ms) of the last sync")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'carts'
        ordering = ['-updated_at']

    def __str__(self):
        return f"Cart - {self.user.username}"

    @property
    def total_items(self):
        return sum(item.quantity for item in self.items.all())

    @property
    def subtotal(self):
        return pricing.calculate_subtotal(self.items.all())

    def get_totals(self):
        from ..conf import delivery_fee, tax_rate
        return pricing.calculate_totals(self.items.all(), tax_rate(), delivery_fee())


class CartItem(models.Model):
    cart_item_id = models.AutoField(primary_key=True)
    cart = models.ForeignKey(
        'ordering.Cart',
        on_delete=models.CASCADE,
        related_name='items'
    )
    menu_item = models.ForeignKey(
        'ordering.MenuItem',
        on_delete=models.CASCADE,
        related_name='cart_items'
    )

    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    total_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    selected_customizations = models.JSONField(default=list, blank=True)
    special_instructions = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'cart_items'
        ordering = ['cart', 'created_at', 'cart_item_id']

    def __str__(self):
        return f"{self.quantity}x {self.menu_item.name} - Cart #{self.cart.cart_id}"

    def save(self, *args, **kwargs):
        self.total_price = pricing.calculate_line_total(self.unit_price, self.quantity)
        super().save(*args, **kwargs)
