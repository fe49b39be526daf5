from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin

from .choices import OrderStatus
from .models import (
    Address, Cart, CartItem, Customization, CustomizationOption, MenuCategory, MenuItem,
    Notification, Order, OrderItem, OrderTracking, Package, PackageItem, User,
)
from .order_lifecycle import OrderStatusService
from .services.notification_service import NotificationService


@admin.register(User)
class CustomUserAdmin(UserAdmin):
    list_display = ('username', 'email', 'first_name', 'last_name', 'user_type', 'is_staff', 'is_active', 'created_at')
    list_filter = ('user_type', 'is_staff', 'is_active', 'created_at')
    search_fields = ('username', 'email', 'first_name', 'last_name')
    ordering = ('-created_at',)
    fieldsets = UserAdmin.fieldsets + (
        ('Custom Information', {'fields': ('user_type', 'phone_number', 'is_verified', 'created_at')}),
    )
    readonly_fields = ('created_at',)

    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Custom Information', {
            'fields': ('user_type', 'phone_number', 'email', 'first_name', 'last_name')
        }),
    )


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ['street', 'city', 'province', 'postal_code', 'user', 'is_default']
    list_filter = ['city', 'province']
    search_fields = ['street', 'city', 'postal_code', 'user__username']


@admin.register(MenuCategory)
class MenuCategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'display_order', 'is_active']
    list_editable = ['display_order', 'is_active']
    search_fields = ['name']


class CustomizationOptionInline(admin.TabularInline):
    model = CustomizationOption
    extra = 0


@admin.register(Customization)
class CustomizationAdmin(admin.ModelAdmin):
    list_display = ['name', 'menu_item', 'type', 'required', 'max_selections']
    list_filter = ['type', 'required']
    search_fields = ['name', 'menu_item__name']
    inlines = [CustomizationOptionInline]


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'base_price', 'status', 'preparation_time']
    list_filter = ['status', 'category']
    search_fields = ['name', 'description']
    list_editable = ['status']
    prepopulated_fields = {'slug': ('name',)}


class PackageItemInline(admin.TabularInline):
    model = PackageItem
    extra = 0


@admin.register(Package)
class PackageAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'price', 'is_active', 'created_at']
    list_filter = ['type', 'is_active']
    search_fields = ['name']
    inlines = [PackageItemInline]


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['name', 'quantity', 'unit_price', 'total_price', 'customizations']


class OrderTrackingInline(admin.TabularInline):
    model = OrderTracking
    extra = 0
    readonly_fields = ['status', 'previous_status', 'description', 'updated_by', 'created_at']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer', 'status', 'payment_status', 'delivery_type', 'total_amount', 'created_at']
    list_filter = ['status', 'payment_status', 'delivery_type', 'created_at']
    search_fields = ['order_number', 'customer__username', 'customer__email']
    readonly_fields = ['order_number', 'subtotal', 'tax_amount', 'delivery_fee', 'total_amount', 'created_at', 'updated_at']
    inlines = [OrderItemInline, OrderTrackingInline]
    actions = ['mark_confirmed', 'mark_preparing', 'mark_ready', 'mark_out_for_delivery', 'mark_delivered', 'mark_cancelled']

    def _bulk_status(self, request, queryset, new_status):
        result = OrderStatusService.bulk_update_status(
            list(queryset.values_list('order_id', flat=True)), new_status, updated_by=request.user
        )
        if result.failed_notification_ids:
            self.message_user(
                request,
                f"Notifications failed for {len(result.failed_notification_ids)} orders",
                messages.WARNING
            )
        self.message_user(request, f'{len(result.changed_ids)} orders moved to {OrderStatus(new_status).label}.', messages.SUCCESS)

    @admin.action(description="Mark selected orders as confirmed")
    def mark_confirmed(self, request, queryset):
        self._bulk_status(request, queryset, OrderStatus.CONFIRMED)

    @admin.action(description="Mark selected orders as preparing")
    def mark_preparing(self, request, queryset):
        self._bulk_status(request, queryset, OrderStatus.PREPARING)

    @admin.action(description="Mark selected orders as ready")
    def mark_ready(self, request, queryset):
        self._bulk_status(request, queryset, OrderStatus.READY)

    @admin.action(description="Mark selected orders as out for delivery")
    def mark_out_for_delivery(self, request, queryset):
        self._bulk_status(request, queryset, OrderStatus.OUT_FOR_DELIVERY)

    @admin.action(description="Mark selected orders as delivered")
    def mark_delivered(self, request, queryset):
        self._bulk_status(request, queryset, OrderStatus.DELIVERED)

    @admin.action(description="Cancel selected orders")
    def mark_cancelled(self, request, queryset):
        self._bulk_status(request, queryset, OrderStatus.CANCELLED)


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ['user', 'total_items', 'subtotal', 'updated_at']
    search_fields = ['user__username', 'user__email']
    readonly_fields = ['last_sync_timestamp', 'created_at', 'updated_at']
    inlines = [CartItemInline]


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['title_short', 'user', 'type', 'status', 'attempts', 'is_read', 'created_at']
    list_filter = ['type', 'status', 'is_read', 'created_at']
    search_fields = ['user__username', 'title']
    readonly_fields = ['notification_id', 'attempts', 'last_error', 'created_at', 'sent_at']
    actions = ['mark_as_read', 'retry_delivery']

    def title_short(self, obj):
        return obj.title[:50] + '...' if len(obj.title) > 50 else obj.title
    title_short.short_description = 'Title'

    def mark_as_read(self, request, queryset):
        updated = queryset.update(is_read=True)
        self.message_user(request, f'{updated} notifications marked as read.')

    @admin.action(description="Retry delivery of selected notifications")
    def retry_delivery(self, request, queryset):
        delivered = 0
        for notification in queryset.select_related('user', 'order'):
            try:
                NotificationService.deliver(notification)
                delivered += 1
            except Exception as e:
                self.message_user(request, f"Failed to deliver {notification.notification_id}: {str(e)}", messages.ERROR)
        self.message_user(request, f'{delivered} notifications delivered.', messages.SUCCESS)
