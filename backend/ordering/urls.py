from django.urls import path

from .views import (
    MenuCategoryListView, MenuItemListView, MenuItemDetailView, PackageListView, PackageDetailView,
    PackageBySlugView, CartDetailView, CartItemCreateView, CartItemDetailView, CartSyncView,
    GuestCartView, GuestCartItemView, OrderListCreateView, OrderDetailView, OrderTimelineView,
    AdminOrderListView, AdminOrderDetailView, AdminOrderTimelineView, AdminOrderStatsView,
    AdminDashboardStatsView
)

urlpatterns = [
    # Menu
    path('menu/categories/', MenuCategoryListView.as_view(), name='menu_categories'),
    path('menu/items/', MenuItemListView.as_view(), name='menu_items'),
    path('menu/items/<slug:slug>/', MenuItemDetailView.as_view(), name='menu_item_detail'),

    # Packages
    path('packages/', PackageListView.as_view(), name='packages'),
    path('packages/<int:package_id>/', PackageDetailView.as_view(), name='package_detail'),
    path('packages/slug/<slug:slug>/', PackageBySlugView.as_view(), name='package_by_slug'),

    # Cart (authenticated, server-held)
    path('cart/', CartDetailView.as_view(), name='cart'),
    path('cart/items/', CartItemCreateView.as_view(), name='cart_items'),
    path('cart/items/<int:item_id>/', CartItemDetailView.as_view(), name='cart_item_detail'),
    path('cart/sync/', CartSyncView.as_view(), name='cart_sync'),

    # Cart (guest, session-held)
    path('cart/guest/', GuestCartView.as_view(), name='guest_cart'),
    path('cart/guest/items/<str:item_id>/', GuestCartItemView.as_view(), name='guest_cart_item'),

    # Orders
    path('orders/', OrderListCreateView.as_view(), name='orders'),
    path('orders/<int:order_id>/', OrderDetailView.as_view(), name='order_detail'),
    path('orders/<int:order_id>/timeline/', OrderTimelineView.as_view(), name='order_timeline'),

    # Admin
    path('admin/orders/', AdminOrderListView.as_view(), name='admin_orders'),
    path('admin/orders/stats/', AdminOrderStatsView.as_view(), name='admin_order_stats'),
    path('admin/orders/<int:order_id>/', AdminOrderDetailView.as_view(), name='admin_order_detail'),
    path('admin/orders/<int:order_id>/timeline/', AdminOrderTimelineView.as_view(), name='admin_order_timeline'),
    path('admin/dashboard/stats/', AdminDashboardStatsView.as_view(), name='admin_dashboard_stats'),
]
