from .menuViews import MenuCategoryListView, MenuItemListView, MenuItemDetailView
from .packageViews import PackageListView, PackageDetailView, PackageBySlugView
from .cartViews import CartDetailView, CartItemCreateView, CartItemDetailView, CartSyncView
from .guestCartViews import GuestCartView, GuestCartItemView
from .orderViews import OrderListCreateView, OrderDetailView, OrderTimelineView
from .adminOrderViews import (
    AdminOrderListView, AdminOrderDetailView, AdminOrderTimelineView, AdminOrderStatsView
)
from .dashboardViews import AdminDashboardStatsView
