from .menuSerializers import (
    MenuCategorySerializer, CustomizationSerializer, CustomizationOptionSerializer,
    MenuItemSerializer, MenuItemSummarySerializer, PackageSerializer, PackageItemSerializer
)
from .cartSerializers import (
    SelectedCustomizationSerializer, CartLineItemSerializer, AddCartItemSerializer,
    UpdateCartItemSerializer, CartSyncSerializer, CartItemSerializer, CartSerializer
)
from .orderSerializer import (
    CheckoutItemSerializer, CheckoutSerializer, OrderItemSerializer, OrderTrackingSerializer,
    OrderSerializer, OrderListSerializer, AdminOrderUpdateSerializer, BulkStatusUpdateSerializer
)
