from .user_models import User, Address
from .menu_models import MenuCategory, MenuItem, Customization, CustomizationOption, Package, PackageItem
from .order_models import Order, OrderItem, OrderTracking, Cart, CartItem
from .realtime_models import Notification



__all__ = [ 'User', 'Address', 'MenuCategory', 'MenuItem', 'Customization', 'CustomizationOption', 'Package', 'PackageItem', 'Order', 'OrderItem', 'OrderTracking', 'Cart', 'CartItem', 'Notification' ]
