from decimal import Decimal

from django.contrib.auth import get_user_model

from ordering.choices import CustomizationType, ItemStatus, UserType
from ordering.models import Customization, CustomizationOption, MenuCategory, MenuItem, Order, OrderItem

User = get_user_model()


def create_customer(username='customer', **kwargs):
    return User.objects.create_user(
        username=username,
        email=kwargs.pop('email', f'{username}@example.com'),
        password='Testpass123!',
        user_type=UserType.CUSTOMER,
        **kwargs
    )


def create_admin(username='admin'):
    return User.objects.create_user(
        username=username,
        email=f'{username}@example.com',
        password='Testpass123!',
        user_type=UserType.ADMIN,
        is_staff=True
    )


def create_menu_item(name='Butter Chicken', price='10.00', category=None, status=ItemStatus.ACTIVE):
    if category is None:
        category, _ = MenuCategory.objects.get_or_create(name='Mains', defaults={'display_order': 1})
    slug = name.lower().replace(' ', '-')
    return MenuItem.objects.create(
        category=category,
        name=name,
        slug=slug,
        description=f'{name} description',
        base_price=Decimal(price),
        status=status
    )


def add_spice_customization(menu_item, required=True):
    """RADIO group with a free and a paid option"""
    customization = Customization.objects.create(
        menu_item=menu_item,
        name='Spice Level',
        type=CustomizationType.RADIO,
        required=required
    )
    mild = CustomizationOption.objects.create(customization=customization, name='Mild', price_modifier=Decimal('0.00'))
    extra_hot = CustomizationOption.objects.create(
        customization=customization, name='Extra Hot', price_modifier=Decimal('1.50')
    )
    return customization, mild, extra_hot


def create_order(customer, menu_item, quantity=1, status='PENDING', **kwargs):
    unit_price = menu_item.base_price
    subtotal = unit_price * quantity
    order = Order.objects.create(
        customer=customer,
        delivery_address='123 Queen St W, Toronto, ON M5H 2M9',
        status=status,
        subtotal=subtotal,
        tax_amount=(subtotal * Decimal('0.13')).quantize(Decimal('0.01')),
        delivery_fee=Decimal('5.99'),
        **kwargs
    )
    OrderItem.objects.create(
        order=order,
        menu_item=menu_item,
        name=menu_item.name,
        quantity=quantity,
        unit_price=unit_price
    )
    return order
