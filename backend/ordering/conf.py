from decimal import Decimal

from django.conf import settings

DEFAULTS = {
    'TAX_RATE': '0.13',
    'DELIVERY_FEE': '5.99',
    'CART_STORAGE_NAME': 'cart-storage',
    'CART_STORAGE_VERSION': 4,
    'CART_SYNC_INTERVAL': 30,
    'MAX_ORDER_ITEMS': 50,
    'STALE_CART_DAYS': 30,
}


def get_setting(name):
    """Read a value from settings.ORDERING, falling back to DEFAULTS."""
    overrides = getattr(settings, 'ORDERING', {}) or {}
    return overrides.get(name, DEFAULTS[name])


def tax_rate():
    return Decimal(str(get_setting('TAX_RATE')))


def delivery_fee():
    return Decimal(str(get_setting('DELIVERY_FEE')))
