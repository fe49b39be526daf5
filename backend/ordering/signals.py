from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Cart, CartItem, MenuItem


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_cart(sender, instance, created, **kwargs):
    """Every new account starts with an empty server cart"""
    if created:
        Cart.objects.get_or_create(user=instance)


@receiver(post_save, sender=MenuItem)
def drop_unorderable_items_from_carts(sender, instance, created, **kwargs):
    """Remove a menu item from server carts once it can no longer be ordered"""
    if created or instance.is_orderable:
        return
    CartItem.objects.filter(menu_item=instance).delete()
