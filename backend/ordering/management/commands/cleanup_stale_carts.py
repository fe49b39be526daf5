from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from ordering.conf import get_setting
from ordering.models import CartItem


class Command(BaseCommand):
    help = 'Empty server carts that have not been touched for a while'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=None,
            help='Days of inactivity after which a cart is considered stale'
        )

    def handle(self, *args, **options):
        days = options['days']
        if days is None:
            days = get_setting('STALE_CART_DAYS')
        cutoff_time = timezone.now() - timedelta(days=days)

        stale_items = CartItem.objects.filter(cart__updated_at__lt=cutoff_time)
        count = stale_items.count()

        if count > 0:
            self.stdout.write(f'Found {count} items in carts idle for more than {days} days')
            stale_items.delete()
            self.stdout.write(
                self.style.SUCCESS(f'Successfully removed {count} stale cart items')
            )
        else:
            self.stdout.write('No stale carts found')
