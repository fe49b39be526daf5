import asyncio

from django.core.management.base import BaseCommand, CommandError

from ordering.cart.remote import RemoteCartClient
from ordering.cart.storage import CacheCartStorage
from ordering.cart.store import CartStore
from ordering.cart.sync import CartSynchronizer


class Command(BaseCommand):
    help = 'Keep a cache-backed cart in sync with a remote cart API'

    def add_arguments(self, parser):
        parser.add_argument('--base-url', required=True, help='Base URL of the cart API, e.g. https://host/api')
        parser.add_argument('--token', default=None, help='JWT access token for the remote account')
        parser.add_argument('--prefix', default='', help='Cache key prefix for the cart storage key')
        parser.add_argument('--interval', type=int, default=None, help='Seconds between syncs')
        parser.add_argument('--once', action='store_true', help='Sync once and exit')

    def handle(self, *args, **options):
        store = CartStore(storage=CacheCartStorage(prefix=options['prefix']))
        synchronizer = CartSynchronizer(
            store,
            remote=RemoteCartClient(options['base_url'], access_token=options['token']),
            interval=options['interval'],
        )

        if not synchronizer.initialize():
            raise CommandError(f'Cart initialization failed: {synchronizer.error_message}')

        if options['once']:
            result = synchronizer.manual_sync()
            if not result['success']:
                raise CommandError(f"Cart sync failed: {result['error']}")
            self.stdout.write(self.style.SUCCESS(f'Synced {store.get_total_items()} items'))
            return

        self.stdout.write(f'Syncing every {synchronizer.interval}s, press Ctrl+C to stop')
        try:
            asyncio.run(synchronizer.run())
        except KeyboardInterrupt:
            self.stdout.write('Stopped')
        finally:
            synchronizer.shutdown()
