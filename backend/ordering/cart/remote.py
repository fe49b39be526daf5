import json
import logging

import requests
from django.core.serializers.json import DjangoJSONEncoder

from ..exceptions import RemoteSyncError

logger = logging.getLogger(__name__)


class RemoteCartClient:
    """Talks to the server-held cart over the public cart API."""

    def __init__(self, base_url, access_token=None, timeout=10, session=None):
        self.base_url = base_url.rstrip('/')
        self.access_token = access_token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self):
        headers = {'Content-Type': 'application/json'}
        if self.access_token:
            headers['Authorization'] = f'Bearer {self.access_token}'
        return headers

    def _handle(self, response):
        if response.status_code >= 400:
            logger.error(f"Cart API error: {response.status_code} - {response.text}")
            raise RemoteSyncError(f"Cart API returned {response.status_code}")
        try:
            body = response.json()
        except ValueError as e:
            raise RemoteSyncError("Cart API returned invalid JSON") from e
        if not body.get('success', False):
            raise RemoteSyncError(body.get('error') or 'Cart sync rejected')
        return body.get('data')

    def push(self, snapshot, mode='replace'):
        """Send a store snapshot to POST /cart/sync/ and return the server cart."""
        state = snapshot.get('state', {})
        payload = {
            'items': state.get('items', []),
            'mode': mode,
            'last_sync_timestamp': state.get('last_sync_timestamp', 0),
        }
        try:
            response = self.session.post(
                f'{self.base_url}/cart/sync/',
                headers=self._headers(),
                data=json.dumps(payload, cls=DjangoJSONEncoder),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Error syncing cart: {str(e)}")
            raise RemoteSyncError(f"Error syncing cart: {str(e)}") from e
        return self._handle(response)

    def fetch(self):
        try:
            response = self.session.get(f'{self.base_url}/cart/', headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error fetching cart: {str(e)}")
            raise RemoteSyncError(f"Error fetching cart: {str(e)}") from e
        return self._handle(response)
