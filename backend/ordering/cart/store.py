"""
Client-context cart state.

CartStore is an explicit state container: line items live in memory, every
mutation is validated first and then saved through an injected storage
backend under the cart storage key. Totals are derived on read.
"""
import json
import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import List, Optional

from django.core.serializers.json import DjangoJSONEncoder

from ..conf import delivery_fee, get_setting, tax_rate
from ..exceptions import CartPersistenceError, CartValidationError
from .. import pricing
from .storage import MemoryCartStorage

logger = logging.getLogger(__name__)


def now_ms():
    return int(time.time() * 1000)


def normalize_customizations(selections):
    """Canonical, order-independent form of a list of customization selections."""
    normalized = []
    for selection in selections or []:
        normalized.append({
            'customization_id': selection['customization_id'],
            'option_ids': sorted(selection.get('option_ids') or []),
            'text_value': selection.get('text_value') or '',
        })
    return sorted(normalized, key=lambda s: s['customization_id'])


@dataclass
class CartLineItem:
    id: str
    menu_item_id: int
    name: str
    quantity: int
    unit_price: Decimal
    selected_customizations: List[dict] = field(default_factory=list)
    special_instructions: str = ''
    image: str = ''

    @property
    def total_price(self):
        return pricing.calculate_line_total(self.unit_price, self.quantity)

    @property
    def identity(self):
        return (self.menu_item_id, json.dumps(normalize_customizations(self.selected_customizations), sort_keys=True))

    def to_dict(self):
        return {
            'id': self.id,
            'menu_item_id': self.menu_item_id,
            'name': self.name,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'total_price': self.total_price,
            'selected_customizations': self.selected_customizations,
            'special_instructions': self.special_instructions,
            'image': self.image,
        }

    @classmethod
    def from_validated(cls, data):
        return cls(
            id=data.get('id') or uuid.uuid4().hex,
            menu_item_id=data['menu_item_id'],
            name=data['name'],
            quantity=data['quantity'],
            unit_price=pricing.to_money(data['unit_price']),
            selected_customizations=[dict(s) for s in data.get('selected_customizations') or []],
            special_instructions=data.get('special_instructions') or '',
            image=data.get('image') or '',
        )


def validate_line(data):
    """Run a raw line through CartLineItemSerializer; raise CartValidationError on failure."""
    from ..serializers.cartSerializers import CartLineItemSerializer

    if isinstance(data, CartLineItem):
        data = data.to_dict()
    serializer = CartLineItemSerializer(data=data)
    if not serializer.is_valid():
        raise CartValidationError("Invalid cart item", details=serializer.errors)
    return CartLineItem.from_validated(serializer.validated_data)


class CartStore:
    def __init__(self, storage=None, name=None, version=None, tax_rate_value=None,
                 delivery_fee_value=None, clock=now_ms):
        self.storage = storage if storage is not None else MemoryCartStorage()
        self.name = name or get_setting('CART_STORAGE_NAME')
        self.version = version or get_setting('CART_STORAGE_VERSION')
        self.tax_rate = tax_rate_value if tax_rate_value is not None else tax_rate()
        self.delivery_fee = delivery_fee_value if delivery_fee_value is not None else delivery_fee()
        self.clock = clock

        self.items: List[CartLineItem] = []
        self.last_sync_timestamp = 0
        self.is_hydrated = False
        self.persistence_error: Optional[str] = None
        self._listeners = []

    # Listeners

    def subscribe(self, listener):
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        for listener in list(self._listeners):
            listener(self)

    # Persistence

    def snapshot(self):
        return {
            'state': {
                'items': [item.to_dict() for item in self.items],
                'last_sync_timestamp': self.last_sync_timestamp,
            },
            'version': self.version,
        }

    def _persist(self):
        try:
            payload = json.dumps(self.snapshot(), cls=DjangoJSONEncoder)
            self.storage.set_item(self.name, payload, source=self)
        except (CartPersistenceError, TypeError, ValueError) as e:
            self.persistence_error = str(e)
            logger.error(f"Failed to save cart to storage: {str(e)}")
            return False
        self.persistence_error = None
        return True

    def retry_persist(self):
        """Write the current in-memory state again after a persistence failure."""
        return self._persist()

    def _commit(self, items):
        self.items = items
        self.last_sync_timestamp = self.clock()
        self._persist()
        self._notify()

    def parse_payload(self, raw):
        """Decode a stored payload into (items, last_sync_timestamp).

        Payloads written under an older version are discarded and yield an
        empty cart. Lines that fail validation are dropped.
        """
        if not raw:
            return [], 0
        payload = json.loads(raw) if isinstance(raw, str) else raw
        if not isinstance(payload, dict):
            raise CartPersistenceError("Stored cart is not an object")
        version = payload.get('version', 0)
        if not isinstance(version, int) or isinstance(version, bool):
            raise CartPersistenceError(f"Stored cart has an invalid version: {version!r}")
        if version < self.version:
            logger.info(f"Discarding cart payload from version {version}")
            return [], self.clock()

        state = payload.get('state') or {}
        if not isinstance(state, dict) or not isinstance(state.get('items') or [], list):
            raise CartPersistenceError("Stored cart state is malformed")
        raw_items = state.get('items') or []
        try:
            timestamp = int(state.get('last_sync_timestamp') or 0)
        except (TypeError, ValueError) as e:
            raise CartPersistenceError(f"Stored cart has an invalid timestamp: {str(e)}") from e

        items = []
        for raw_item in raw_items:
            try:
                items.append(validate_line(raw_item))
            except CartValidationError as e:
                logger.warning(f"Dropping invalid stored cart item: {e.details}")
        return items, timestamp

    def rehydrate(self):
        """Load state from storage, then validate the loaded lines."""
        try:
            raw = self.storage.get_item(self.name)
            items, timestamp = self.parse_payload(raw)
        except (CartPersistenceError, TypeError, AttributeError, ValueError) as e:
            logger.error(f"Failed to load cart from storage: {str(e)}")
            raise CartPersistenceError(f"Failed to load cart from storage: {str(e)}") from e

        self.items = items
        self.last_sync_timestamp = timestamp
        self.is_hydrated = True
        self.validate_cart_items()
        self._notify()
        return self

    def load_snapshot(self, items, last_sync_timestamp):
        """Overwrite in-memory state without writing back to storage."""
        self.items = list(items)
        self.last_sync_timestamp = last_sync_timestamp
        self._notify()

    # Mutations

    def add_item(self, item):
        """Add a line, merging quantities into an identical existing line."""
        line = validate_line(item)
        items = list(self.items)
        for index, existing in enumerate(items):
            if existing.identity == line.identity:
                merged = replace(existing, quantity=existing.quantity + line.quantity)
                items[index] = merged
                self._commit(items)
                return merged

        if any(existing.id == line.id for existing in items):
            line.id = uuid.uuid4().hex
        items.append(line)
        self._commit(items)
        return line

    def remove_item(self, item_id):
        items = [item for item in self.items if item.id != item_id]
        if len(items) != len(self.items):
            self._commit(items)

    def update_quantity(self, item_id, quantity):
        if quantity <= 0:
            self.remove_item(item_id)
            return
        if self.get_item_by_id(item_id) is None:
            return
        items = [
            replace(item, quantity=int(quantity)) if item.id == item_id else item
            for item in self.items
        ]
        self._commit(items)

    def update_customizations(self, item_id, customizations, unit_price=None):
        current = self.get_item_by_id(item_id)
        if current is None:
            return
        data = current.to_dict()
        data['selected_customizations'] = customizations
        if unit_price is not None:
            data['unit_price'] = unit_price
        updated = validate_line(data)
        self._commit([updated if item.id == item_id else item for item in self.items])

    def update_special_instructions(self, item_id, instructions):
        current = self.get_item_by_id(item_id)
        if current is None:
            return
        data = current.to_dict()
        data['special_instructions'] = instructions
        updated = validate_line(data)
        self._commit([updated if item.id == item_id else item for item in self.items])

    def clear_cart(self):
        self._commit([])

    def validate_cart_items(self):
        """Drop incomplete lines and empty customization selections."""
        cleaned = []
        changed = False
        for item in self.items:
            if not (item.id and item.menu_item_id and item.name and item.quantity > 0 and item.unit_price >= 0):
                logger.info(f"Filtering out invalid cart item {item.id}")
                changed = True
                continue
            selections = [
                s for s in item.selected_customizations
                if s.get('customization_id') and (s.get('option_ids') or s.get('text_value'))
            ]
            if len(selections) != len(item.selected_customizations):
                changed = True
                item = replace(item, selected_customizations=selections)
            cleaned.append(item)

        if changed:
            self._commit(cleaned)
        return changed

    # Queries

    def get_item_by_id(self, item_id):
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def has_items(self):
        return len(self.items) > 0

    def get_total_items(self):
        return sum(item.quantity for item in self.items)

    def get_subtotal(self):
        return pricing.calculate_subtotal(self.items)

    def get_tax(self):
        return pricing.calculate_tax(self.get_subtotal(), self.tax_rate)

    def get_delivery_fee(self):
        return pricing.calculate_delivery_fee(self.get_subtotal(), self.delivery_fee)

    def get_total(self):
        return self.get_totals().total

    def get_totals(self):
        return pricing.calculate_totals(self.items, self.tax_rate, self.delivery_fee)
