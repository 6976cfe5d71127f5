"""Cart models: line items, carts and the sync state descriptor."""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from cartsync.money import multiply, round_money, to_decimal
from .schemas import CartDocument, LineItemDocument


def _json_safe(value: Any) -> Any:
    """Render Decimal and date attribute values the way the documents store them."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


class SyncState(str, Enum):
    """How the current cart was obtained."""
    LOADING = "loading"  # Initial fetch in flight
    AUTHORITATIVE = "authoritative"  # Last remote read/write succeeded
    DEGRADED = "degraded"  # Working from the local cache after a remote failure


@dataclass
class LineItem:
    """One product's presence in the cart."""
    id: str
    product_id: str
    quantity: int = 1
    unit_price_snapshot: Decimal = Decimal("0")  # Captured at insertion, display only
    name: str = ""
    image: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.id = str(self.id)
        self.product_id = str(self.product_id)
        self.unit_price_snapshot = to_decimal(self.unit_price_snapshot)

    @property
    def total_price(self) -> Decimal:
        """Display total for all units, from the price snapshot."""
        return round_money(multiply(self.unit_price_snapshot, self.quantity))

    def display_fields(self) -> Dict[str, Any]:
        """Denormalized product attributes sent along with an add request."""
        fields = _json_safe(self.attributes)
        fields["name"] = self.name
        fields["unitPriceSnapshot"] = str(self.unit_price_snapshot)
        # Legacy field read by the cart service
        fields["price"] = float(self.unit_price_snapshot)
        if self.image is not None:
            fields["image"] = self.image
        return fields

    def with_quantity(self, quantity: int) -> "LineItem":
        return replace(self, quantity=quantity, attributes=dict(self.attributes))

    def to_dict(self) -> dict:
        """Convert to the camelCase document form."""
        data = _json_safe(self.attributes)
        data.update({
            "id": self.id,
            "productId": self.product_id,
            "quantity": self.quantity,
            "unitPriceSnapshot": str(self.unit_price_snapshot),
            "name": self.name,
        })
        if self.image is not None:
            data["image"] = self.image
        return data

    @classmethod
    def from_document(cls, doc: LineItemDocument) -> "LineItem":
        return cls(
            # Items created while offline are keyed by their product id
            id=doc.id or doc.product_id,
            product_id=doc.product_id,
            quantity=doc.quantity,
            unit_price_snapshot=doc.unit_price_snapshot,
            name=doc.name,
            image=doc.image,
            attributes=doc.attributes,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        """Create from a document dict (raises pydantic.ValidationError)."""
        return cls.from_document(LineItemDocument.model_validate(data))


@dataclass
class Cart:
    """Ordered line items, unique by product_id."""
    items: List[LineItem] = field(default_factory=list)

    @property
    def total_items(self) -> int:
        """Total number of units in cart."""
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> Decimal:
        """Display subtotal from price snapshots."""
        return round_money(sum((item.total_price for item in self.items), Decimal("0")))

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find_by_product(self, product_id: str) -> Optional[LineItem]:
        return next((item for item in self.items if item.product_id == str(product_id)), None)

    def find_by_id(self, line_item_id: str) -> Optional[LineItem]:
        return next((item for item in self.items if item.id == str(line_item_id)), None)

    def to_dict(self) -> dict:
        """Convert to the {"items": [...]} document."""
        return {"items": [item.to_dict() for item in self.items]}

    @classmethod
    def from_document(cls, doc: CartDocument) -> "Cart":
        """
        Build a cart from a validated document.

        Duplicate product entries are merged into the first one and
        entries with a non-positive quantity are dropped, so the result
        always satisfies the cart invariants.
        """
        items: List[LineItem] = []
        by_product: Dict[str, int] = {}
        for item_doc in doc.items:
            if item_doc.quantity < 1:
                continue
            position = by_product.get(item_doc.product_id)
            if position is None:
                by_product[item_doc.product_id] = len(items)
                items.append(LineItem.from_document(item_doc))
            else:
                existing = items[position]
                items[position] = existing.with_quantity(existing.quantity + item_doc.quantity)
        return cls(items=items)

    @classmethod
    def from_dict(cls, data: Any) -> "Cart":
        """Create from a document (raises pydantic.ValidationError)."""
        return cls.from_document(CartDocument.model_validate(data))
