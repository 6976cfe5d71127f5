"""
Cart Documents - Pydantic schemas for the wire and cache format.

Both the cart service and the local cache speak the same JSON document:
    {"items": [{"id": ..., "productId": ..., "quantity": ..., ...}]}

Older storefront builds cached a bare list of items under the cart key;
that shape is accepted as well.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

# Alternate spellings of known fields; never kept as extra attributes
_KNOWN_ALIASES = frozenset({"productId", "product_id", "unitPriceSnapshot", "unit_price_snapshot", "price"})


class LineItemDocument(BaseModel):
    """One line item as sent by the cart service or stored locally."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    product_id: str = Field(validation_alias=AliasChoices("productId", "product_id"))
    quantity: int = 1
    # The service reports the captured price as "price"
    unit_price_snapshot: Decimal = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("unitPriceSnapshot", "unit_price_snapshot", "price"),
    )
    name: str = ""
    image: Optional[str] = None

    @field_validator("id", "product_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Any:
        # Database-backed ids arrive as integers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("unit_price_snapshot", mode="before")
    @classmethod
    def _default_price(cls, value: Any) -> Any:
        return Decimal("0") if value is None else value

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def attributes(self) -> Dict[str, Any]:
        """Extra display fields carried alongside the known ones."""
        return {
            key: value
            for key, value in (self.model_extra or {}).items()
            if key not in _KNOWN_ALIASES
        }


class CartDocument(BaseModel):
    """Full cart document: {"items": [...]}."""

    items: List[LineItemDocument] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_list(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"items": data}
        return data
