"""
Pydantic Models - Product Identity and Stored Collection Schemas

Contains:
- normalize_product_id: the one identity rule shared by every collection
- StoredLine: persisted row shape {"product_id", "quantity", "payload"}
- LegacyLine: flat product object with a "qty" counter, as written by earlier
  client releases
"""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

from orderlines.errors import ERROR_MISSING_PRODUCT_ID


def normalize_product_id(value: Any) -> Optional[str]:
    """
    Canonical identity key for a product.

    Integers and their decimal strings are the same product ("42" == 42).
    Surrounding whitespace is ignored.

    Returns:
        Canonical string id, or None if the value can't identify a product
    """
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return None
    key = str(value).strip()
    return key or None


class StoredLine(BaseModel):
    """Line item row as persisted by LineStore."""
    model_config = ConfigDict(extra="ignore")

    product_id: Union[StrictStr, StrictInt]
    quantity: StrictInt = Field(ge=1)
    payload: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("product_id")
    @classmethod
    def _canonical_id(cls, value: Union[str, int]) -> str:
        key = normalize_product_id(value)
        if key is None:
            raise ValueError(ERROR_MISSING_PRODUCT_ID)
        return key


class LegacyLine(BaseModel):
    """Flat product object with the quantity under "qty"."""
    model_config = ConfigDict(extra="allow")

    qty: StrictInt = Field(default=1, ge=1)

    def product_fields(self) -> Dict[str, Any]:
        """Everything except the counter."""
        return dict(self.model_extra or {})
