# pantryreco/domain/models/stock.py
from __future__ import annotations
from datetime import date, datetime
from typing import Any, Dict, List, Optional
import json
import logging

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from pantryreco.domain.models.units import NormalizedQuantity, UnitFamily
from pantryreco.domain.services.unit_conversion_svc import parse_quantity

logger = logging.getLogger(__name__)

_DATE = TypeAdapter(date)
_DATETIME = TypeAdapter(datetime)


class UserPreferences(BaseModel):
    allergenes: List[str] = Field(default_factory=list)
    preferred_categories: List[str] = Field(default_factory=list)
    excluded_categories: List[str] = Field(default_factory=list)
    dietary_restrictions: List[str] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        # null, a bare string or garbage all collapse to neutral values
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        if not isinstance(v, (list, tuple, set)):
            return []
        return [str(x).strip() for x in v if x is not None and str(x).strip()]

    @classmethod
    def from_raw(cls, raw: Any) -> "UserPreferences":
        """
        Accepts None, a dict, a JSON string or an existing instance.
        Anything unparsable yields empty preferences (no filtering, no boosting).
        """
        if isinstance(raw, UserPreferences):
            return raw
        if raw is None:
            return cls()
        if isinstance(raw, str):
            try:
                raw = json.loads(raw) if raw.strip() else {}
            except ValueError as e:
                logger.warning(f"Failed to parse preferences JSON string: {e}")
                return cls()
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring preferences of type {type(raw).__name__}")
            return cls()
        return cls.model_validate(raw)


class StockEntry(BaseModel):
    """One inventory line. `quantity` may also arrive as a string like "500 g"."""
    product_id: Optional[str] = None
    quantity: float = 0.0
    unit: Optional[str] = None
    dlc: Optional[date] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _parse_quantity_string(cls, data):
        if not isinstance(data, dict) or not isinstance(data.get("quantity"), str):
            return data
        value, unit = parse_quantity(data["quantity"])
        data = dict(data)
        data["quantity"] = value if value is not None else 0.0
        if unit and not data.get("unit"):
            data["unit"] = unit
        return data

    @field_validator("product_id", "unit", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("quantity", mode="before")
    @classmethod
    def _none_to_zero(cls, v):
        return 0.0 if v is None else v

    @field_validator("dlc", mode="before")
    @classmethod
    def _lenient_dlc(cls, v):
        """
        Accepts dates, datetimes and ISO strings of either (JS `Date.toISOString()`
        included) and keeps the calendar day. Anything else means "no expiry".
        """
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, date):
            return v
        for adapter in (_DATE, _DATETIME):
            try:
                parsed = adapter.validate_python(v.strip() if isinstance(v, str) else v)
            except ValidationError:
                continue
            return parsed.date() if isinstance(parsed, datetime) else parsed
        logger.warning(f"Ignoring unparsable dlc {v!r}")
        return None


class StockSnapshot(BaseModel):
    """
    Per-request lookups over product_id.

    Stock is kept as per-family sub-totals: a product stocked both in grams and
    in pieces has two independent totals, and an ingredient is only ever
    compared against the sub-total of its own family.
    """
    totals: Dict[str, Dict[UnitFamily, NormalizedQuantity]] = Field(default_factory=dict)
    primary_family: Dict[str, UnitFamily] = Field(default_factory=dict)
    expiry: Dict[str, date] = Field(default_factory=dict)
    mixed_family_products: List[str] = Field(default_factory=list)

    @property
    def availability(self) -> Dict[str, NormalizedQuantity]:
        """product_id -> total in the first family seen for that product."""
        return {pid: self.totals[pid][fam] for pid, fam in self.primary_family.items()}

    def available(self, product_id: Optional[str], family: UnitFamily) -> Optional[NormalizedQuantity]:
        if not product_id:
            return None
        return self.totals.get(product_id, {}).get(family)

    def is_empty(self) -> bool:
        return not self.totals and not self.expiry
