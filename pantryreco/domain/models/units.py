# pantryreco/domain/models/units.py
from enum import Enum
from pydantic import BaseModel


class UnitFamily(str, Enum):
    MASS = "mass"
    VOLUME = "volume"
    COUNT = "count"
    UNKNOWN = "unknown"


class NormalizedQuantity(BaseModel):
    """
    Canonical quantity: grams for MASS, milliliters for VOLUME, raw count for COUNT.
    Built by unit_conversion_svc.normalize only.
    """
    value: float
    family: UnitFamily

    model_config = {"frozen": True}  # immuable = safe
