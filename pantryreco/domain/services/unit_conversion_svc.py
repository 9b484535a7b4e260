# pantryreco/domain/services/unit_conversion_svc.py
"""
Unit normalization shared by the recipe projector and the stock snapshot builder.

Both call sites go through `normalize`, so a recipe requirement and a stock line
expressed in different units of the same family end up in the same canonical
unit (g, ml or piece) and compare value-for-value.
"""
from __future__ import annotations
import re
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from pantryreco.domain.models.units import NormalizedQuantity, UnitFamily

# code -> (family, factor to canonical unit)
UNIT_TABLE: Mapping[str, Tuple[UnitFamily, float]] = MappingProxyType({
    # mass, canonical = g
    "mcg": (UnitFamily.MASS, 1e-6),
    "mg": (UnitFamily.MASS, 1e-3),
    "g": (UnitFamily.MASS, 1.0),
    "kg": (UnitFamily.MASS, 1000.0),
    "oz": (UnitFamily.MASS, 28.349523125),
    "lb": (UnitFamily.MASS, 453.59237),
    # volume, canonical = ml (US customary for the kitchen units)
    "mm3": (UnitFamily.VOLUME, 1e-3),
    "cm3": (UnitFamily.VOLUME, 1.0),
    "ml": (UnitFamily.VOLUME, 1.0),
    "l": (UnitFamily.VOLUME, 1000.0),
    "m3": (UnitFamily.VOLUME, 1e6),
    "tsp": (UnitFamily.VOLUME, 4.92892159375),
    "Tbs": (UnitFamily.VOLUME, 14.78676478125),
    "fl-oz": (UnitFamily.VOLUME, 29.5735295625),
    "cup": (UnitFamily.VOLUME, 236.5882365),
    "pnt": (UnitFamily.VOLUME, 473.176473),
    "qt": (UnitFamily.VOLUME, 946.352946),
    "gal": (UnitFamily.VOLUME, 3785.411784),
    # count
    "piece": (UnitFamily.COUNT, 1.0),
    "unit": (UnitFamily.COUNT, 1.0),
})

_ALIASES = {
    "tbsp": "Tbs",
    "floz": "fl-oz",
    "gr": "g",
    "pcs": "piece",
    "pc": "piece",
    "pieces": "piece",
    "units": "unit",
}

# metric volumes the base table lacks
_EXTRA = {
    "cl": (UnitFamily.VOLUME, 10.0),
    "dl": (UnitFamily.VOLUME, 100.0),
}

_LOOKUP = {code.lower(): entry for code, entry in UNIT_TABLE.items()}
_LOOKUP.update(_EXTRA)
for alias, target in _ALIASES.items():
    _LOOKUP[alias] = UNIT_TABLE[target]

_QUANTITY_RE = re.compile(r"^([\d.,]+)\s*([a-zA-Z][a-zA-Z0-9-]*)?")


def resolve_unit(unit: Optional[str]) -> Tuple[UnitFamily, float]:
    """Returns (family, factor). Blank means a bare count; unknown codes give (UNKNOWN, 1.0)."""
    if unit is None or not str(unit).strip():
        return UnitFamily.COUNT, 1.0
    return _LOOKUP.get(str(unit).strip().lower(), (UnitFamily.UNKNOWN, 1.0))


def normalize(quantity: float, unit: Optional[str]) -> NormalizedQuantity:
    """
    Total and pure: never raises. Unknown units keep the raw value under the
    UNKNOWN family, which `is_sufficient` never accepts.
    """
    family, factor = resolve_unit(unit)
    value = float(quantity or 0.0)
    return NormalizedQuantity(value=value * factor, family=family)


def add(a: NormalizedQuantity, b: NormalizedQuantity) -> NormalizedQuantity:
    if a.family != b.family:
        raise ValueError(f"Cannot add {a.family.value} to {b.family.value}")
    return NormalizedQuantity(value=a.value + b.value, family=a.family)


def is_sufficient(stock: Optional[NormalizedQuantity], required: NormalizedQuantity) -> bool:
    if stock is None:
        return False
    if stock.family == UnitFamily.UNKNOWN or stock.family != required.family:
        return False
    return stock.value >= required.value


def parse_quantity(text: Optional[str]) -> Tuple[Optional[float], Optional[str]]:
    """
    Parses "500g", "1,5 l" or "2 Tbs" into (value, unit code).
    Returns (value, None) when the unit word is not recognised, (None, None) when
    there is no leading number.
    """
    if not text:
        return None, None
    match = _QUANTITY_RE.match(text.strip())
    if not match:
        return None, None
    value_str, unit_str = match.groups()
    try:
        value = float(value_str.replace(",", ".", 1))
    except ValueError:
        return None, None
    if not unit_str:
        return value, None

    key = unit_str.lower()
    if key in _LOOKUP:
        canonical = next((code for code in UNIT_TABLE if code.lower() == key), None)
        return value, canonical or _ALIASES.get(key) or key
    return value, None
