# pantryreco/domain/services/stock_snapshot_svc.py
import logging
from typing import Dict, Iterable, List

from pantryreco.domain.models.stock import StockEntry, StockSnapshot
from pantryreco.domain.models.units import NormalizedQuantity, UnitFamily
from pantryreco.domain.services import unit_conversion_svc as units

logger = logging.getLogger(__name__)


def build_snapshot(stock: Iterable[StockEntry] | None) -> StockSnapshot:
    """
    Collapse the caller's inventory into per-product lookups.

    - Lines without product_id are skipped (nothing to match them against).
    - Quantities are normalized and summed per (product, family). A product seen
      in a second family keeps a separate sub-total and is flagged; the family
      seen first stays its primary family.
    - Lines in an UNKNOWN unit never count as stock but still feed the expiry map.
    - expiry keeps the soonest dlc per product.
    """
    totals: Dict[str, Dict[UnitFamily, NormalizedQuantity]] = {}
    primary: Dict[str, UnitFamily] = {}
    expiry = {}
    mixed: List[str] = []

    for entry in stock or []:
        pid = entry.product_id
        if not pid:
            continue

        if entry.dlc is not None:
            current = expiry.get(pid)
            if current is None or entry.dlc < current:
                expiry[pid] = entry.dlc

        qty = units.normalize(entry.quantity, entry.unit)
        if qty.family == UnitFamily.UNKNOWN:
            logger.debug(f"Stock line for product_id={pid} has unknown unit {entry.unit!r}; not counted")
            continue

        by_family = totals.setdefault(pid, {})
        if qty.family in by_family:
            by_family[qty.family] = units.add(by_family[qty.family], qty)
            continue

        by_family[qty.family] = qty
        if pid not in primary:
            primary[pid] = qty.family
        elif pid not in mixed:
            mixed.append(pid)
            logger.warning(
                f"Stock for product_id={pid} mixes unit families "
                f"({primary[pid].value} then {qty.family.value}); keeping separate totals"
            )

    return StockSnapshot(totals=totals, primary_family=primary, expiry=expiry, mixed_family_products=mixed)
