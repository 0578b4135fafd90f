"""
Catalog snapshot resolution for quote and order lines.

Each line gets the catalog figures (cost, tax rate, margin) and, when a
special bid is referenced, the agreed price and margin frozen onto it. Lines
whose product and special bid are unchanged keep the snapshot they already
have, so later catalog edits never alter an issued document.
"""

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from praetor.exceptions import ValidationError
from praetor.services.validation import LineItemInput, normalize_reference_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Catalog figures frozen onto a line item."""
    product_id: int
    special_bid_id: Optional[int]
    product_cost: Decimal
    product_tax_rate: Optional[Decimal]
    product_mol_percentage: Optional[Decimal]
    special_bid_unit_price: Optional[Decimal]
    special_bid_mol_percentage: Optional[Decimal]


@dataclass(frozen=True)
class ResolvedLineItem:
    """A validated line item together with its snapshot."""
    item: LineItemInput
    snapshot: Snapshot

    @property
    def quantity(self):
        return self.item.quantity

    @property
    def unit_price(self):
        return self.item.unit_price

    @property
    def discount(self):
        return self.item.discount

    @property
    def tax_rate(self):
        return self.snapshot.product_tax_rate


def snapshot_from_row(row) -> Snapshot:
    """Build a Snapshot from a persisted QuoteItem / ClientOrderItem."""
    return Snapshot(
        product_id=row.product_id,
        special_bid_id=normalize_reference_id(row.special_bid_id),
        product_cost=row.product_cost if row.product_cost is not None else Decimal('0'),
        product_tax_rate=getattr(row, 'product_tax_rate', None),
        product_mol_percentage=row.product_mol_percentage,
        special_bid_unit_price=row.special_bid_unit_price,
        special_bid_mol_percentage=row.special_bid_mol_percentage,
    )


def previous_snapshots(rows) -> Dict[int, Snapshot]:
    """Map persisted line items by id for reuse during re-resolution."""
    return {row.id: snapshot_from_row(row) for row in rows}


def _can_reuse(item: LineItemInput, previous: Optional[Mapping[int, Snapshot]]) -> bool:
    if not previous or item.id is None:
        return False
    existing = previous.get(item.id)
    if existing is None:
        return False
    return (
        existing.product_id == item.product_id
        and normalize_reference_id(existing.special_bid_id) == normalize_reference_id(item.special_bid_id)
    )


def resolve_line_items(
    items: Sequence[LineItemInput],
    catalog,
    previous: Optional[Mapping[int, Snapshot]] = None,
    with_tax_rate: bool = True,
) -> List[ResolvedLineItem]:
    """
    Attach a catalog snapshot to every line item.

    Args:
        items: Parsed line items, in document order
        catalog: Object exposing get_catalog_items(ids) and get_special_prices(ids)
        previous: Snapshots of the currently persisted lines, keyed by line id
        with_tax_rate: False for orders, which carry no tax rate

    Raises:
        ValidationError: unknown product, unknown special bid, or a special bid
            that belongs to a different product
    """
    pending = [(index, item) for index, item in enumerate(items) if not _can_reuse(item, previous)]

    product_ids = sorted({item.product_id for _, item in pending})
    bid_ids = sorted({
        normalize_reference_id(item.special_bid_id)
        for _, item in pending
        if normalize_reference_id(item.special_bid_id) is not None
    })

    products = {}
    if product_ids:
        products = {record.id: record for record in catalog.get_catalog_items(product_ids)}
    bids = {}
    if bid_ids:
        bids = {record.id: record for record in catalog.get_special_prices(bid_ids)}

    if pending:
        logger.debug(
            "Resolving %d of %d line items (%d products, %d special bids)",
            len(pending), len(items), len(product_ids), len(bid_ids)
        )

    resolved = []
    for index, item in enumerate(items):
        bid_id = normalize_reference_id(item.special_bid_id)
        normalized_item = replace(item, special_bid_id=bid_id)

        if _can_reuse(item, previous):
            resolved.append(ResolvedLineItem(normalized_item, previous[item.id]))
            continue

        product = products.get(item.product_id)
        if product is None:
            raise ValidationError(
                f'items[{index}].productId "{item.product_id}" is invalid',
                field=f'items[{index}].productId'
            )

        bid_price = None
        bid_mol = None
        if bid_id is not None:
            bid = bids.get(bid_id)
            if bid is None:
                raise ValidationError(
                    f'items[{index}].specialBidId "{bid_id}" is invalid',
                    field=f'items[{index}].specialBidId'
                )
            if bid.product_id != item.product_id:
                raise ValidationError(
                    f'items[{index}].specialBidId "{bid_id}" does not match productId "{item.product_id}"',
                    field=f'items[{index}].specialBidId'
                )
            bid_price = bid.unit_price
            bid_mol = bid.mol_percentage

        tax_rate = None
        if with_tax_rate:
            tax_rate = product.tax_rate if product.tax_rate is not None else Decimal('0')

        resolved.append(ResolvedLineItem(normalized_item, Snapshot(
            product_id=item.product_id,
            special_bid_id=bid_id,
            product_cost=product.cost if product.cost is not None else Decimal('0'),
            product_tax_rate=tax_rate,
            product_mol_percentage=product.mol_percentage,
            special_bid_unit_price=bid_price,
            special_bid_mol_percentage=bid_mol,
        )))

    return resolved
