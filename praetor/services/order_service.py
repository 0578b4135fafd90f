"""Order service: lifecycle of client (sale) orders."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from praetor.exceptions import ConflictError, NotFoundError, PraetorError, ValidationError
from praetor.models import ClientOrder, ClientOrderItem, OrderStatus, Quote
from praetor.repositories import CatalogRepository
from praetor.services.cache_service import ORDERS_NAMESPACE, PROJECTS_NAMESPACE
from praetor.services.order_confirmation_service import dispatch_order_confirmation
from praetor.services.snapshot_service import previous_snapshots, resolve_line_items
from praetor.services.totals_service import compute_totals, is_valid_total, to_decimal
from praetor.services.validation import OrderCreate, OrderUpdate, normalize_reference_id
from praetor.utils.formatters import epoch_ms, to_number

logger = logging.getLogger(__name__)


def serialize_order_item(item: ClientOrderItem) -> Dict[str, Any]:
    return {
        'id': item.id,
        'orderId': item.order_id,
        'productId': item.product_id,
        'productName': item.product_name,
        'specialBidId': item.special_bid_id,
        'quantity': to_number(item.quantity),
        'unitPrice': to_number(item.unit_price),
        'productCost': to_number(item.product_cost),
        'productMolPercentage': to_number(item.product_mol_percentage),
        'specialBidUnitPrice': to_number(item.special_bid_unit_price),
        'specialBidMolPercentage': to_number(item.special_bid_mol_percentage),
        'discount': to_number(item.discount),
        'note': item.note,
    }


def serialize_order(order: ClientOrder) -> Dict[str, Any]:
    totals = compute_totals(order.items, order.discount)
    return {
        'id': order.id,
        'linkedQuoteId': order.linked_quote_id,
        'clientId': order.client_id,
        'clientName': order.client_name,
        'paymentTerms': order.payment_terms,
        'discount': to_number(order.discount),
        'status': order.status,
        'notes': order.notes,
        'createdAt': epoch_ms(order.created_at),
        'updatedAt': epoch_ms(order.updated_at),
        'items': [serialize_order_item(item) for item in order.items],
        'subtotal': to_number(totals.subtotal),
        'taxableAmount': to_number(totals.taxable_amount),
        'total': to_number(totals.total),
    }


def list_orders(session: Session) -> List[Dict[str, Any]]:
    """All orders, newest first, with items."""
    orders = session.query(ClientOrder).order_by(ClientOrder.created_at.desc(), ClientOrder.id.desc()).all()
    return [serialize_order(o) for o in orders]


def get_order(session: Session, order_id: int) -> ClientOrder:
    order = session.query(ClientOrder).filter(ClientOrder.id == order_id).first()
    if not order:
        raise NotFoundError('Order not found')
    return order


# ---------------------------------------------------------------------------
# Locked-field detection for quote-linked orders
# ---------------------------------------------------------------------------

def _number_key(value) -> str:
    number = to_decimal(value if value is not None else 0)
    if not number.is_finite():
        return str(number)
    return format(number.normalize(), 'f')


def normalize_items_for_comparison(items: Sequence[Any], include_ids: bool = True) -> List[Dict[str, Any]]:
    """
    Reduce line items to the comparable field set, sorted by a derived key:
    the item id when present, otherwise productId|productName|specialBidId|
    quantity|unitPrice|discount.
    """
    normalized = []
    for item in items:
        entry = {
            'id': str(item.id) if include_ids and item.id is not None else '',
            'productId': str(item.product_id) if item.product_id is not None else '',
            'productName': item.product_name or '',
            'specialBidId': str(normalize_reference_id(item.special_bid_id) or ''),
            'quantity': _number_key(item.quantity),
            'unitPrice': _number_key(item.unit_price),
            'discount': _number_key(item.discount),
        }
        entry['sortKey'] = entry['id'] or '|'.join([
            entry['productId'], entry['productName'], entry['specialBidId'],
            entry['quantity'], entry['unitPrice'], entry['discount'],
        ])
        normalized.append(entry)
    return sorted(normalized, key=lambda e: e['sortKey'])


def items_match(existing: Sequence[Any], incoming: Sequence[Any]) -> bool:
    """
    Order-independent comparison of two item sets.

    Ids only take part when every incoming item carries one.
    """
    include_ids = all(item.id is not None for item in incoming)
    left = normalize_items_for_comparison(existing, include_ids)
    right = normalize_items_for_comparison(incoming, include_ids)
    return left == right


def _notes_value(value) -> str:
    return '' if value is None else str(value)


def find_locked_fields(order: ClientOrder, data: OrderUpdate) -> List[str]:
    """Fields of a quote-linked order the update would actually change."""
    locked = []
    if data.client_id is not None and data.client_id != order.client_id:
        locked.append('clientId')
    if data.client_name is not None and data.client_name != order.client_name:
        locked.append('clientName')
    if data.payment_terms is not None and data.payment_terms != order.payment_terms:
        locked.append('paymentTerms')
    if data.discount is not None and to_decimal(data.discount) != to_decimal(order.discount):
        locked.append('discount')
    if data.notes is not None and _notes_value(data.notes) != _notes_value(order.notes):
        locked.append('notes')
    elif 'notes' in data.cleared and _notes_value(order.notes):
        locked.append('notes')
    if data.items is not None and not items_match(order.items, data.items):
        locked.append('items')
    return locked


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def _build_items(resolved) -> List[ClientOrderItem]:
    return [
        ClientOrderItem(
            product_id=r.item.product_id,
            product_name=r.item.product_name,
            special_bid_id=r.item.special_bid_id,
            quantity=r.item.quantity,
            unit_price=r.item.unit_price,
            discount=r.item.discount,
            note=r.item.note,
            product_cost=r.snapshot.product_cost,
            product_mol_percentage=r.snapshot.product_mol_percentage,
            special_bid_unit_price=r.snapshot.special_bid_unit_price,
            special_bid_mol_percentage=r.snapshot.special_bid_mol_percentage,
        )
        for r in resolved
    ]


def _require_positive_total(items, discount) -> None:
    if not is_valid_total(compute_totals(items, discount)):
        raise ValidationError('Total must be greater than 0', field='items')


def _after_commit(invalidation, confirmation) -> None:
    if invalidation is None:
        return
    invalidation.invalidate(ORDERS_NAMESPACE)
    if confirmation is not None and confirmation.created_projects:
        invalidation.invalidate(PROJECTS_NAMESPACE)


def create_order(
    session: Session,
    data: OrderCreate,
    actor_id: Optional[int] = None,
    catalog: Optional[CatalogRepository] = None,
    invalidation=None,
    default_payment_terms: str = 'immediate'
) -> ClientOrder:
    """Create an order with its items; resolution and total check come first."""
    catalog = catalog or CatalogRepository(session)
    confirmation = None
    try:
        if data.linked_quote_id is not None:
            if not session.query(Quote.id).filter(Quote.id == data.linked_quote_id).first():
                raise ValidationError(
                    f'linkedQuoteId "{data.linked_quote_id}" is invalid', field='linkedQuoteId'
                )

        resolved = resolve_line_items(data.items, catalog, with_tax_rate=False)
        _require_positive_total(resolved, data.discount)

        order = ClientOrder(
            linked_quote_id=data.linked_quote_id,
            client_id=data.client_id,
            client_name=data.client_name,
            payment_terms=data.payment_terms or default_payment_terms,
            discount=data.discount,
            status=data.status,
            notes=data.notes,
            items=_build_items(resolved),
        )
        session.add(order)
        session.flush()

        confirmation = dispatch_order_confirmation(session, order, None, actor_id, catalog)
        session.commit()
    except PraetorError as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    logger.info(f"Order {order.id} created (status={order.status}, linked_quote_id={order.linked_quote_id})")
    _after_commit(invalidation, confirmation)
    return order


def create_order_from_quote(
    session: Session,
    quote_id: int,
    actor_id: Optional[int] = None,
    invalidation=None
) -> ClientOrder:
    """
    Open a draft order from a confirmed quote.

    Terms and items (with their frozen snapshots) are copied as they are;
    the order is linked to the quote and its commercial fields stay locked.
    """
    try:
        quote = session.query(Quote).filter(Quote.id == quote_id).first()
        if not quote:
            raise NotFoundError('Quote not found')
        if not quote.is_confirmed:
            raise ConflictError(
                'Only confirmed quotes can be turned into orders',
                payload={'currentStatus': quote.status}
            )

        order = ClientOrder(
            linked_quote_id=quote.id,
            client_id=quote.client_id,
            client_name=quote.client_name,
            payment_terms=quote.payment_terms,
            discount=quote.discount,
            status=OrderStatus.DRAFT.value,
            notes=quote.notes,
            items=[
                ClientOrderItem(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    special_bid_id=item.special_bid_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    discount=item.discount,
                    note=item.note,
                    product_cost=item.product_cost,
                    product_mol_percentage=item.product_mol_percentage,
                    special_bid_unit_price=item.special_bid_unit_price,
                    special_bid_mol_percentage=item.special_bid_mol_percentage,
                )
                for item in quote.items
            ],
        )
        _require_positive_total(order.items, order.discount)
        session.add(order)
        session.commit()
    except PraetorError as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    logger.info(f"Order {order.id} created from quote {quote_id}")
    _after_commit(invalidation, None)
    return order


def update_order(
    session: Session,
    order_id: int,
    data: OrderUpdate,
    actor_id: Optional[int] = None,
    catalog: Optional[CatalogRepository] = None,
    invalidation=None
) -> ClientOrder:
    """
    Update an order.

    Draft orders are freely editable. Other statuses only accept status-only
    updates. Orders linked to a quote reject any change to their commercial
    fields. The first move to 'confirmed' creates projects in the same
    transaction.
    """
    catalog = catalog or CatalogRepository(session)
    confirmation = None
    try:
        order = get_order(session, order_id)

        if not order.is_draft and not data.is_status_only():
            raise ConflictError(
                'Non-draft orders are read-only',
                payload={'currentStatus': order.status}
            )

        linked = order.linked_quote_id is not None
        if linked:
            locked = find_locked_fields(order, data)
            if locked:
                raise ConflictError(
                    'Quote-linked order details are read-only',
                    payload={'fields': locked}
                )

        new_items = None
        if not linked:
            effective_discount = data.discount if data.discount is not None else order.discount
            if data.items is not None:
                resolved = resolve_line_items(
                    data.items, catalog, previous_snapshots(order.items), with_tax_rate=False
                )
                _require_positive_total(resolved, effective_discount)
                new_items = _build_items(resolved)
            elif data.discount is not None:
                _require_positive_total(order.items, effective_discount)

        previous_status = order.status

        # Writes
        if not linked:
            if data.client_id is not None:
                order.client_id = data.client_id
            if data.client_name is not None:
                order.client_name = data.client_name
            if data.payment_terms is not None:
                order.payment_terms = data.payment_terms
            if data.discount is not None:
                order.discount = data.discount
            if data.notes is not None:
                order.notes = data.notes
            elif 'notes' in data.cleared:
                order.notes = None
            if new_items is not None:
                order.items = new_items
        if data.status is not None:
            order.status = data.status
        order.updated_at = datetime.now(timezone.utc)
        session.flush()

        confirmation = dispatch_order_confirmation(session, order, previous_status, actor_id, catalog)
        session.commit()
    except StaleDataError:
        session.rollback()
        raise ConflictError('Order was modified concurrently, reload and retry')
    except PraetorError as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    logger.info(f"Order {order.id} updated (status {previous_status} -> {order.status})")
    _after_commit(invalidation, confirmation)
    return order


def delete_order(session: Session, order_id: int, invalidation=None) -> None:
    """Delete an order (items cascade). Only drafts can be deleted."""
    try:
        order = get_order(session, order_id)
        if not order.is_draft:
            raise ConflictError(
                'Only draft orders can be deleted',
                payload={'currentStatus': order.status}
            )
        session.delete(order)
        session.commit()
    except PraetorError as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    logger.info(f"Order {order_id} deleted")
    if invalidation is not None:
        invalidation.invalidate(ORDERS_NAMESPACE)
