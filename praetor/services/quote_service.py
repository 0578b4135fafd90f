"""Quote service: lifecycle of client quotes."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from praetor.exceptions import ConflictError, NotFoundError, PraetorError, ValidationError
from praetor.models import ClientOrder, Quote, QuoteItem, QuoteStatus, is_quote_expired
from praetor.repositories import CatalogRepository
from praetor.services.cache_service import QUOTES_NAMESPACE, ORDERS_NAMESPACE
from praetor.services.snapshot_service import previous_snapshots, resolve_line_items
from praetor.services.totals_service import compute_totals, is_valid_total
from praetor.services.validation import QuoteCreate, QuoteUpdate
from praetor.utils.formatters import epoch_ms, iso_date, to_number

logger = logging.getLogger(__name__)

__all__ = [
    'is_quote_expired', 'serialize_quote', 'list_quotes', 'get_quote',
    'create_quote', 'update_quote', 'delete_quote',
]


def serialize_quote_item(item: QuoteItem) -> Dict[str, Any]:
    return {
        'id': item.id,
        'quoteId': item.quote_id,
        'productId': item.product_id,
        'productName': item.product_name,
        'specialBidId': item.special_bid_id,
        'quantity': to_number(item.quantity),
        'unitPrice': to_number(item.unit_price),
        'productCost': to_number(item.product_cost),
        'productTaxRate': to_number(item.product_tax_rate),
        'productMolPercentage': to_number(item.product_mol_percentage),
        'specialBidUnitPrice': to_number(item.special_bid_unit_price),
        'specialBidMolPercentage': to_number(item.special_bid_mol_percentage),
        'discount': to_number(item.discount),
        'note': item.note,
    }


def serialize_quote(quote: Quote, is_expired_override: Optional[bool] = None) -> Dict[str, Any]:
    """API representation of a quote with its items and totals."""
    totals = compute_totals(quote.items, quote.discount)
    return {
        'id': quote.id,
        'quoteCode': quote.quote_code,
        'clientId': quote.client_id,
        'clientName': quote.client_name,
        'paymentTerms': quote.payment_terms,
        'discount': to_number(quote.discount),
        'status': quote.status,
        'expirationDate': iso_date(quote.expiration_date),
        'notes': quote.notes,
        'createdAt': epoch_ms(quote.created_at),
        'updatedAt': epoch_ms(quote.updated_at),
        'items': [serialize_quote_item(item) for item in quote.items],
        'subtotal': to_number(totals.subtotal),
        'taxableAmount': to_number(totals.taxable_amount),
        'totalTax': to_number(totals.total_tax),
        'total': to_number(totals.total),
        'isExpired': is_expired_override if is_expired_override is not None else quote.is_expired,
    }


def list_quotes(session: Session) -> List[Dict[str, Any]]:
    """All quotes, newest first, with items."""
    quotes = session.query(Quote).order_by(Quote.created_at.desc(), Quote.id.desc()).all()
    return [serialize_quote(q) for q in quotes]


def get_quote(session: Session, quote_id: int) -> Quote:
    quote = session.query(Quote).filter(Quote.id == quote_id).first()
    if not quote:
        raise NotFoundError('Quote not found')
    return quote


def _ensure_unique_code(session: Session, quote_code: str, exclude_id: Optional[int] = None) -> None:
    query = session.query(Quote.id).filter(Quote.quote_code == quote_code)
    if exclude_id is not None:
        query = query.filter(Quote.id != exclude_id)
    if query.first():
        raise ConflictError('Quote code already exists', payload={'field': 'quoteCode'})


def _build_items(resolved) -> List[QuoteItem]:
    return [
        QuoteItem(
            product_id=r.item.product_id,
            product_name=r.item.product_name,
            special_bid_id=r.item.special_bid_id,
            quantity=r.item.quantity,
            unit_price=r.item.unit_price,
            discount=r.item.discount,
            note=r.item.note,
            product_cost=r.snapshot.product_cost,
            product_tax_rate=r.snapshot.product_tax_rate,
            product_mol_percentage=r.snapshot.product_mol_percentage,
            special_bid_unit_price=r.snapshot.special_bid_unit_price,
            special_bid_mol_percentage=r.snapshot.special_bid_mol_percentage,
        )
        for r in resolved
    ]


def _require_positive_total(items, discount) -> None:
    if not is_valid_total(compute_totals(items, discount)):
        raise ValidationError('Total must be greater than 0', field='items')


def create_quote(
    session: Session,
    data: QuoteCreate,
    catalog: Optional[CatalogRepository] = None,
    invalidation=None,
    default_payment_terms: str = 'immediate'
) -> Quote:
    """
    Create a quote with its items.

    Items are resolved against the catalog and the total validated before
    anything is written.
    """
    catalog = catalog or CatalogRepository(session)
    try:
        _ensure_unique_code(session, data.quote_code)

        resolved = resolve_line_items(data.items, catalog)
        _require_positive_total(resolved, data.discount)

        quote = Quote(
            quote_code=data.quote_code,
            client_id=data.client_id,
            client_name=data.client_name,
            payment_terms=data.payment_terms or default_payment_terms,
            discount=data.discount,
            status=data.status,
            expiration_date=data.expiration_date,
            notes=data.notes,
            items=_build_items(resolved),
        )
        session.add(quote)
        session.commit()
    except IntegrityError:
        session.rollback()
        # Concurrent insert with the same code
        raise ConflictError('Quote code already exists', payload={'field': 'quoteCode'})
    except PraetorError as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    logger.info(f"Quote {quote.id} ({quote.quote_code}) created with {len(quote.items)} item(s)")
    if invalidation is not None:
        invalidation.invalidate(QUOTES_NAMESPACE)
    return quote


def _check_status_transition(session: Session, quote: Quote, data: QuoteUpdate) -> List[ClientOrder]:
    """
    Apply the quote state machine to an update.

    Returns the draft orders a restore will delete (empty otherwise).
    """
    if quote.is_confirmed and data.has_non_status_updates():
        raise ConflictError(
            'Confirmed quotes are read-only',
            payload={'currentStatus': quote.status}
        )

    if data.status != QuoteStatus.QUOTED.value:
        return []

    if quote.is_confirmed and not data.is_restore:
        raise ConflictError(
            'Reverting a confirmed quote requires a restore (isExpired=false)',
            payload={'currentStatus': quote.status}
        )

    linked = session.query(ClientOrder).filter(
        ClientOrder.linked_quote_id == quote.id
    ).order_by(ClientOrder.id).all()

    to_delete = []
    if data.is_restore:
        blocking = [o for o in linked if not o.is_draft]
        if blocking:
            raise ConflictError(
                'Restore is only possible when linked sale orders are in draft status',
                payload={'orderIds': [o.id for o in blocking]}
            )
        to_delete = linked
    elif linked:
        raise ConflictError(
            'Cannot revert quote with existing sale orders',
            payload={'orderIds': [o.id for o in linked]}
        )
    return to_delete


def update_quote(
    session: Session,
    quote_id: int,
    data: QuoteUpdate,
    catalog: Optional[CatalogRepository] = None,
    invalidation=None
) -> Quote:
    """
    Update a quote.

    Omitted fields keep their value. Items, when sent, fully replace the
    current ones; lines whose product and special bid did not change keep
    their snapshot. Totals are re-validated when items or discount change.
    """
    catalog = catalog or CatalogRepository(session)
    try:
        quote = get_quote(session, quote_id)
        drafts_to_delete = _check_status_transition(session, quote, data)

        if data.quote_code is not None:
            _ensure_unique_code(session, data.quote_code, exclude_id=quote.id)

        effective_discount = data.discount if data.discount is not None else quote.discount

        new_items = None
        if data.items is not None:
            resolved = resolve_line_items(data.items, catalog, previous_snapshots(quote.items))
            _require_positive_total(resolved, effective_discount)
            new_items = _build_items(resolved)
        elif data.discount is not None:
            _require_positive_total(quote.items, effective_discount)

        # Writes
        for order in drafts_to_delete:
            logger.info(f"Restore of quote {quote.id}: deleting draft order {order.id}")
            session.delete(order)

        if data.quote_code is not None:
            quote.quote_code = data.quote_code
        if data.client_id is not None:
            quote.client_id = data.client_id
        if data.client_name is not None:
            quote.client_name = data.client_name
        if data.payment_terms is not None:
            quote.payment_terms = data.payment_terms
        if data.discount is not None:
            quote.discount = data.discount
        if data.status is not None:
            quote.status = data.status
        if data.expiration_date is not None:
            quote.expiration_date = data.expiration_date
        elif 'expiration_date' in data.cleared:
            quote.expiration_date = None
        if data.notes is not None:
            quote.notes = data.notes
        elif 'notes' in data.cleared:
            quote.notes = None
        if new_items is not None:
            quote.items = new_items
        quote.updated_at = datetime.now(timezone.utc)

        session.commit()
    except StaleDataError:
        session.rollback()
        raise ConflictError('Quote was modified concurrently, reload and retry')
    except IntegrityError:
        session.rollback()
        if data.quote_code is None:
            raise
        raise ConflictError('Quote code already exists', payload={'field': 'quoteCode'})
    except PraetorError as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    logger.info(f"Quote {quote.id} updated (status={quote.status})")
    if invalidation is not None:
        invalidation.invalidate(QUOTES_NAMESPACE)
        if drafts_to_delete:
            invalidation.invalidate(ORDERS_NAMESPACE)
    return quote


def restore_expired_flag(data: QuoteUpdate) -> Optional[bool]:
    """
    isExpired value to report after an update.

    Only a restore may override the computed flag, and the override is taken
    as sent (not re-derived from expirationDate).
    """
    return data.is_expired if data.is_restore else None


def delete_quote(session: Session, quote_id: int, invalidation=None) -> None:
    """Delete a quote (items cascade). Confirmed quotes cannot be deleted."""
    try:
        quote = get_quote(session, quote_id)
        if quote.is_confirmed:
            raise ConflictError(
                'Cannot delete a confirmed quote',
                payload={'currentStatus': quote.status}
            )
        session.delete(quote)
        session.commit()
    except PraetorError as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    logger.info(f"Quote {quote_id} deleted")
    if invalidation is not None:
        invalidation.invalidate(QUOTES_NAMESPACE)
