"""
Request parsing for quote and order payloads.

Each operation has its own input type (create vs. update). Parsing either
returns a fully normalized, typed request or raises ValidationError for the
first offending field; nothing half-validated leaves this module.

Update inputs use None for "field omitted". Clearable fields sent as an
explicit JSON null are listed in ``cleared`` instead.
"""

import re
from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, FrozenSet, List, Mapping, Optional, Tuple

from praetor.exceptions import ValidationError
from praetor.models import QuoteStatus, OrderStatus

QUOTE_STATUSES = [s.value for s in QuoteStatus]
ORDER_STATUSES = [s.value for s in OrderStatus]

_LOCALIZED_NUMBER = re.compile(r'^[0-9]*([.][0-9]*)?$')


# ---------------------------------------------------------------------------
# Typed inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LineItemInput:
    product_id: int
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    discount: Decimal = Decimal('0')
    special_bid_id: Optional[int] = None
    note: Optional[str] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class QuoteCreate:
    quote_code: str
    client_id: int
    client_name: str
    items: Tuple[LineItemInput, ...]
    expiration_date: date
    payment_terms: Optional[str] = None
    discount: Decimal = Decimal('0')
    status: str = QuoteStatus.QUOTED.value
    notes: Optional[str] = None


@dataclass(frozen=True)
class QuoteUpdate:
    quote_code: Optional[str] = None
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    items: Optional[Tuple[LineItemInput, ...]] = None
    payment_terms: Optional[str] = None
    discount: Optional[Decimal] = None
    status: Optional[str] = None
    expiration_date: Optional[date] = None
    notes: Optional[str] = None
    is_expired: Optional[bool] = None
    cleared: FrozenSet[str] = frozenset()

    def has_non_status_updates(self) -> bool:
        """True when anything besides status / isExpired was sent."""
        return bool(self.cleared) or any(
            getattr(self, f.name) is not None
            for f in fields(self)
            if f.name not in ('status', 'is_expired', 'cleared')
        )

    @property
    def is_restore(self) -> bool:
        """confirmed -> quoted with an explicit 'not expired' claim."""
        return self.status == QuoteStatus.QUOTED.value and self.is_expired is False


@dataclass(frozen=True)
class OrderCreate:
    client_id: int
    client_name: str
    items: Tuple[LineItemInput, ...]
    linked_quote_id: Optional[int] = None
    payment_terms: Optional[str] = None
    discount: Decimal = Decimal('0')
    status: str = OrderStatus.DRAFT.value
    notes: Optional[str] = None


@dataclass(frozen=True)
class OrderUpdate:
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    items: Optional[Tuple[LineItemInput, ...]] = None
    payment_terms: Optional[str] = None
    discount: Optional[Decimal] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    cleared: FrozenSet[str] = frozenset()

    def is_status_only(self) -> bool:
        return self.status is not None and not self.cleared and all(
            getattr(self, f.name) is None for f in fields(self) if f.name not in ('status', 'cleared')
        )


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------

def require_non_empty_string(value: Any, field_name: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise ValidationError(f'{field_name} is required', field=field_name)


def optional_non_empty_string(value: Any, field_name: str) -> Optional[str]:
    if value is None or value == '':
        return None
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise ValidationError(f'{field_name} must be a non-empty string if provided', field=field_name)


def optional_text(value: Any) -> Optional[str]:
    """Free text: kept as sent, None when absent."""
    if value is None:
        return None
    return str(value)


def normalize_nullable_string(value: Any) -> Optional[str]:
    """Trimmed text, or None when absent or blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_reference_id(value: Any) -> Optional[int]:
    """Empty string, None and whitespace all mean 'no reference'."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError('boolean is not an id')
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    return int(text)


def parse_reference_id(value: Any, field_name: str, required: bool = True) -> Optional[int]:
    try:
        parsed = normalize_reference_id(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field_name} must be a valid id', field=field_name)
    if parsed is None and required:
        raise ValidationError(f'{field_name} is required', field=field_name)
    return parsed


# Column scales: money and percentages are stored with 2 decimals, quantities with 3.
MONEY_PLACES = Decimal('0.01')
PERCENT_PLACES = Decimal('0.01')
QUANTITY_PLACES = Decimal('0.001')


def parse_localized_number(value: Any, field_name: str, places: Optional[Decimal] = None) -> Decimal:
    """Accept numbers and numeric strings; a comma is read as decimal separator.

    With ``places`` the result is rounded half-up to the stored scale, so that
    totals are checked on exactly what will be persisted.
    """
    number = _to_decimal(value, field_name)
    if places is not None:
        try:
            number = number.quantize(places, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            raise ValidationError(f'{field_name} is out of range', field=field_name)
    return number


def _to_decimal(value: Any, field_name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f'{field_name} must be a valid number', field=field_name)
    if isinstance(value, (int, float, Decimal)):
        number = Decimal(str(value))
        if number.is_finite():
            return number
        raise ValidationError(f'{field_name} must be a valid number', field=field_name)
    if isinstance(value, str):
        trimmed = value.strip()
        if trimmed == '':
            raise ValidationError(f'{field_name} cannot be an empty string', field=field_name)
        normalized = trimmed.replace(',', '.')
        if not _LOCALIZED_NUMBER.match(normalized) or not re.search(r'[0-9]', normalized):
            raise ValidationError(f'{field_name} must be a valid number', field=field_name)
        try:
            return Decimal(normalized)
        except InvalidOperation:
            raise ValidationError(f'{field_name} must be a valid number', field=field_name)
    raise ValidationError(f'{field_name} must be a valid number', field=field_name)


def parse_positive_number(value: Any, field_name: str, places: Optional[Decimal] = None) -> Decimal:
    number = parse_localized_number(value, field_name, places)
    if number <= 0:
        raise ValidationError(f'{field_name} must be greater than zero', field=field_name)
    return number


def parse_non_negative_number(value: Any, field_name: str, places: Optional[Decimal] = None) -> Decimal:
    number = parse_localized_number(value, field_name, places)
    if number < 0:
        raise ValidationError(f'{field_name} must be zero or positive', field=field_name)
    return number


def optional_non_negative_number(value: Any, field_name: str, places: Optional[Decimal] = None) -> Optional[Decimal]:
    if value is None or value == '':
        return None
    return parse_non_negative_number(value, field_name, places)


def parse_date_string(value: Any, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.strptime(value.strip().split('T')[0], '%Y-%m-%d').date()
        except ValueError:
            pass
        raise ValidationError(f'{field_name} must be a valid date (YYYY-MM-DD)', field=field_name)
    raise ValidationError(f'{field_name} is required', field=field_name)


def optional_date_string(value: Any, field_name: str) -> Optional[date]:
    if value is None or value == '':
        return None
    return parse_date_string(value, field_name)


def parse_status(value: Any, allowed: List[str], field_name: str = 'status') -> Optional[str]:
    if value is None:
        return None
    if value not in allowed:
        raise ValidationError(
            f'{field_name} must be one of: {", ".join(allowed)}', field=field_name
        )
    return value


def parse_items(value: Any) -> Tuple[LineItemInput, ...]:
    if not isinstance(value, list) or len(value) == 0:
        raise ValidationError('Items must be a non-empty array', field='items')

    items = []
    for i, raw in enumerate(value):
        if not isinstance(raw, Mapping):
            raise ValidationError(f'items[{i}] must be an object', field=f'items[{i}]')
        discount = optional_non_negative_number(raw.get('discount'), f'items[{i}].discount', PERCENT_PLACES)
        items.append(LineItemInput(
            id=parse_reference_id(raw.get('id'), f'items[{i}].id', required=False),
            product_id=parse_reference_id(raw.get('productId'), f'items[{i}].productId'),
            product_name=require_non_empty_string(raw.get('productName'), f'items[{i}].productName'),
            special_bid_id=parse_reference_id(
                raw.get('specialBidId'), f'items[{i}].specialBidId', required=False
            ),
            quantity=parse_positive_number(raw.get('quantity'), f'items[{i}].quantity', QUANTITY_PLACES),
            unit_price=parse_non_negative_number(raw.get('unitPrice'), f'items[{i}].unitPrice', MONEY_PLACES),
            discount=discount if discount is not None else Decimal('0'),
            note=normalize_nullable_string(raw.get('note')),
        ))
    return tuple(items)


def _require_mapping(body: Any) -> Mapping:
    if not isinstance(body, Mapping):
        raise ValidationError('Request body must be a JSON object')
    return body


def _cleared_fields(body: Mapping, clearable: Mapping[str, str]) -> FrozenSet[str]:
    """Attribute names of clearable fields the body sets to an explicit null."""
    return frozenset(attr for key, attr in clearable.items() if key in body and body[key] is None)


# ---------------------------------------------------------------------------
# Operation parsers
# ---------------------------------------------------------------------------

def parse_quote_create(body: Any) -> QuoteCreate:
    body = _require_mapping(body)
    quote_code = require_non_empty_string(body.get('quoteCode'), 'quoteCode')
    client_id = parse_reference_id(body.get('clientId'), 'clientId')
    client_name = require_non_empty_string(body.get('clientName'), 'clientName')
    items = parse_items(body.get('items'))
    expiration_date = parse_date_string(body.get('expirationDate'), 'expirationDate')
    discount = optional_non_negative_number(body.get('discount'), 'discount', PERCENT_PLACES)
    status = parse_status(body.get('status'), QUOTE_STATUSES)

    return QuoteCreate(
        quote_code=quote_code,
        client_id=client_id,
        client_name=client_name,
        items=items,
        expiration_date=expiration_date,
        payment_terms=optional_non_empty_string(body.get('paymentTerms'), 'paymentTerms'),
        discount=discount if discount is not None else Decimal('0'),
        status=status or QuoteStatus.QUOTED.value,
        notes=optional_text(body.get('notes')),
    )


def parse_quote_update(body: Any) -> QuoteUpdate:
    body = _require_mapping(body)

    quote_code = None
    if body.get('quoteCode') is not None:
        quote_code = require_non_empty_string(body.get('quoteCode'), 'quoteCode')

    is_expired = body.get('isExpired')
    if is_expired is not None and not isinstance(is_expired, bool):
        raise ValidationError('isExpired must be a boolean', field='isExpired')

    items = None
    if body.get('items') is not None:
        items = parse_items(body.get('items'))

    return QuoteUpdate(
        quote_code=quote_code,
        client_id=parse_reference_id(body.get('clientId'), 'clientId', required=False),
        client_name=optional_non_empty_string(body.get('clientName'), 'clientName'),
        items=items,
        payment_terms=optional_non_empty_string(body.get('paymentTerms'), 'paymentTerms'),
        discount=optional_non_negative_number(body.get('discount'), 'discount', PERCENT_PLACES),
        status=parse_status(body.get('status'), QUOTE_STATUSES),
        expiration_date=optional_date_string(body.get('expirationDate'), 'expirationDate'),
        notes=optional_text(body.get('notes')),
        is_expired=is_expired,
        cleared=_cleared_fields(body, {'notes': 'notes', 'expirationDate': 'expiration_date'}),
    )


def parse_order_create(body: Any) -> OrderCreate:
    body = _require_mapping(body)
    client_id = parse_reference_id(body.get('clientId'), 'clientId')
    client_name = require_non_empty_string(body.get('clientName'), 'clientName')
    items = parse_items(body.get('items'))
    discount = optional_non_negative_number(body.get('discount'), 'discount', PERCENT_PLACES)
    status = parse_status(body.get('status'), ORDER_STATUSES)

    return OrderCreate(
        client_id=client_id,
        client_name=client_name,
        items=items,
        linked_quote_id=parse_reference_id(body.get('linkedQuoteId'), 'linkedQuoteId', required=False),
        payment_terms=optional_non_empty_string(body.get('paymentTerms'), 'paymentTerms'),
        discount=discount if discount is not None else Decimal('0'),
        status=status or OrderStatus.DRAFT.value,
        notes=optional_text(body.get('notes')),
    )


def parse_order_update(body: Any) -> OrderUpdate:
    body = _require_mapping(body)

    items = None
    if body.get('items') is not None:
        items = parse_items(body.get('items'))

    return OrderUpdate(
        client_id=parse_reference_id(body.get('clientId'), 'clientId', required=False),
        client_name=optional_non_empty_string(body.get('clientName'), 'clientName'),
        items=items,
        payment_terms=optional_non_empty_string(body.get('paymentTerms'), 'paymentTerms'),
        discount=optional_non_negative_number(body.get('discount'), 'discount', PERCENT_PLACES),
        status=parse_status(body.get('status'), ORDER_STATUSES),
        notes=optional_text(body.get('notes')),
        cleared=_cleared_fields(body, {'notes': 'notes'}),
    )
