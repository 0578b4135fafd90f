"""
Unit tests for request parsing into typed inputs.
"""

import pytest
from datetime import date
from decimal import Decimal

from praetor.exceptions import ValidationError
from praetor.services.validation import (
    OrderUpdate, QuoteUpdate,
    PERCENT_PLACES, QUANTITY_PLACES,
    normalize_reference_id, parse_localized_number,
    parse_order_create, parse_order_update,
    parse_quote_create, parse_quote_update,
)


def quote_create_body(**extra):
    body = {
        'quoteCode': ' Q-1 ',
        'clientId': '3',
        'clientName': 'Acme',
        'expirationDate': '2026-12-31',
        'items': [{'productId': 1, 'productName': 'Widget', 'quantity': '2', 'unitPrice': '10,5'}],
    }
    body.update(extra)
    return body


class TestLocalizedNumbers:
    """Numbers arrive as JSON numbers or strings with either decimal separator."""

    def test_comma_decimal_separator(self):
        assert parse_localized_number('10,5', 'x') == Decimal('10.5')

    def test_plain_number(self):
        assert parse_localized_number(3, 'x') == Decimal('3')

    @pytest.mark.parametrize('value', ['abc', '1.2.3', '-5', '.', True, None])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_localized_number(value, 'quantity')
        assert exc_info.value.field == 'quantity'

    def test_rejects_empty_string(self):
        with pytest.raises(ValidationError, match='cannot be an empty string'):
            parse_localized_number('  ', 'unitPrice')

    def test_rounds_to_stored_scale(self):
        assert parse_localized_number('12,345', 'discount', PERCENT_PLACES) == Decimal('12.35')
        assert parse_localized_number('0.0004', 'quantity', QUANTITY_PLACES) == Decimal('0.000')

    def test_document_values_use_column_scales(self):
        items = [{'productId': 1, 'productName': 'Widget', 'quantity': '1.0004', 'unitPrice': '0.004', 'discount': '2.005'}]
        data = parse_quote_create(quote_create_body(items=items, discount='12.345'))
        item = data.items[0]

        assert data.discount == Decimal('12.35')
        assert item.quantity == Decimal('1.000')
        assert item.unit_price == Decimal('0.00')
        assert item.discount == Decimal('2.01')

    def test_quantity_rounding_to_zero_is_rejected(self):
        items = [{'productId': 1, 'productName': 'Widget', 'quantity': '0.0004', 'unitPrice': 10}]
        with pytest.raises(ValidationError, match='must be greater than zero') as exc_info:
            parse_quote_create(quote_create_body(items=items))
        assert exc_info.value.field == 'items[0].quantity'


class TestReferenceIds:
    """Empty values all mean 'no reference'."""

    @pytest.mark.parametrize('value', [None, '', '   '])
    def test_empty_means_none(self, value):
        assert normalize_reference_id(value) is None

    def test_numeric_string(self):
        assert normalize_reference_id(' 42 ') == 42


class TestParseQuoteCreate:
    """Tests for parse_quote_create."""

    def test_normalizes_body(self):
        data = parse_quote_create(quote_create_body())

        assert data.quote_code == 'Q-1'
        assert data.client_id == 3
        assert data.expiration_date == date(2026, 12, 31)
        assert data.status == 'quoted'
        assert data.discount == Decimal('0')
        assert data.items[0].unit_price == Decimal('10.5')
        assert data.items[0].special_bid_id is None

    def test_requires_items(self):
        with pytest.raises(ValidationError, match='Items must be a non-empty array'):
            parse_quote_create(quote_create_body(items=[]))

    def test_requires_quote_code(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_quote_create(quote_create_body(quoteCode=''))
        assert exc_info.value.field == 'quoteCode'

    def test_rejects_unknown_status(self):
        with pytest.raises(ValidationError, match='status must be one of'):
            parse_quote_create(quote_create_body(status='accepted'))

    def test_rejects_zero_quantity(self):
        items = [{'productId': 1, 'productName': 'Widget', 'quantity': 0, 'unitPrice': 10}]
        with pytest.raises(ValidationError) as exc_info:
            parse_quote_create(quote_create_body(items=items))
        assert exc_info.value.field == 'items[0].quantity'

    def test_rejects_bad_date(self):
        with pytest.raises(ValidationError, match='expirationDate'):
            parse_quote_create(quote_create_body(expirationDate='31/12/2026'))

    def test_rejects_non_object_body(self):
        with pytest.raises(ValidationError, match='JSON object'):
            parse_quote_create(None)


class TestParseQuoteUpdate:
    """Omitted fields stay None."""

    def test_status_only(self):
        data = parse_quote_update({'status': 'confirmed'})
        assert data == QuoteUpdate(status='confirmed')
        assert data.has_non_status_updates() is False

    def test_is_expired_is_not_a_commercial_field(self):
        data = parse_quote_update({'status': 'quoted', 'isExpired': False})
        assert data.has_non_status_updates() is False
        assert data.is_restore is True

    def test_restore_needs_explicit_false(self):
        assert parse_quote_update({'status': 'quoted'}).is_restore is False
        assert parse_quote_update({'status': 'quoted', 'isExpired': True}).is_restore is False

    def test_notes_count_as_update(self):
        assert parse_quote_update({'notes': ''}).has_non_status_updates() is True

    def test_is_expired_must_be_boolean(self):
        with pytest.raises(ValidationError, match='isExpired must be a boolean'):
            parse_quote_update({'isExpired': 'no'})

    def test_explicit_null_clears(self):
        data = parse_quote_update({'notes': None, 'expirationDate': None})

        assert data.notes is None
        assert data.cleared == frozenset({'notes', 'expiration_date'})
        assert data.has_non_status_updates() is True

    def test_absent_fields_are_not_cleared(self):
        assert parse_quote_update({'status': 'confirmed'}).cleared == frozenset()


class TestParseOrders:
    """Tests for order parsing."""

    def test_create_defaults_to_draft(self):
        data = parse_order_create({
            'clientId': 1,
            'clientName': 'Acme',
            'items': [{'productId': 1, 'productName': 'Widget', 'quantity': 1, 'unitPrice': 5}],
        })
        assert data.status == 'draft'
        assert data.linked_quote_id is None

    def test_status_only_update(self):
        assert parse_order_update({'status': 'sent'}).is_status_only() is True

    def test_status_with_other_field_is_not_status_only(self):
        assert parse_order_update({'status': 'sent', 'notes': 'x'}).is_status_only() is False

    def test_null_notes_is_not_status_only(self):
        data = parse_order_update({'status': 'sent', 'notes': None})

        assert data.cleared == frozenset({'notes'})
        assert data.is_status_only() is False

    def test_empty_update_is_not_status_only(self):
        assert OrderUpdate().is_status_only() is False

    def test_rejects_unknown_order_status(self):
        with pytest.raises(ValidationError, match='draft, sent, confirmed, denied'):
            parse_order_update({'status': 'shipped'})
