"""
Integration tests for the quote lifecycle (SQLite).
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from conftest import item_body, quote_body, order_body
from praetor.exceptions import ConflictError, NotFoundError, ValidationError
from praetor.models import ClientOrder, Quote, QuoteItem
from praetor.services import order_service, quote_service
from praetor.services.validation import (
    parse_order_create, parse_order_update, parse_quote_create, parse_quote_update
)


def create_quote(session, acme, widget, sink=None, **extra):
    body = quote_body(acme, [item_body(widget, quantity=2, unit_price=100, discount=10)], **extra)
    return quote_service.create_quote(session, parse_quote_create(body), invalidation=sink)


def confirm(session, quote_id):
    return quote_service.update_quote(session, quote_id, parse_quote_update({'status': 'confirmed'}))


class TestCreateQuote:
    """Tests for quote creation."""

    def test_create_snapshots_catalog(self, session, acme, widget, sink):
        quote = create_quote(session, acme, widget, sink)

        assert quote.id is not None
        assert quote.status == 'quoted'
        assert quote.payment_terms == '30gg'
        item = quote.items[0]
        assert item.product_cost == Decimal('40.00')
        assert item.product_tax_rate == Decimal('22.00')
        assert item.product_mol_percentage == Decimal('20.00')
        assert sink.namespaces == ['client_quotes']

    def test_serialized_totals(self, session, acme, widget):
        quote = create_quote(session, acme, widget)
        data = quote_service.serialize_quote(quote)

        assert data['subtotal'] == 180.0
        assert data['totalTax'] == pytest.approx(39.6)
        assert data['total'] == pytest.approx(219.6)
        assert data['isExpired'] is False
        assert data['items'][0]['productTaxRate'] == 22.0
        assert isinstance(data['createdAt'], int)

    def test_special_bid_snapshot(self, session, acme, widget, widget_bid):
        body = quote_body(acme, [item_body(widget, unit_price=90, special_bid=widget_bid)])
        quote = quote_service.create_quote(session, parse_quote_create(body))

        assert quote.items[0].special_bid_unit_price == Decimal('90.00')
        assert quote.items[0].special_bid_mol_percentage == Decimal('15.00')

    def test_default_payment_terms(self, session, acme, widget):
        body = quote_body(acme, [item_body(widget)])
        del body['paymentTerms']
        quote = quote_service.create_quote(
            session, parse_quote_create(body), default_payment_terms='60gg'
        )
        assert quote.payment_terms == '60gg'

    def test_duplicate_code_is_conflict(self, session, acme, widget, sink):
        create_quote(session, acme, widget)

        with pytest.raises(ConflictError) as exc_info:
            create_quote(session, acme, widget, sink)

        assert exc_info.value.status_code == 409
        assert exc_info.value.payload == {'field': 'quoteCode'}
        assert sink.namespaces == []
        assert session.query(Quote).count() == 1

    def test_zero_total_is_rejected(self, session, acme, widget):
        body = quote_body(acme, [item_body(widget, unit_price=0)])

        with pytest.raises(ValidationError, match='Total must be greater than 0'):
            quote_service.create_quote(session, parse_quote_create(body))

        assert session.query(Quote).count() == 0

    def test_sub_cent_price_is_rejected(self, session, acme, widget):
        body = quote_body(acme, [item_body(widget, quantity=1, unit_price='0.004')])

        with pytest.raises(ValidationError, match='Total must be greater than 0'):
            quote_service.create_quote(session, parse_quote_create(body))

        assert session.query(Quote).count() == 0

    def test_stored_values_match_checked_values(self, session, acme, widget):
        body = quote_body(acme, [item_body(widget, quantity='1.0004', unit_price='99.995', discount='2.005')], discount='12.345')
        quote_id = quote_service.create_quote(session, parse_quote_create(body)).id
        session.expire_all()

        quote = session.get(Quote, quote_id)
        item = quote.items[0]
        assert quote.discount == Decimal('12.35')
        assert (item.quantity, item.unit_price, item.discount) == (Decimal('1.000'), Decimal('100.00'), Decimal('2.01'))

    def test_unknown_product_writes_nothing(self, session, acme, widget):
        items = [item_body(widget), {'productId': 999, 'productName': 'Ghost', 'quantity': 1, 'unitPrice': 5}]
        with pytest.raises(ValidationError, match=r'items\[1\].productId "999" is invalid'):
            quote_service.create_quote(session, parse_quote_create(quote_body(acme, items)))

        assert session.query(Quote).count() == 0
        assert session.query(QuoteItem).count() == 0


class TestUpdateQuote:
    """Tests for updates while quoted."""

    def test_items_are_replaced(self, session, acme, widget, consulting, sink):
        quote = create_quote(session, acme, widget)
        data = parse_quote_update({'items': [item_body(consulting, quantity=3, unit_price=50)]})

        quote = quote_service.update_quote(session, quote.id, data, invalidation=sink)

        assert len(quote.items) == 1
        assert quote.items[0].product_id == consulting.id
        assert quote.items[0].product_tax_rate == Decimal('10.00')
        assert session.query(QuoteItem).count() == 1
        assert sink.namespaces == ['client_quotes']

    def test_unchanged_item_keeps_snapshot(self, session, acme, widget):
        quote = create_quote(session, acme, widget)
        item_id = quote.items[0].id

        # Catalog changes after the quote was issued
        widget.cost = Decimal('55.00')
        widget.tax_rate = Decimal('5.00')
        session.commit()

        data = parse_quote_update({'items': [item_body(widget, quantity=5, id=item_id)]})
        quote = quote_service.update_quote(session, quote.id, data)

        assert quote.items[0].quantity == Decimal('5')
        assert quote.items[0].product_cost == Decimal('40.00')
        assert quote.items[0].product_tax_rate == Decimal('22.00')

    def test_new_special_bid_refreshes_snapshot(self, session, acme, widget, widget_bid):
        quote = create_quote(session, acme, widget)
        item_id = quote.items[0].id
        widget.cost = Decimal('55.00')
        session.commit()

        data = parse_quote_update({'items': [item_body(widget, id=item_id, special_bid=widget_bid)]})
        quote = quote_service.update_quote(session, quote.id, data)

        assert quote.items[0].product_cost == Decimal('55.00')
        assert quote.items[0].special_bid_unit_price == Decimal('90.00')

    def test_discount_revalidates_total(self, session, acme, widget):
        quote = create_quote(session, acme, widget)

        with pytest.raises(ValidationError):
            quote_service.update_quote(session, quote.id, parse_quote_update({'discount': 100}))

        session.refresh(quote)
        assert quote.discount == Decimal('0')

    def test_explicit_null_clears_notes_and_expiration(self, session, acme, widget):
        quote = create_quote(session, acme, widget, notes='Call first')

        quote = quote_service.update_quote(
            session, quote.id, parse_quote_update({'notes': None, 'expirationDate': None})
        )

        assert quote.notes is None
        assert quote.expiration_date is None
        assert quote.is_expired is False

    def test_omitted_notes_are_kept(self, session, acme, widget):
        quote = create_quote(session, acme, widget, notes='Call first')

        quote = quote_service.update_quote(session, quote.id, parse_quote_update({'discount': 5}))

        assert quote.notes == 'Call first'

    def test_code_collision_on_update(self, session, acme, widget):
        create_quote(session, acme, widget)
        other = create_quote(session, acme, widget, quoteCode='Q-2026-002')

        with pytest.raises(ConflictError, match='Quote code already exists'):
            quote_service.update_quote(session, other.id, parse_quote_update({'quoteCode': 'Q-2026-001'}))

    def test_missing_quote(self, session):
        with pytest.raises(NotFoundError):
            quote_service.update_quote(session, 12345, parse_quote_update({'notes': 'x'}))

    def test_quoted_with_linked_order_cannot_be_set_quoted(self, session, acme, widget):
        quote = create_quote(session, acme, widget)
        body = order_body(acme, [item_body(widget)], linkedQuoteId=quote.id)
        order_service.create_order(session, parse_order_create(body))

        with pytest.raises(ConflictError, match='Cannot revert quote with existing sale orders'):
            quote_service.update_quote(session, quote.id, parse_quote_update({'status': 'quoted'}))


class TestConfirmedQuote:
    """A confirmed quote is read-only."""

    @pytest.mark.parametrize('body', [
        {'clientId': 99},
        {'notes': 'changed'},
        {'notes': None},
        {'discount': 5},
        {'paymentTerms': 'immediate'},
        {'expirationDate': '2030-01-01'},
        {'items': [{'productId': 1, 'productName': 'x', 'quantity': 1, 'unitPrice': 1}]},
        {'status': 'confirmed', 'notes': 'changed'},
    ])
    def test_rejects_commercial_changes(self, session, acme, widget, body):
        quote = confirm(session, create_quote(session, acme, widget).id)

        with pytest.raises(ConflictError) as exc_info:
            quote_service.update_quote(session, quote.id, parse_quote_update(body))

        assert exc_info.value.payload == {'currentStatus': 'confirmed'}

    def test_status_only_noop_succeeds(self, session, acme, widget, sink):
        quote = confirm(session, create_quote(session, acme, widget).id)

        quote = quote_service.update_quote(
            session, quote.id, parse_quote_update({'status': 'confirmed'}), invalidation=sink
        )
        assert quote.status == 'confirmed'
        assert sink.namespaces == ['client_quotes']

    def test_confirmed_quote_is_never_expired(self, session, acme, widget):
        past = (date.today() - timedelta(days=10)).isoformat()
        quote = create_quote(session, acme, widget, expirationDate=past)
        assert quote.is_expired is True

        quote = confirm(session, quote.id)
        assert quote.is_expired is False

    def test_plain_revert_is_rejected(self, session, acme, widget):
        quote = confirm(session, create_quote(session, acme, widget).id)

        with pytest.raises(ConflictError, match='requires a restore'):
            quote_service.update_quote(session, quote.id, parse_quote_update({'status': 'quoted'}))

    def test_cannot_delete(self, session, acme, widget):
        quote = confirm(session, create_quote(session, acme, widget).id)

        with pytest.raises(ConflictError, match='Cannot delete a confirmed quote'):
            quote_service.delete_quote(session, quote.id)

        assert session.query(Quote).count() == 1


class TestRestore:
    """confirmed -> quoted with isExpired=false."""

    def test_restore_deletes_draft_orders(self, session, acme, widget, sink):
        quote = confirm(session, create_quote(session, acme, widget).id)
        order = order_service.create_order_from_quote(session, quote.id)
        order_id = order.id

        data = parse_quote_update({'status': 'quoted', 'isExpired': False})
        quote = quote_service.update_quote(session, quote.id, data, invalidation=sink)

        assert quote.status == 'quoted'
        assert session.query(ClientOrder).filter_by(id=order_id).first() is None
        assert sink.namespaces == ['client_quotes', 'clients_orders']

    def test_restore_blocked_by_non_draft_order(self, session, acme, widget):
        quote = confirm(session, create_quote(session, acme, widget).id)
        order = order_service.create_order_from_quote(session, quote.id)
        order_service.update_order(session, order.id, parse_order_update({'status': 'sent'}))

        with pytest.raises(ConflictError) as exc_info:
            quote_service.update_quote(
                session, quote.id, parse_quote_update({'status': 'quoted', 'isExpired': False})
            )

        assert exc_info.value.payload == {'orderIds': [order.id]}
        session.refresh(quote)
        assert quote.status == 'confirmed'

    def test_restore_echoes_expired_override(self, session, acme, widget):
        past = (date.today() - timedelta(days=10)).isoformat()
        quote = confirm(session, create_quote(session, acme, widget, expirationDate=past).id)

        data = parse_quote_update({'status': 'quoted', 'isExpired': False})
        quote = quote_service.update_quote(session, quote.id, data)

        assert quote.is_expired is True
        serialized = quote_service.serialize_quote(quote, quote_service.restore_expired_flag(data))
        assert serialized['isExpired'] is False


class TestDeleteQuote:
    """Tests for quote deletion."""

    def test_delete_cascades_items(self, session, acme, widget, sink):
        quote = create_quote(session, acme, widget)

        quote_service.delete_quote(session, quote.id, invalidation=sink)

        assert session.query(Quote).count() == 0
        assert session.query(QuoteItem).count() == 0
        assert sink.namespaces == ['client_quotes']

    def test_delete_missing(self, session):
        with pytest.raises(NotFoundError):
            quote_service.delete_quote(session, 999)
