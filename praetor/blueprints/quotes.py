"""Client quotes JSON API."""
from flask import Blueprint, request, jsonify, send_file, current_app, g
from praetor.database import get_session
from praetor.middleware import require_login, require_role
from praetor.services.cache_service import get_cache, QUOTES_NAMESPACE
from praetor.services import quote_service, order_service
from praetor.services.quote_pdf_service import generate_quote_pdf
from praetor.services.validation import parse_quote_create, parse_quote_update
from praetor.blueprints.metrics import record_mutation

quotes_bp = Blueprint('quotes', __name__, url_prefix='/api/client-quotes')


@quotes_bp.route('/', methods=['GET'])
@require_login
def list_quotes():
    """List all quotes (cached per namespace version)."""
    db_session = get_session()
    quotes = get_cache().memoize(
        QUOTES_NAMESPACE, 'list',
        lambda: quote_service.list_quotes(db_session),
        ttl=current_app.config.get('CACHE_LIST_TTL')
    )
    return jsonify(quotes)


@quotes_bp.route('/', methods=['POST'])
@require_login
@require_role('manager')
def create_quote():
    data = parse_quote_create(request.get_json(silent=True))
    quote = quote_service.create_quote(
        get_session(), data,
        invalidation=get_cache(),
        default_payment_terms=current_app.config.get('DEFAULT_PAYMENT_TERMS', 'immediate')
    )
    record_mutation('quote', 'create')
    return jsonify(quote_service.serialize_quote(quote)), 201


@quotes_bp.route('/<int:quote_id>', methods=['PUT'])
@require_login
@require_role('manager')
def update_quote(quote_id):
    data = parse_quote_update(request.get_json(silent=True))
    quote = quote_service.update_quote(get_session(), quote_id, data, invalidation=get_cache())
    record_mutation('quote', 'update')
    return jsonify(quote_service.serialize_quote(quote, quote_service.restore_expired_flag(data)))


@quotes_bp.route('/<int:quote_id>', methods=['DELETE'])
@require_login
@require_role('manager')
def delete_quote(quote_id):
    quote_service.delete_quote(get_session(), quote_id, invalidation=get_cache())
    record_mutation('quote', 'delete')
    return '', 204


@quotes_bp.route('/<int:quote_id>/pdf', methods=['GET'])
@require_login
def quote_pdf(quote_id):
    """Download a quote as PDF."""
    business_info = {
        'name': current_app.config.get('BUSINESS_NAME', 'Praetor'),
        'address': current_app.config.get('BUSINESS_ADDRESS', ''),
        'phone': current_app.config.get('BUSINESS_PHONE', ''),
        'email': current_app.config.get('BUSINESS_EMAIL', ''),
    }
    pdf_buffer = generate_quote_pdf(get_session(), quote_id, business_info)
    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f'quote_{quote_id}.pdf'
    )


@quotes_bp.route('/<int:quote_id>/order', methods=['POST'])
@require_login
@require_role('manager')
def create_order_from_quote(quote_id):
    """Open a draft sale order from a confirmed quote."""
    order = order_service.create_order_from_quote(
        get_session(), quote_id, actor_id=g.user_id, invalidation=get_cache()
    )
    record_mutation('order', 'create')
    return jsonify(order_service.serialize_order(order)), 201
