"""Client orders JSON API."""
from flask import Blueprint, request, jsonify, current_app, g
from praetor.database import get_session
from praetor.middleware import require_login, require_role
from praetor.services.cache_service import get_cache, ORDERS_NAMESPACE
from praetor.services import order_service
from praetor.services.validation import parse_order_create, parse_order_update
from praetor.blueprints.metrics import record_mutation

orders_bp = Blueprint('orders', __name__, url_prefix='/api/clients-orders')


@orders_bp.route('/', methods=['GET'])
@require_login
def list_orders():
    """List all orders (cached per namespace version)."""
    db_session = get_session()
    orders = get_cache().memoize(
        ORDERS_NAMESPACE, 'list',
        lambda: order_service.list_orders(db_session),
        ttl=current_app.config.get('CACHE_LIST_TTL')
    )
    return jsonify(orders)


@orders_bp.route('/', methods=['POST'])
@require_login
@require_role('manager')
def create_order():
    data = parse_order_create(request.get_json(silent=True))
    order = order_service.create_order(
        get_session(), data,
        actor_id=g.user_id,
        invalidation=get_cache(),
        default_payment_terms=current_app.config.get('DEFAULT_PAYMENT_TERMS', 'immediate')
    )
    record_mutation('order', 'create')
    return jsonify(order_service.serialize_order(order)), 201


@orders_bp.route('/<int:order_id>', methods=['PUT'])
@require_login
@require_role('manager')
def update_order(order_id):
    data = parse_order_update(request.get_json(silent=True))
    order = order_service.update_order(
        get_session(), order_id, data, actor_id=g.user_id, invalidation=get_cache()
    )
    record_mutation('order', 'update')
    return jsonify(order_service.serialize_order(order))


@orders_bp.route('/<int:order_id>', methods=['DELETE'])
@require_login
@require_role('manager')
def delete_order(order_id):
    order_service.delete_order(get_session(), order_id, invalidation=get_cache())
    record_mutation('order', 'delete')
    return '', 204
