"""Middleware for the acting-user context."""
from functools import wraps
from flask import session, g, jsonify, current_app
from praetor.database import get_session
from praetor.exceptions import UnauthorizedError
from praetor.models import AppUser


def load_user():
    """
    Load the current user into g (Flask's per-request global).

    Sessions are issued elsewhere; this only reads `user_id` from the signed
    cookie. Sets g.user and g.user_id when an active user is found.
    """
    g.user = None
    g.user_id = None

    try:
        user_id = session.get('user_id')
        if user_id:
            db_session = get_session()
            if not db_session:
                return

            user = db_session.query(AppUser).filter_by(id=user_id, is_disabled=False).first()
            if user:
                g.user = user
                g.user_id = user.id
    except Exception as e:
        current_app.logger.error(f"Error in load_user: {e}")


def require_login(f):
    """Decorator: reject anonymous requests with a JSON 401."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            return jsonify({'status': 'error', 'message': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function


def require_role(min_role='user'):
    """
    Decorator: Require a minimum application role.

    Roles hierarchy: admin > manager > user

    Must be used AFTER require_login.
    """
    role_hierarchy = {'admin': 3, 'manager': 2, 'user': 1}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_level = role_hierarchy.get(g.user.role, 0)
            required_level = role_hierarchy.get(min_role, 1)
            if user_level < required_level:
                raise UnauthorizedError(f'Role {min_role} or higher required')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
