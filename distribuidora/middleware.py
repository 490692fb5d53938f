"""Middleware for bearer authentication and role checks."""
from functools import wraps
from flask import g, request
from distribuidora.exceptions import AuthenticationError, ForbiddenError


def load_principal():
    """
    Load the request's principal into g (Flask's per-request global).

    Called before each request. Sets g.principal from the
    ``Authorization: Bearer <token>`` header; a bad token leaves
    g.principal unset and remembers the reason for require_roles.
    """
    g.principal = None
    g.auth_error = None

    header = request.headers.get('Authorization', '')
    if not header.lower().startswith('bearer '):
        return

    token = header[7:].strip()
    if not token:
        return

    from distribuidora.services.auth_service import decode_token
    try:
        g.principal = decode_token(token)
    except AuthenticationError as e:
        g.auth_error = e.message


def require_roles(*roles):
    """
    Decorator: require an authenticated principal with one of ``roles``.

    Usage:
        @require_roles('vendedor')
        @require_roles('cargador', 'admin')

    Superadmin passes every check.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = g.get('principal')
            if principal is None:
                raise AuthenticationError(g.get('auth_error') or 'No autenticado')
            if roles and not principal.has_role(*roles):
                raise ForbiddenError()
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def ensure_seller_access(seller_id):
    """A seller may only act as itself; admins may act for any seller."""
    principal = g.get('principal')
    if principal is None:
        raise AuthenticationError('No autenticado')
    if not principal.can_act_as_seller(seller_id):
        raise ForbiddenError()
