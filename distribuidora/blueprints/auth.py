"""Login endpoints for each app (admin, cargador, vendedor, devolucion)."""
from flask import Blueprint, jsonify, g, current_app
from distribuidora.database import get_session
from distribuidora.middleware import require_roles
from distribuidora.services.auth_service import authenticate, issue_token
from distribuidora.utils.request_args import json_body, first_present

auth_bp = Blueprint('auth', __name__, url_prefix='/api')


def _login(role_partition):
    data = json_body()
    username = first_present(data, 'usuario', 'username', 'email')
    password = first_present(data, 'contrasena', 'password')

    session = get_session()
    user, principal = authenticate(session, username, password, role_partition)
    token = issue_token(principal)

    seller = None
    if principal.seller_id:
        from distribuidora.models import Seller
        seller = session.get(Seller, principal.seller_id)

    return jsonify({
        'ok': True,
        'token': token,
        'expiresIn': current_app.config.get('JWT_EXPIRES_HOURS', 8) * 60 * 60,
        'usuario': user.username,
        'nombre': user.full_name or user.username,
        'rol': principal.role.value,
        'id': user.id,
        'vendedorId': principal.seller_id,
        'cargadorId': principal.loader_id,
        'camionetaId': seller.vehicle_id if seller else None,
    })


@auth_bp.route('/admin/auth/login', methods=['POST'])
def login_admin():
    return _login('admin')


@auth_bp.route('/cargador/auth/login', methods=['POST'])
def login_cargador():
    return _login('cargador')


@auth_bp.route('/vendedor/auth/login', methods=['POST'])
def login_vendedor():
    return _login('vendedor')


@auth_bp.route('/devolucion/auth/login', methods=['POST'])
def login_devolucion():
    return _login('devolucion')


@auth_bp.route('/vendedor/auth/me')
@require_roles('vendedor')
def me_vendedor():
    """Echo the token's identity."""
    principal = g.principal
    return jsonify({
        'ok': True,
        'id': principal.user_id,
        'rol': principal.role.value,
        'vendedorId': principal.seller_id,
    })
