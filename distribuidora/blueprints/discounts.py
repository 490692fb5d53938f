"""Global discount endpoints. Reading is open to admins; writing needs superadmin."""
from flask import Blueprint, jsonify
from distribuidora.database import get_session
from distribuidora.services import discount_service
from distribuidora.middleware import require_roles
from distribuidora.utils.request_args import json_body

discounts_bp = Blueprint('discounts', __name__, url_prefix='/api/descuentos-globales')


@discounts_bp.route('')
@require_roles('admin')
def discounts_list():
    return jsonify({'ok': True, 'data': discount_service.list_global_discounts(get_session())})


@discounts_bp.route('/vigente')
@require_roles('admin', 'vendedor')
def current_discount():
    discount = discount_service.current_global_discount(get_session())
    data = discount_service.serialize_discount(discount) if discount else None
    return jsonify({'ok': True, 'data': data})


@discounts_bp.route('', methods=['POST'])
@require_roles('superadmin')
def discounts_create():
    data = json_body()
    discount = discount_service.create_global_discount(
        get_session(),
        data.get('porcentaje'),
        data.get('fecha_inicio'),
        data.get('fecha_fin'),
        active=data.get('activo', True),
    )
    return jsonify({'ok': True, 'mensaje': 'Descuento global creado', 'id': discount.id}), 201


@discounts_bp.route('/<int:discount_id>', methods=['PATCH'])
@require_roles('superadmin')
def discounts_update(discount_id):
    data = json_body()
    discount = discount_service.update_global_discount(
        get_session(),
        discount_id,
        percentage=data.get('porcentaje'),
        start_date=data.get('fecha_inicio'),
        end_date=data.get('fecha_fin'),
        active=data.get('activo'),
    )
    return jsonify({'ok': True, 'data': discount_service.serialize_discount(discount)})


@discounts_bp.route('/<int:discount_id>/toggle', methods=['PATCH'])
@require_roles('superadmin')
def discounts_toggle(discount_id):
    discount = discount_service.toggle_global_discount(get_session(), discount_id, json_body().get('activo'))
    return jsonify({'ok': True, 'mensaje': 'Estatus actualizado', 'data': discount_service.serialize_discount(discount)})
