"""Truck (camioneta) administration and seller assignment."""
from flask import Blueprint, jsonify
from distribuidora.database import get_session
from distribuidora.services import fleet_service
from distribuidora.middleware import require_roles
from distribuidora.utils.request_args import json_body, int_arg, first_present

fleet_bp = Blueprint('fleet', __name__, url_prefix='/api/camionetas')


@fleet_bp.route('')
@require_roles('admin')
def vehicles_list():
    return jsonify({'ok': True, 'data': fleet_service.list_vehicles(get_session())})


@fleet_bp.route('', methods=['POST'])
@require_roles('admin')
def vehicles_create():
    data = json_body()
    vehicle = fleet_service.create_vehicle(
        get_session(),
        data.get('placa'),
        brand=data.get('marca'),
        model=data.get('modelo'),
        color=data.get('color'),
        odometer=data.get('kilometraje_actual'),
        refrigerated=bool(data.get('tiene_refrigeracion')),
    )
    return jsonify({'ok': True, 'data': fleet_service.serialize_vehicle(vehicle)}), 201


@fleet_bp.route('/<int:vehicle_id>/asignar-vendedor', methods=['POST'])
@require_roles('admin')
def assign_seller(vehicle_id):
    """Body: {id_vendedor, reasignar?}"""
    data = json_body()
    seller_id = int_arg(first_present(data, 'id_vendedor', 'vendedorId'), 'id_vendedor')
    result = fleet_service.assign_vehicle(
        get_session(), seller_id, vehicle_id, reassign=data.get('reasignar') is True
    )
    message = 'Ya estaba asignado' if result['yaAsignado'] else 'Vendedor asignado correctamente.'
    return jsonify({'ok': True, 'mensaje': message, **result})


@fleet_bp.route('/<int:vehicle_id>/desvincular-vendedor', methods=['PATCH'])
@require_roles('admin')
def unassign_seller(vehicle_id):
    seller_id = fleet_service.unassign_vehicle(get_session(), vehicle_id)
    return jsonify({'ok': True, 'mensaje': 'Vendedor desvinculado correctamente.', 'vendedorId': seller_id})


@fleet_bp.route('/<int:vehicle_id>/historial-asignaciones')
@require_roles('admin')
def assignment_history(vehicle_id):
    return jsonify({'ok': True, 'data': fleet_service.assignment_history(get_session(), vehicle_id)})
