"""Loader (cargador) app endpoints: pickers, opening, staging and closing loads."""
from flask import Blueprint, jsonify, request, g
from distribuidora.database import get_session
from distribuidora.middleware import require_roles
from distribuidora.services import load_service
from distribuidora.utils.request_args import json_body, int_arg, first_present

loader_bp = Blueprint('loader', __name__, url_prefix='/api/cargador')


@loader_bp.route('/carga-agregar/vendedores')
@require_roles('cargador')
def sellers():
    return jsonify({'ok': True, 'data': load_service.list_sellers(get_session())})


@loader_bp.route('/carga-agregar/vendedores-activos')
@require_roles('cargador')
def sellers_with_active_load():
    return jsonify({'ok': True, 'data': load_service.list_sellers(get_session(), only_with_active_load=True)})


@loader_bp.route('/carga-agregar/productos')
@require_roles('cargador')
def products():
    return jsonify({'ok': True, 'data': load_service.list_catalog(get_session())})


@loader_bp.route('/carga-agregar/ultima-carga')
@require_roles('cargador')
def latest_load():
    seller_id = int_arg(first_present(request.args, 'vendedorId', 'idVendedor'), 'vendedorId')
    data = load_service.latest_load_for_seller(get_session(), seller_id)
    if data is None:
        return jsonify({'ok': True, 'data': None, 'msg': 'Sin cargas para este vendedor'})
    return jsonify({'ok': True, 'data': data})


@loader_bp.route('/carga-agregar/abrir', methods=['POST'])
@require_roles('cargador')
def open_load():
    """Body: {vendedorId, camionetaId?, observaciones?}"""
    data = json_body()
    seller_id = int_arg(first_present(data, 'vendedorId', 'idVendedor'), 'vendedorId')
    vehicle_id = int_arg(first_present(data, 'camionetaId', 'idCamioneta'), 'camionetaId', required=False)

    load = load_service.open_load(
        get_session(),
        seller_id,
        created_by=g.principal.user_id,
        vehicle_id=vehicle_id,
        notes=data.get('observaciones'),
    )
    return jsonify({'ok': True, 'cargaId': load.id, 'vendedorId': seller_id}), 201


@loader_bp.route('/carga-agregar/agregar', methods=['POST'])
@require_roles('cargador')
def stage():
    """Body: {cargaId, items: [{productoId, cantidad}]}"""
    data = json_body()
    load_id = int_arg(data.get('cargaId'), 'cargaId')
    items = data.get('items', data.get('productos'))

    lines = load_service.stage_products(get_session(), load_id, items)
    return jsonify({'ok': True, 'cargaId': load_id, 'productos': lines})


@loader_bp.route('/cargas/<int:load_id>/procesar', methods=['POST'])
@require_roles('cargador', 'admin')
def close(load_id):
    load = load_service.close_load(get_session(), load_id)
    return jsonify({
        'ok': True,
        'cargaId': load.id,
        'procesada': True,
        'procesadaEn': load.processed_at.isoformat() if load.processed_at else None,
    })
