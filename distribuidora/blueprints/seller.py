"""Seller (vendedor) app endpoints: active load, public sales and returns."""
from flask import Blueprint, jsonify, request, g
from distribuidora.database import get_session
from distribuidora.exceptions import LoadNotFound, NoActiveLoad
from distribuidora.middleware import require_roles, ensure_seller_access
from distribuidora.models import Role
from distribuidora.services import load_service, sales_service, return_service, visit_service
from distribuidora.services.notification_service import get_notifier
from distribuidora.utils.request_args import json_body, int_arg, first_present

seller_bp = Blueprint('seller', __name__, url_prefix='/api/vendedor')


def _resolve_seller_id(raw, field='idVendedor'):
    """Seller id from the request, defaulting to the caller's own seller."""
    if raw in (None, '') and g.principal.seller_id:
        seller_id = g.principal.seller_id
    else:
        seller_id = int_arg(raw, field)
    ensure_seller_access(seller_id)
    return seller_id


def _active_load_response(seller_id):
    snapshot = load_service.get_load_snapshot(get_session(), seller_id)
    if snapshot is None:
        return jsonify({'ok': True, 'data': None, 'msg': 'Sin carga activa'})

    carga = snapshot['carga']
    return jsonify({
        'ok': True,
        'data': {
            'id': carga['id'],
            'procesada': carga['procesada'],
            'carga': carga,
            'productosNuevos': snapshot['productosNuevos'],
            'productos': snapshot['productos'],
        }
    })


@seller_bp.route('/ventapublico/carga-activa/<int:seller_id>')
@require_roles('vendedor')
def active_load(seller_id):
    ensure_seller_access(seller_id)
    return _active_load_response(seller_id)


@seller_bp.route('/inventario/activo')
@require_roles('vendedor')
def active_inventory():
    seller_id = _resolve_seller_id(first_present(request.args, 'idVendedor', 'vendedorId'))
    return _active_load_response(seller_id)


@seller_bp.route('/ventapublico/vender', methods=['POST'])
@require_roles('vendedor')
def sell_public():
    """
    Commit a walk-in sale.

    Body: {idVendedor|vendedorId, tipoPago, latitud?, longitud?,
           productos: [{productoId|nombre, cantidad}]}
    """
    data = json_body()
    seller_id = _resolve_seller_id(first_present(data, 'idVendedor', 'vendedorId'))

    result = sales_service.commit_public_sale(
        get_session(),
        seller_id,
        first_present(data, 'tipoPago', 'metodoPago', 'metodo_pago'),
        data.get('productos'),
        latitude=first_present(data, 'latitud', 'lat'),
        longitude=first_present(data, 'longitud', 'lng'),
        notifier=get_notifier(),
    )
    return jsonify({'ok': True, 'data': result})


@seller_bp.route('/inventario/marcar-procesar', methods=['POST'])
@require_roles('vendedor')
def mark_ready():
    """Flag the active load as ready for the loader's confirmation."""
    session = get_session()
    seller_id = _resolve_seller_id(
        first_present(request.args, 'idVendedor', 'vendedorId') or first_present(json_body(), 'idVendedor', 'vendedorId')
    )
    load = load_service.get_active_load(session, seller_id)
    if load is None:
        raise NoActiveLoad(seller_id)
    try:
        load = load_service.mark_ready_for_confirmation(session, load.id)
    except LoadNotFound:
        raise NoActiveLoad(seller_id)
    return jsonify({'ok': True, 'cargaId': load.id, 'listaParaConfirmar': True})


@seller_bp.route('/no-venta', methods=['POST'])
@require_roles('vendedor')
def register_no_sale():
    """
    Record a visit that ended without a sale.

    Body: {clienteId|codigo, motivos: [str], latitud?, longitud?,
           observaciones?, idVendedor?}
    """
    data = json_body()
    seller_id = _resolve_seller_id(first_present(data, 'idVendedor', 'vendedorId'))

    visit = visit_service.register_no_sale(
        get_session(),
        seller_id,
        data.get('motivos'),
        customer_id=int_arg(first_present(data, 'clienteId', 'cliente_id'), 'clienteId', required=False),
        customer_code=first_present(data, 'codigo', 'cliente_qr'),
        latitude=first_present(data, 'latitud', 'lat'),
        longitude=first_present(data, 'longitud', 'lng'),
        notes=data.get('observaciones'),
    )
    return jsonify({'ok': True, 'data': {
        'id': visit.id,
        'vendedorId': visit.seller_id,
        'clienteId': visit.customer_id,
    }})


@seller_bp.route('/devoluciones/para-devolver')

@require_roles('vendedor')
def returnable():
    seller_id = _resolve_seller_id(first_present(request.args, 'vendedor_id', 'idVendedor'), 'vendedor_id')
    return jsonify({'ok': True, 'data': return_service.list_returnable(get_session(), seller_id)})


@seller_bp.route('/devoluciones/pendientes')
@require_roles('vendedor', 'devolucion')
def pending_returns():
    raw = first_present(request.args, 'vendedor_id', 'idVendedor')
    if g.principal.role == Role.VENDEDOR:
        seller_id = _resolve_seller_id(raw, 'vendedor_id')
    else:
        seller_id = int_arg(raw, 'vendedor_id', required=False)
    return jsonify({'ok': True, 'data': return_service.list_pending_returns(get_session(), seller_id)})


@seller_bp.route('/devoluciones', methods=['POST'])
@require_roles('vendedor')
def create_return():
    """
    Body: {vendedor_id, motivo, productos: [{id_producto|nombre, cantidad}],
           cliente_id?, cliente_qr?, force?}
    """
    data = json_body()
    seller_id = _resolve_seller_id(first_present(data, 'vendedor_id', 'idVendedor'), 'vendedor_id')

    return_id = return_service.register_return(
        get_session(),
        seller_id,
        data.get('motivo'),
        data.get('productos'),
        customer_id=int_arg(data.get('cliente_id'), 'cliente_id', required=False),
        customer_qr=data.get('cliente_qr'),
        force=bool(data.get('force')),
    )
    return jsonify({'ok': True, 'devolucion_id': return_id}), 201


@seller_bp.route('/devoluciones/<int:return_id>/procesar', methods=['PATCH'])
@require_roles('devolucion', 'cargador')
def process_return(return_id):
    return_service.mark_return_processed(get_session(), return_id)
    return jsonify({'ok': True})
