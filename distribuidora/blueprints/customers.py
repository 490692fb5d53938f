"""Customer endpoints: creation, QR lookup, credits and payments."""
from flask import Blueprint, jsonify
from distribuidora.database import get_session
from distribuidora.middleware import require_roles
from distribuidora.services import catalog_service, credit_service
from distribuidora.utils.request_args import json_body, int_arg, first_present

customers_bp = Blueprint('customers', __name__, url_prefix='/api/clientes')


@customers_bp.route('', methods=['POST'])
@require_roles('admin')
def create_customer():
    data = json_body()
    customer = catalog_service.create_customer(
        get_session(),
        first_present(data, 'nombre_empresa', 'nombre'),
        contact_name=data.get('contacto'),
        phone=data.get('telefono'),
        address=data.get('direccion'),
        qr_code=data.get('codigo_qr'),
    )
    return jsonify({'ok': True, 'data': catalog_service.serialize_customer(customer)}), 201


@customers_bp.route('/qr/<qr_code>')
@require_roles('admin', 'vendedor', 'devolucion')
def customer_by_qr(qr_code):
    customer = catalog_service.find_customer_by_qr(get_session(), qr_code)
    return jsonify({'ok': True, 'data': catalog_service.serialize_customer(customer)})


@customers_bp.route('/<int:customer_id>/creditos')
@require_roles('admin')
def customer_credits(customer_id):
    return jsonify({'ok': True, 'data': credit_service.list_customer_credits(get_session(), customer_id)})


@customers_bp.route('/<int:customer_id>/creditos', methods=['POST'])
@require_roles('admin')
def create_credit(customer_id):
    """Body: {total, fecha_limite?, vendedor_id?}"""
    data = json_body()
    credit = credit_service.register_credit_sale(
        get_session(),
        customer_id,
        int_arg(first_present(data, 'vendedor_id', 'idVendedor'), 'vendedor_id', required=False),
        data.get('total'),
        due_date=data.get('fecha_limite'),
    )
    return jsonify({'ok': True, 'credito_id': credit.id, 'id_venta': credit.sale_id}), 201


@customers_bp.route('/<int:customer_id>/saldo')
@require_roles('admin')
def customer_balance(customer_id):
    return jsonify({'ok': True, 'data': credit_service.customer_balance(get_session(), customer_id)})


@customers_bp.route('/pagos', methods=['POST'])
@require_roles('admin')
def pay_credit():
    """Body: {id_credito, monto, tipo_pago?, referencia?, observaciones?}"""
    data = json_body()
    result = credit_service.pay_credit(
        get_session(),
        first_present(data, 'id_credito', 'credito_id', 'creditoId'),
        data.get('monto'),
        payment_type=data.get('tipo_pago') or 'efectivo',
        reference=data.get('referencia'),
        notes=first_present(data, 'observaciones', 'notas'),
    )
    return jsonify({'ok': True, **result}), 201
