"""Catalog administration endpoints (products and categories)."""
from flask import Blueprint, jsonify, request
from distribuidora.database import get_session
from distribuidora.middleware import require_roles
from distribuidora.services import catalog_service
from distribuidora.utils.request_args import json_body, first_present

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api')


@catalog_bp.route('/productos')
@require_roles('admin')
def products_list():
    include_inactive = request.args.get('todos', '').lower() in ('1', 'true', 'si')
    products = catalog_service.list_products(get_session(), include_inactive=include_inactive)
    return jsonify({'ok': True, 'data': [catalog_service.serialize_product(p) for p in products]})


@catalog_bp.route('/productos', methods=['POST'])
@require_roles('admin')
def products_create():
    data = json_body()
    product = catalog_service.create_product(
        get_session(),
        data.get('nombre'),
        data.get('precio'),
        category_id=first_present(data, 'categoria_id', 'categoriaId'),
    )
    return jsonify({'ok': True, 'data': catalog_service.serialize_product(product)}), 201


@catalog_bp.route('/productos/<int:product_id>', methods=['PUT'])
@require_roles('admin')
def products_update(product_id):
    data = json_body()
    product = catalog_service.update_product(
        get_session(),
        product_id,
        name=data.get('nombre'),
        price=data.get('precio'),
        category_id=first_present(data, 'categoria_id', 'categoriaId'),
    )
    return jsonify({'ok': True, 'data': catalog_service.serialize_product(product)})


@catalog_bp.route('/productos/<int:product_id>', methods=['DELETE'])
@require_roles('admin')
def products_delete(product_id):
    catalog_service.deactivate_product(get_session(), product_id)
    return jsonify({'ok': True})


@catalog_bp.route('/categorias')
@require_roles('admin')
def categories_list():
    categories = catalog_service.list_categories(get_session())
    return jsonify({'ok': True, 'data': [{'id': c.id, 'nombre': c.name} for c in categories]})


@catalog_bp.route('/categorias', methods=['POST'])
@require_roles('admin')
def categories_create():
    category = catalog_service.create_category(get_session(), json_body().get('nombre'))
    return jsonify({'ok': True, 'data': {'id': category.id, 'nombre': category.name}}), 201
