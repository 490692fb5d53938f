"""Catalog administration: products, categories and customers."""
import logging
import secrets
from typing import List, Dict, Optional, Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from distribuidora.database import transaction
from distribuidora.exceptions import ValidationError, NotFoundError, ConflictError
from distribuidora.models import Product, Category, Customer
from distribuidora.utils.numbers import parse_decimal, round_money, to_float

logger = logging.getLogger(__name__)


def serialize_product(product: Product) -> Dict[str, Any]:
    return {
        'id': product.id,
        'nombre': product.name,
        'precio': to_float(product.price),
        'categoria_id': product.category_id,
        'activo': bool(product.active),
    }


def serialize_customer(customer: Customer) -> Dict[str, Any]:
    return {
        'id': customer.id,
        'nombre_empresa': customer.business_name,
        'contacto': customer.contact_name,
        'telefono': customer.phone,
        'direccion': customer.address,
        'codigo_qr': customer.qr_code,
        'activo': bool(customer.active),
    }


def _parse_price(value):
    try:
        price = parse_decimal(value)
    except ValueError:
        raise ValidationError('Precio inválido')
    if price < 0:
        raise ValidationError('El precio no puede ser negativo')
    return round_money(price)


def _check_category(session, category_id):
    if category_id in (None, ''):
        return None
    category = session.get(Category, category_id)
    if not category:
        raise ValidationError('Categoría no encontrada')
    return category.id


def create_product(session, name: str, price, category_id=None) -> Product:
    """Create a catalog product."""
    name = (name or '').strip()
    if not name:
        raise ValidationError('El nombre del producto es obligatorio')
    price = _parse_price(price)

    with transaction(session):
        product = Product(
            name=name,
            price=price,
            category_id=_check_category(session, category_id),
            active=True,
            deleted=False,
        )
        session.add(product)
        session.flush()

    logger.info(f"Product {product.id} created: {name}")
    return product


def update_product(session, product_id, name: Optional[str] = None, price=None, category_id=None) -> Product:
    """
    Update a product. A price change applies to future stage-ins only;
    load lines keep the price they captured.
    """
    with transaction(session):
        product = session.get(Product, product_id)
        if not product or product.deleted:
            raise NotFoundError('Producto no encontrado')

        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError('El nombre del producto es obligatorio')
            product.name = name
        if price is not None:
            product.price = _parse_price(price)
        if category_id is not None:
            product.category_id = _check_category(session, category_id)

    return product


def deactivate_product(session, product_id) -> Product:
    """Soft delete: the product disappears from pickers, history keeps it."""
    with transaction(session):
        product = session.get(Product, product_id)
        if not product or product.deleted:
            raise NotFoundError('Producto no encontrado')
        product.active = False
        product.deleted = True

    logger.info(f"Product {product_id} deactivated")
    return product


def list_products(session, include_inactive: bool = False) -> List[Product]:
    query = session.query(Product).filter(Product.deleted.is_(False))
    if not include_inactive:
        query = query.filter(Product.active.is_(True))
    return query.order_by(Product.name).all()


def create_category(session, name: str) -> Category:
    name = (name or '').strip()
    if not name:
        raise ValidationError('El nombre de la categoría es obligatorio')

    existing = session.query(Category).filter(func.lower(Category.name) == name.lower()).first()
    if existing:
        raise ConflictError(f"Ya existe una categoría con el nombre '{name}'")

    with transaction(session):
        category = Category(name=name)
        session.add(category)
        session.flush()
    return category


def list_categories(session) -> List[Category]:
    return session.query(Category).order_by(Category.name).all()


def create_customer(session, business_name: str, contact_name: Optional[str] = None,
                    phone: Optional[str] = None, address: Optional[str] = None,
                    qr_code: Optional[str] = None) -> Customer:
    """Create a customer. A QR code is generated when none is given."""
    business_name = (business_name or '').strip()
    if not business_name:
        raise ValidationError('El nombre de la empresa es obligatorio')
    qr_code = (qr_code or '').strip() or f'CLI-{secrets.token_hex(6).upper()}'

    try:
        with transaction(session):
            customer = Customer(
                business_name=business_name,
                contact_name=(contact_name or '').strip() or None,
                phone=(phone or '').strip() or None,
                address=(address or '').strip() or None,
                qr_code=qr_code,
                active=True,
            )
            session.add(customer)
            session.flush()
    except IntegrityError:
        raise ConflictError('El código QR ya está asignado a otro cliente', {'codigo_qr': qr_code})

    logger.info(f"Customer {customer.id} created: {business_name}")
    return customer


def find_customer_by_qr(session, qr_code: str) -> Customer:
    qr_code = (qr_code or '').strip()
    if not qr_code:
        raise ValidationError('Código QR requerido')
    customer = session.query(Customer).filter(
        Customer.qr_code == qr_code, Customer.active.is_(True)
    ).first()
    if not customer:
        raise NotFoundError('Cliente no encontrado')
    return customer
