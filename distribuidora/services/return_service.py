"""
Product returns (devoluciones).

Returned goods go back onto the seller's truck, so a return raises the
line's returned quantity (and with it the remaining quantity). Without
``force`` a return is capped at what was sold and not yet returned.
"""
import logging
from decimal import Decimal
from typing import List, Dict, Optional, Any, Tuple

from distribuidora.database import transaction
from distribuidora.exceptions import (
    ValidationError, InvalidItem, NotFoundError, ConflictError, ProductNotInLoad, NoActiveLoad
)
from distribuidora.models import Customer, Load, LoadLine, ProductReturn, ProductReturnLine
from distribuidora.services.load_service import get_active_load
from distribuidora.utils.numbers import STOCK_EPSILON, parse_positive, to_float

logger = logging.getLogger(__name__)


def register_return(
    session,
    seller_id: int,
    reason: str,
    items: List[Dict[str, Any]],
    customer_id: Optional[int] = None,
    customer_qr: Optional[str] = None,
    force: bool = False
) -> int:
    """
    Register a return against the seller's active load.

    Args:
        items: [{'id_producto'|'productoId': int} or {'nombre': str}, 'cantidad': number]
        force: skip the sold-minus-returned cap

    Returns:
        The new return id.
    """
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError('motivo requerido')
    requested = _parse_return_items(items)
    customer_qr = (customer_qr or '').strip() or None

    with transaction(session):
        customer = _resolve_customer(session, customer_id, customer_qr)

        active = get_active_load(session, seller_id)
        if active is None:
            raise NoActiveLoad(seller_id)
        load = session.query(Load).filter(
            Load.id == active.id
        ).with_for_update(read=True).populate_existing().first()
        if not load or load.processed:
            raise NoActiveLoad(seller_id)

        lines_by_id, lines_by_name, ambiguous = _index_lines(session, load.id)
        quantities: Dict[int, Decimal] = {}
        for (kind, ref), qty in requested.items():
            if kind == 'name' and ref in ambiguous:
                raise ValidationError(f'Nombre de producto ambiguo en la carga: {ref}', {'producto': ref})
            line = lines_by_id.get(ref) if kind == 'id' else lines_by_name.get(ref)
            if line is None:
                raise ProductNotInLoad(ref)
            quantities[line.product_id] = quantities.get(line.product_id, Decimal('0')) + qty

        locked = {
            line.product_id: line
            for line in session.query(LoadLine).filter(
                LoadLine.load_id == load.id,
                LoadLine.product_id.in_(sorted(quantities))
            ).order_by(LoadLine.product_id).with_for_update().populate_existing().all()
        }

        product_return = ProductReturn(
            seller_id=seller_id,
            load_id=load.id,
            customer_id=customer.id if customer else None,
            customer_name=customer.business_name if customer else None,
            customer_qr=customer_qr,
            reason=reason,
            processed=False,
        )
        session.add(product_return)
        session.flush()

        for pid in sorted(quantities):
            line = locked[pid]
            qty = quantities[pid]
            if not force:
                max_returnable = line.returnable
                if qty > max_returnable + STOCK_EPSILON:
                    raise ConflictError(
                        f'Cantidad a devolver excede lo vendido para {line.product_name}. '
                        f'Pendiente por devolver: {to_float(max_returnable):g}',
                        {'producto': line.product_name, 'max_devolvible': to_float(max_returnable)}
                    )
            session.add(ProductReturnLine(
                return_id=product_return.id,
                product_id=pid,
                product_name=line.product_name,
                quantity=qty,
                unit_price=line.unit_price,
            ))
            line.returned_quantity = Decimal(line.returned_quantity or 0) + qty

        session.flush()
        return_id = product_return.id
        load_id = load.id

    logger.info(f"Return {return_id} registered: seller={seller_id} load={load_id} force={bool(force)}")
    return return_id


def list_returnable(session, seller_id: int) -> List[Dict[str, Any]]:
    """Per product on the active load: sold, returned and the returnable maximum."""
    load = get_active_load(session, seller_id)
    if load is None:
        return []
    lines = session.query(LoadLine).filter(LoadLine.load_id == load.id).order_by(
        LoadLine.product_name, LoadLine.product_id
    ).all()
    return [
        {
            'id_producto': line.product_id,
            'nombre': line.product_name,
            'ventas': to_float(line.sold_quantity),
            'devoluciones': to_float(line.returned_quantity),
            'max_devolvible': to_float(line.returnable),
        }
        for line in lines
    ]


def list_pending_returns(session, seller_id: Optional[int] = None) -> List[Dict[str, Any]]:
    """Unprocessed returns with their lines, newest first."""
    query = session.query(ProductReturn).filter(ProductReturn.processed.is_(False))
    if seller_id:
        query = query.filter(ProductReturn.seller_id == seller_id)
    returns = query.order_by(ProductReturn.created_at.desc(), ProductReturn.id.desc()).all()

    return [
        {
            'id': r.id,
            'vendedor_id': r.seller_id,
            'cliente_nombre': r.customer_name,
            'cliente_qr': r.customer_qr,
            'motivo': r.reason,
            'fecha': r.created_at.isoformat() if r.created_at else None,
            'procesada': False,
            'productos': [
                {
                    'nombre': line.product_name,
                    'cantidad': to_float(line.quantity),
                    'precio_unitario': to_float(line.unit_price),
                }
                for line in r.lines
            ],
        }
        for r in returns
    ]


def mark_return_processed(session, return_id: int) -> ProductReturn:
    """Flag a return as reviewed. Inventory is not touched."""
    with transaction(session):
        product_return = session.query(ProductReturn).filter(
            ProductReturn.id == return_id
        ).with_for_update().populate_existing().first()
        if not product_return:
            raise NotFoundError('Devolución no encontrada')
        product_return.processed = True
    return product_return


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _parse_return_items(items) -> Dict[Tuple[str, Any], Decimal]:
    if not isinstance(items, list) or not items:
        raise InvalidItem('productos requerido')

    requested: Dict[Tuple[str, Any], Decimal] = {}
    for item in items:
        if not isinstance(item, dict):
            raise InvalidItem('Producto inválido')
        raw_id = item.get('id_producto', item.get('productoId'))
        name = str(item.get('nombre') or '').strip()
        if raw_id not in (None, ''):
            try:
                key = ('id', int(raw_id))
            except (TypeError, ValueError):
                raise InvalidItem(f'Id de producto inválido: {raw_id}')
        elif name:
            key = ('name', name.lower())
        else:
            raise InvalidItem('Producto sin id ni nombre')
        try:
            qty = parse_positive(item.get('cantidad'))
        except ValueError:
            raise InvalidItem('cantidad inválida en productos')
        requested[key] = requested.get(key, Decimal('0')) + qty
    return requested


def _index_lines(session, load_id):
    lines = session.query(LoadLine).filter(LoadLine.load_id == load_id).all()
    by_id = {line.product_id: line for line in lines}
    by_name: Dict[str, LoadLine] = {}
    ambiguous = set()
    for line in lines:
        key = (line.product_name or '').strip().lower()
        if not key:
            continue
        if key in by_name:
            ambiguous.add(key)
        by_name[key] = line
    return by_id, by_name, ambiguous


def _resolve_customer(session, customer_id, customer_qr) -> Optional[Customer]:
    """Customer by id or QR code; None when neither was given."""
    if customer_id:
        customer = session.get(Customer, customer_id)
    elif customer_qr:
        customer = session.query(Customer).filter(Customer.qr_code == customer_qr).first()
    else:
        return None
    if customer is None:
        raise NotFoundError('Cliente no encontrado', {'cliente_id': customer_id, 'cliente_qr': customer_qr})
    return customer
