"""
Load manager.

Opens and closes loads (cargas), accumulates staged quantities on their lines
and builds the read-only snapshots the seller and loader apps display.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Dict, Optional, Any

from sqlalchemy import func

from distribuidora.database import transaction
from distribuidora.exceptions import NotFoundError, ConflictError, InvalidItem, LoadNotFound
from distribuidora.models import Load, LoadLine, Product, Seller
from distribuidora.utils.numbers import parse_positive, to_decimal, to_float

logger = logging.getLogger(__name__)


def _parse_stage_items(items) -> Dict[int, Decimal]:
    """Validate every item up front and sum duplicates per product id."""
    if not isinstance(items, list) or not items:
        raise InvalidItem('Se requiere al menos un producto')

    totals: Dict[int, Decimal] = {}
    for item in items:
        if not isinstance(item, dict):
            raise InvalidItem('Producto inválido')
        raw_id = item.get('productoId', item.get('id'))
        try:
            product_id = int(raw_id)
        except (TypeError, ValueError):
            raise InvalidItem(f'Id de producto inválido: {raw_id}')
        if product_id <= 0:
            raise InvalidItem(f'Id de producto inválido: {raw_id}')
        try:
            qty = parse_positive(item.get('cantidad'))
        except ValueError:
            raise InvalidItem(f'Cantidad inválida para producto {product_id}')
        totals[product_id] = totals.get(product_id, Decimal('0')) + qty
    return totals


def _lock_open_load(session, load_id) -> Load:
    load = session.query(Load).filter(Load.id == load_id).with_for_update().populate_existing().first()
    if not load or load.processed:
        raise LoadNotFound(load_id)
    return load


def stage_products(session, load_id: int, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Add quantities to an open load (additive upsert per product).

    Args:
        load_id: open load id
        items: [{'id'|'productoId': int, 'cantidad': number}]

    Returns:
        Updated lines ordered by name: [{'id', 'nombre', 'cantidad'}]

    Raises:
        InvalidItem: malformed item (nothing written)
        LoadNotFound: load missing or already processed
    """
    totals = _parse_stage_items(items)

    with transaction(session):
        load = _lock_open_load(session, load_id)

        product_ids = sorted(totals)
        existing = {
            line.product_id: line
            for line in session.query(LoadLine).filter(
                LoadLine.load_id == load.id,
                LoadLine.product_id.in_(product_ids)
            ).all()
        }
        missing = [pid for pid in product_ids if pid not in existing]
        catalog = {}
        if missing:
            catalog = {
                p.id: p for p in session.query(Product).filter(Product.id.in_(missing)).all()
            }

        for pid in product_ids:
            line = existing.get(pid)
            if line is None:
                product = catalog.get(pid)
                if product is None:
                    # Kept for traceability; the line cannot be sold by name
                    logger.warning(f"Staging unknown product {pid} on load {load.id}")
                line = LoadLine(
                    load_id=load.id,
                    product_id=pid,
                    product_name=product.name if product else '',
                    unit_price=product.price if product else Decimal('0'),
                    staged_quantity=Decimal('0'),
                    sold_quantity=Decimal('0'),
                    returned_quantity=Decimal('0'),
                )
                session.add(line)
            line.staged_quantity = Decimal(line.staged_quantity or 0) + totals[pid]

        session.flush()
        lines = session.query(LoadLine).filter(LoadLine.load_id == load.id).order_by(
            LoadLine.product_name, LoadLine.product_id
        ).all()
        result = [
            {'id': line.product_id, 'nombre': line.product_name, 'cantidad': to_float(line.staged_quantity)}
            for line in lines
        ]

    logger.info(f"Load {load_id}: staged {len(totals)} product(s)")
    return result


def open_load(session, seller_id: int, created_by: Optional[int] = None,
              vehicle_id: Optional[int] = None, notes: Optional[str] = None) -> Load:
    """
    Open a new load for a seller and make it the seller's active load.

    Raises:
        NotFoundError: seller missing or inactive
        ConflictError: the seller already has an open load
    """
    with transaction(session):
        seller = session.query(Seller).filter(
            Seller.id == seller_id
        ).with_for_update().populate_existing().first()
        if not seller or not seller.active or seller.deleted:
            raise NotFoundError('Vendedor no encontrado')

        if seller.active_load_id:
            current = session.get(Load, seller.active_load_id)
            if current and not current.processed:
                raise ConflictError(
                    'El vendedor ya tiene una carga activa',
                    {'cargaId': current.id}
                )

        load = Load(
            seller_id=seller.id,
            vehicle_id=vehicle_id or seller.vehicle_id,
            created_by=created_by,
            notes=notes,
            processed=False,
            ready_for_confirmation=False,
        )
        session.add(load)
        session.flush()
        seller.active_load_id = load.id

    logger.info(f"Opened load {load.id} for seller {seller_id}")
    return load


def close_load(session, load_id: int) -> Load:
    """
    Mark a load processed and release it from its seller. Idempotent.

    Raises:
        NotFoundError: no such load
    """
    with transaction(session):
        load = session.query(Load).filter(Load.id == load_id).with_for_update().populate_existing().first()
        if not load:
            raise NotFoundError('Carga no encontrada', {'cargaId': load_id})
        if load.processed:
            return load

        load.processed = True
        load.processed_at = datetime.now()

        seller = session.query(Seller).filter(
            Seller.id == load.seller_id
        ).with_for_update().populate_existing().first()
        if seller and seller.active_load_id == load.id:
            seller.active_load_id = None

    logger.info(f"Closed load {load_id}")
    return load


def mark_ready_for_confirmation(session, load_id: int) -> Load:
    """Set the advisory 'ready for confirmation' flag on an open load."""
    with transaction(session):
        load = _lock_open_load(session, load_id)
        load.ready_for_confirmation = True
    return load


def get_active_load(session, seller_id: int) -> Optional[Load]:
    """Return the seller's open load, or None."""
    seller = session.get(Seller, seller_id)
    if not seller or not seller.active_load_id:
        return None
    load = session.get(Load, seller.active_load_id)
    if not load or load.processed:
        return None
    return load


def get_load_snapshot(session, seller_id: int) -> Optional[Dict[str, Any]]:
    """
    Snapshot of the seller's active load for the selling screen.

    Returns None when there is no open load or it has no lines yet.
    """
    load = get_active_load(session, seller_id)
    if load is None:
        return None

    lines = session.query(LoadLine).filter(LoadLine.load_id == load.id).order_by(
        LoadLine.product_name, LoadLine.product_id
    ).all()
    if not lines:
        return None

    return {
        'carga': {
            'id': load.id,
            'fecha': load.created_at.isoformat() if load.created_at else None,
            'procesada': bool(load.processed),
            'listaParaConfirmar': bool(load.ready_for_confirmation),
        },
        'productosNuevos': [
            {
                'productoId': line.product_id,
                'nombre': line.product_name,
                'precio': to_float(line.unit_price),
                'cargado': to_float(line.staged_quantity),
                'vendido': to_float(line.sold_quantity),
                'devoluciones': to_float(line.returned_quantity),
                'restante': to_float(line.remaining),
            }
            for line in lines
        ],
        # Older Android builds read 'productos'
        'productos': [
            {
                'nombre': line.product_name,
                'cantidad': to_float(line.staged_quantity),
                'restante': to_float(line.remaining),
            }
            for line in lines
        ],
    }


def _seller_row(seller: Seller) -> Dict[str, Any]:
    vehicle = seller.vehicle
    return {
        'id': seller.id,
        'nombre': seller.name,
        'camioneta': vehicle.label if vehicle else None,
        'placas': vehicle.plate if vehicle else None,
        'kilometraje': vehicle.odometer if vehicle else None,
        'camionetaId': seller.vehicle_id,
        'cargaId': seller.active_load_id,
    }


def list_sellers(session, only_with_active_load: bool = False) -> List[Dict[str, Any]]:
    """Active sellers for the loader's picker."""
    query = session.query(Seller).filter(Seller.active.is_(True), Seller.deleted.is_(False))
    if only_with_active_load:
        query = query.filter(Seller.active_load_id.isnot(None))
    sellers = query.order_by(Seller.id).all()
    return sorted((_seller_row(s) for s in sellers), key=lambda r: (r['nombre'] or '').lower())


def list_catalog(session) -> List[Dict[str, Any]]:
    """Active products for the loader's picker, with quantity already on open loads."""
    staged_rows = session.query(
        LoadLine.product_id,
        func.sum(LoadLine.staged_quantity - LoadLine.sold_quantity + LoadLine.returned_quantity)
    ).join(Load, Load.id == LoadLine.load_id).filter(
        Load.processed.is_(False)
    ).group_by(LoadLine.product_id).all()
    on_trucks = {pid: max(to_decimal(qty), Decimal("0")) for pid, qty in staged_rows}

    products = session.query(Product).filter(
        Product.active.is_(True), Product.deleted.is_(False)
    ).order_by(Product.name).all()
    return [
        {
            'id': p.id,
            'nombre': p.name,
            'precio': to_float(p.price),
            'enCamionetas': to_float(on_trucks.get(p.id, Decimal('0'))),
        }
        for p in products
    ]


def latest_load_for_seller(session, seller_id: int) -> Optional[Dict[str, Any]]:
    """Most recent load of a seller (open or not) with its staged lines."""
    load = session.query(Load).filter(Load.seller_id == seller_id).order_by(
        Load.created_at.desc(), Load.id.desc()
    ).first()
    if not load:
        return None

    seller = load.seller
    vehicle = load.vehicle
    return {
        'carga': {
            'id': load.id,
            'fecha': load.created_at.isoformat() if load.created_at else None,
            'procesada': bool(load.processed),
            'vendedor': {'id': seller.id, 'nombre': seller.name} if seller else None,
            'unidad': {
                'camioneta': vehicle.label,
                'placas': vehicle.plate,
                'kilometraje': vehicle.odometer,
            } if vehicle else None,
        },
        'productos': [
            {
                'id': line.product_id,
                'nombre': line.product_name,
                'cantidad': to_float(line.staged_quantity),
                'restante': to_float(line.remaining),
            }
            for line in load.lines
        ],
    }
