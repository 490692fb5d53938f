"""
Public sale service with transactional logic.

A public sale draws down the seller's active load. The referenced load lines
are locked FOR UPDATE (ordered by product id), checked against their
remaining quantity, and the sale header, its lines and the sold counters are
written in the same transaction.
"""
import logging
from decimal import Decimal
from typing import List, Dict, Optional, Any, Tuple

from distribuidora.blueprints.metrics import public_sales_total, public_sale_rejections_total
from distribuidora.database import transaction
from distribuidora.exceptions import (
    AppError, ValidationError, InvalidItem, ProductNotInLoad, NoActiveLoad, InsufficientStock
)
from distribuidora.models import Load, LoadLine, Seller, PublicSale, PublicSaleLine, normalize_payment_method
from distribuidora.utils.numbers import STOCK_EPSILON, parse_decimal, parse_positive, round_money, to_float

logger = logging.getLogger(__name__)


def commit_public_sale(
    session,
    seller_id: int,
    payment_method: Optional[str],
    items: List[Dict[str, Any]],
    latitude=None,
    longitude=None,
    notifier=None
) -> Dict[str, Any]:
    """
    Record a walk-in sale against the seller's active load.

    Args:
        seller_id: seller making the sale
        payment_method: free text, normalized to efectivo/transferencia
        items: [{'productoId': int} or {'nombre': str}, plus 'cantidad': number]
        latitude/longitude: optional GPS position of the sale
        notifier: publisher for the post-commit event (global one if None)

    Returns:
        {'ventaId', 'total', 'metodo_pago'}

    Raises:
        InvalidItem, ProductNotInLoad, ValidationError: bad input (400)
        NoActiveLoad, InsufficientStock: current state forbids the sale (409)
    """
    try:
        result, load_id = _commit(session, seller_id, payment_method, items, latitude, longitude)
    except AppError as e:
        public_sale_rejections_total.labels(reason=type(e).__name__).inc()
        logger.warning(f"Public sale rejected for seller {seller_id}: {e.message}")
        raise

    public_sales_total.labels(payment_method=result['metodo_pago']).inc()
    logger.info(
        f"Public sale {result['ventaId']} committed: seller={seller_id} load={load_id} "
        f"total={result['total']:.2f} ({result['metodo_pago']})"
    )
    _notify_inventory_updated(notifier, seller_id, result['ventaId'], load_id)
    return result


def _commit(session, seller_id, payment_method, items, latitude, longitude) -> Tuple[Dict[str, Any], int]:
    requested = _parse_sale_items(items)
    method = normalize_payment_method(payment_method)
    lat = _optional_coordinate(latitude)
    lng = _optional_coordinate(longitude)

    with transaction(session):
        load = _share_lock_active_load(session, seller_id)

        quantities, refs = _resolve_product_ids(session, load.id, requested)
        lines = _lock_lines(session, load.id, sorted(quantities))

        sale_lines_data = []
        sale_total = Decimal('0')
        for pid in sorted(quantities):
            line = lines.get(pid)
            if line is None:
                raise ProductNotInLoad(refs[pid])

            qty = quantities[pid]
            remaining = line.remaining
            if qty > remaining + STOCK_EPSILON:
                raise InsufficientStock(line.product_name or str(pid), qty, remaining)

            unit_price = Decimal(line.unit_price or 0)
            sale_lines_data.append((line, qty, unit_price))
            sale_total += qty * unit_price

        sale = PublicSale(
            seller_id=seller_id,
            load_id=load.id,
            total=round_money(sale_total),
            payment_method=method,
            latitude=lat,
            longitude=lng,
        )
        session.add(sale)
        session.flush()

        for line, qty, unit_price in sale_lines_data:
            session.add(PublicSaleLine(
                sale_id=sale.id,
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=qty,
                unit_price=unit_price,
            ))
            line.sold_quantity = Decimal(line.sold_quantity or 0) + qty

        session.flush()
        sale_id = sale.id
        load_id = load.id

    return {'ventaId': sale_id, 'total': to_float(round_money(sale_total)), 'metodo_pago': method}, load_id


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _parse_sale_items(items) -> Dict[Tuple[str, Any], Decimal]:
    """
    Validate items before any read or write.

    Returns quantities keyed by ('id', product_id) or ('name', lowered name),
    duplicates summed.
    """
    if not isinstance(items, list) or not items:
        raise InvalidItem('Sin productos en la venta')

    requested: Dict[Tuple[str, Any], Decimal] = {}
    for item in items:
        if not isinstance(item, dict):
            raise InvalidItem('Producto inválido')

        raw_id = item.get('productoId', item.get('producto_id'))
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
            raise InvalidItem(f'Cantidad inválida para {name or raw_id}')

        requested[key] = requested.get(key, Decimal('0')) + qty
    return requested


def _optional_coordinate(value):
    if value in (None, ''):
        return None
    try:
        return parse_decimal(value)
    except ValueError:
        return None


def _share_lock_active_load(session, seller_id) -> Load:
    """Read the seller's active load FOR SHARE so a concurrent close waits for us."""
    seller = session.get(Seller, seller_id)
    if not seller or not seller.active_load_id:
        raise NoActiveLoad(seller_id)

    load = session.query(Load).filter(
        Load.id == seller.active_load_id
    ).with_for_update(read=True).populate_existing().first()
    if not load or load.processed:
        raise NoActiveLoad(seller_id)
    return load


def _resolve_product_ids(session, load_id, requested) -> Tuple[Dict[int, Decimal], Dict[int, str]]:
    """
    Map requested references to product ids on the load.

    Names are matched case-insensitively against the lines' display names;
    a name carried by more than one line is rejected.
    """
    quantities: Dict[int, Decimal] = {}
    refs: Dict[int, str] = {}

    by_name: Dict[str, List[int]] = {}
    if any(kind == 'name' for kind, _ in requested):
        for pid, pname in session.query(LoadLine.product_id, LoadLine.product_name).filter(
            LoadLine.load_id == load_id
        ).all():
            by_name.setdefault((pname or '').strip().lower(), []).append(pid)

    for (kind, ref), qty in requested.items():
        if kind == 'id':
            pid = ref
        else:
            matches = by_name.get(ref, [])
            if not matches:
                raise ProductNotInLoad(ref)
            if len(matches) > 1:
                raise ValidationError(
                    f'Nombre de producto ambiguo en la carga: {ref}',
                    {'producto': ref, 'coincidencias': sorted(matches)}
                )
            pid = matches[0]
        quantities[pid] = quantities.get(pid, Decimal('0')) + qty
        refs.setdefault(pid, str(ref))
    return quantities, refs


def _lock_lines(session, load_id, product_ids: List[int]) -> Dict[int, LoadLine]:
    """Lock the referenced load lines FOR UPDATE in product id order."""
    if not product_ids:
        return {}
    rows = session.query(LoadLine).filter(
        LoadLine.load_id == load_id,
        LoadLine.product_id.in_(product_ids)
    ).order_by(LoadLine.product_id).with_for_update().populate_existing().all()
    return {line.product_id: line for line in rows}


def _notify_inventory_updated(notifier, seller_id, sale_id, load_id):
    """Post-commit publish. The sale stands regardless of the outcome."""
    try:
        if notifier is None:
            from distribuidora.services.notification_service import get_notifier
            notifier = get_notifier()
        notifier.inventory_updated(seller_id, action='venta_publico', ventaId=sale_id, cargaId=load_id)
    except Exception as e:
        logger.warning(f"Inventory notification failed for seller {seller_id}: {e}")
