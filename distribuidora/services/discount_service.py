"""
Global discounts (descuentos globales).

A global discount is a percentage valid over an inclusive date window. Two
active discounts may never overlap; every write that can leave a discount
active re-checks the other active windows inside its transaction.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Dict, Optional, Any

from sqlalchemy import text

from distribuidora.database import transaction
from distribuidora.exceptions import ValidationError, NotFoundError, ConflictError
from distribuidora.models import GlobalDiscount
from distribuidora.utils.numbers import parse_decimal, to_float

logger = logging.getLogger(__name__)

# Transaction-scoped advisory lock key that serializes overlap checks on PostgreSQL
OVERLAP_LOCK_KEY = 7301


def serialize_discount(discount: GlobalDiscount, today: Optional[date] = None) -> Dict[str, Any]:
    return {
        'id': discount.id,
        'porcentaje': to_float(discount.percentage),
        'fecha_inicio': discount.start_date.isoformat(),
        'fecha_fin': discount.end_date.isoformat(),
        'activo': bool(discount.active),
        'estado': discount.status(today),
    }


def list_global_discounts(session, today: Optional[date] = None) -> List[Dict[str, Any]]:
    """All discounts with their estado, latest start first."""
    discounts = session.query(GlobalDiscount).order_by(
        GlobalDiscount.start_date.desc(), GlobalDiscount.id.desc()
    ).all()
    return [serialize_discount(d, today) for d in discounts]


def current_global_discount(session, today: Optional[date] = None) -> Optional[GlobalDiscount]:
    """The active discount covering today, highest percentage first, or None."""
    today = today or date.today()
    return session.query(GlobalDiscount).filter(
        GlobalDiscount.active.is_(True),
        GlobalDiscount.start_date <= today,
        GlobalDiscount.end_date >= today,
    ).order_by(GlobalDiscount.percentage.desc(), GlobalDiscount.id.desc()).first()


def create_global_discount(session, percentage, start_date, end_date, active=True) -> GlobalDiscount:
    """
    Create a discount.

    Raises:
        ValidationError: percentage outside 0-100, bad dates or end before start.
        ConflictError: created active over the window of another active discount.
    """
    if percentage in (None, ''):
        raise ValidationError('porcentaje requerido')
    percentage = _parse_percentage(percentage)
    start = _parse_date(start_date)
    end = _parse_date(end_date)
    if start is None or end is None:
        raise ValidationError('Fechas inválidas (AAAA-MM-DD).')
    _check_window(start, end)
    active = _parse_flag(active, default=True)

    with transaction(session):
        if active:
            _reject_overlaps(session, start, end)
        discount = GlobalDiscount(percentage=percentage, start_date=start, end_date=end, active=active)
        session.add(discount)
        session.flush()

    logger.info(f"Global discount {discount.id} created: {percentage}% {start}..{end} active={active}")
    return discount


def update_global_discount(session, discount_id, percentage=None, start_date=None, end_date=None,
                           active=None) -> GlobalDiscount:
    """Partial update; fields left as None keep their value."""
    new_percentage = _parse_percentage(percentage) if percentage not in (None, '') else None
    new_start = _parse_date(start_date)
    new_end = _parse_date(end_date)

    with transaction(session):
        discount = _lock_discount(session, discount_id)

        start = new_start or discount.start_date
        end = new_end or discount.end_date
        _check_window(start, end)
        will_be_active = _parse_flag(active, default=bool(discount.active))

        if will_be_active:
            _reject_overlaps(session, start, end, exclude_id=discount.id)

        if new_percentage is not None:
            discount.percentage = new_percentage
        discount.start_date = start
        discount.end_date = end
        discount.active = will_be_active

    logger.info(f"Global discount {discount_id} updated")
    return discount


def toggle_global_discount(session, discount_id, active) -> GlobalDiscount:
    """Switch a discount on or off; switching on re-checks overlaps."""
    if not isinstance(active, bool):
        raise ValidationError('activo debe ser true o false')

    with transaction(session):
        discount = _lock_discount(session, discount_id)
        if active:
            _reject_overlaps(session, discount.start_date, discount.end_date, exclude_id=discount.id)
        discount.active = active

    logger.info(f"Global discount {discount_id} active={active}")
    return discount


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _lock_discount(session, discount_id) -> GlobalDiscount:
    _serialize_overlap_checks(session)
    discount = session.query(GlobalDiscount).filter(
        GlobalDiscount.id == discount_id
    ).with_for_update().populate_existing().first()
    if not discount:
        raise NotFoundError('Descuento global no encontrado', {'id': discount_id})
    return discount


def _serialize_overlap_checks(session):
    """Overlap checks read rows that another writer may be inserting; take a shared mutex."""
    if session.get_bind().dialect.name == 'postgresql':
        session.execute(text('SELECT pg_advisory_xact_lock(:key)'), {'key': OVERLAP_LOCK_KEY})


def _reject_overlaps(session, start: date, end: date, exclude_id=None):
    _serialize_overlap_checks(session)
    query = session.query(GlobalDiscount).filter(
        GlobalDiscount.active.is_(True),
        GlobalDiscount.start_date <= end,
        GlobalDiscount.end_date >= start,
    )
    if exclude_id is not None:
        query = query.filter(GlobalDiscount.id != exclude_id)
    overlaps = query.order_by(GlobalDiscount.start_date.desc()).all()
    if overlaps:
        raise ConflictError(
            'Empalme con descuento(s) global(es) activo(s).',
            {'overlaps': [serialize_discount(d) for d in overlaps]}
        )


def _parse_percentage(value) -> Decimal:
    try:
        percentage = parse_decimal(value)
    except ValueError:
        raise ValidationError('porcentaje debe estar entre 0 y 100')
    if percentage < 0 or percentage > 100:
        raise ValidationError('porcentaje debe estar entre 0 y 100')
    return percentage


def _parse_date(value) -> Optional[date]:
    if value in (None, ''):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError('Fechas inválidas (AAAA-MM-DD).')


def _check_window(start: date, end: date):
    if end < start:
        raise ValidationError('Fecha fin no puede ser menor a fecha inicio')


def _parse_flag(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, str)) and str(value).strip().lower() in ('1', 'true', 'si', 'sí'):
        return True
    if isinstance(value, (int, str)) and str(value).strip().lower() in ('0', 'false', 'no'):
        return False
    raise ValidationError('activo debe ser true o false')
