"""No-sale visits: a seller records why a customer bought nothing."""
import logging
from typing import List, Optional, Any

from sqlalchemy import or_

from distribuidora.database import transaction
from distribuidora.exceptions import ValidationError, NotFoundError
from distribuidora.models import Customer, NoSaleVisit, Seller
from distribuidora.utils.numbers import parse_decimal

logger = logging.getLogger(__name__)


def register_no_sale(
    session,
    seller_id: int,
    reasons: List[Any],
    customer_id: Optional[int] = None,
    customer_code: Optional[str] = None,
    latitude=None,
    longitude=None,
    notes: Optional[str] = None
) -> NoSaleVisit:
    """
    Record a visit without a sale.

    The customer is given by id or by the code scanned from its QR.

    Raises:
        ValidationError: no customer reference, or no reasons.
        NotFoundError: unknown seller or customer.
    """
    customer_code = (customer_code or '').strip()
    if not customer_id and not customer_code:
        raise ValidationError('Debes enviar clienteId o codigo')
    cleaned_reasons = _clean_reasons(reasons)

    with transaction(session):
        seller = session.get(Seller, seller_id)
        if not seller or seller.deleted:
            raise NotFoundError('Vendedor no encontrado', {'vendedorId': seller_id})

        if customer_id:
            customer = session.get(Customer, customer_id)
        else:
            customer = session.query(Customer).filter(
                or_(Customer.qr_code == customer_code, Customer.qr_code == customer_code.upper()),
                Customer.active.is_(True),
            ).first()
        if customer is None or not customer.active:
            raise NotFoundError('Cliente no encontrado para el código',
                                {'clienteId': customer_id, 'codigo': customer_code or None})

        visit = NoSaleVisit(
            seller_id=seller.id,
            customer_id=customer.id,
            reasons=cleaned_reasons,
            latitude=_optional_coordinate(latitude),
            longitude=_optional_coordinate(longitude),
            notes=(notes or '').strip() or None,
        )
        session.add(visit)
        session.flush()

    logger.info(f"No-sale visit {visit.id}: seller={visit.seller_id} customer={visit.customer_id}")
    return visit


def _clean_reasons(reasons) -> List[str]:
    if not isinstance(reasons, list):
        raise ValidationError('Debes enviar al menos un motivo')
    cleaned = [str(r).strip() for r in reasons if r is not None and str(r).strip()]
    if not cleaned:
        raise ValidationError('Debes enviar al menos un motivo')
    return cleaned


def _optional_coordinate(value):
    if value in (None, ''):
        return None
    try:
        return parse_decimal(value)
    except ValueError:
        raise ValidationError('Coordenadas inválidas')
