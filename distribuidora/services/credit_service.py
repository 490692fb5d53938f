"""
Credit settlement service.

Customer credits are sales on account. Payments are validated against both
the credit's own outstanding amount and the customer's aggregate balance,
with the customer's credit rows locked for the duration of the check.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Dict, Optional, Any, Tuple

from sqlalchemy import func

from distribuidora.blueprints.metrics import credit_payments_total
from distribuidora.database import transaction
from distribuidora.exceptions import ValidationError, NotFoundError, OverpaymentError
from distribuidora.models import Customer, CustomerSale, SalePaymentType, Credit, CreditPayment
from distribuidora.utils.numbers import MONEY_EPSILON, parse_positive, round_money, to_decimal, to_float

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def pay_credit(
    session,
    credit_id,
    amount,
    payment_type: str = 'efectivo',
    reference: Optional[str] = None,
    notes: Optional[str] = None
) -> Dict[str, Any]:
    """
    Apply a payment to a credit.

    The amount may be a number or a string with comma decimal separator.
    Rejected when it exceeds what the credit or the customer still owes;
    nothing is written in that case.

    Returns:
        {'pago_id', 'credito': {id, pendiente_antes, pendiente_despues},
         'cliente': {id, saldo_antes, saldo_despues}}
    """
    if credit_id in (None, ''):
        raise ValidationError('id_credito es requerido')
    try:
        credit_id = int(credit_id)
    except (TypeError, ValueError):
        raise ValidationError('id_credito inválido')
    try:
        amount = parse_positive(amount)
    except ValueError:
        raise ValidationError('Monto inválido: debe ser mayor a 0')

    with transaction(session):
        # A credit never changes customer, so the owner is read without a lock
        customer_id = session.query(CustomerSale.customer_id).join(
            Credit, Credit.sale_id == CustomerSale.id
        ).filter(Credit.id == credit_id).scalar()
        if customer_id is None:
            raise NotFoundError('Crédito no encontrado', {'credito_id': credit_id})

        # Every credit of the customer takes part in the aggregate check; all
        # payers lock them in the same id order
        session.query(Credit).join(
            CustomerSale, CustomerSale.id == Credit.sale_id
        ).filter(
            CustomerSale.customer_id == customer_id
        ).order_by(Credit.id).with_for_update(of=Credit).populate_existing().all()

        credit, sale = session.query(Credit, CustomerSale).join(
            CustomerSale, CustomerSale.id == Credit.sale_id
        ).filter(Credit.id == credit_id).one()

        pending_before = _credit_pending(session, credit.id, sale.total)
        balance_before = _customer_balance(session, customer_id)

        if amount > pending_before + MONEY_EPSILON or amount > balance_before + MONEY_EPSILON:
            logger.warning(
                f"Overpayment rejected on credit {credit_id}: amount={amount} "
                f"pending={pending_before} balance={balance_before}"
            )
            raise OverpaymentError(
                'El monto excede el saldo pendiente',
                pending_before,
                balance_before
            )

        payment = CreditPayment(
            credit_id=credit.id,
            amount=round_money(amount),
            payment_type=(payment_type or 'efectivo').strip().lower(),
            reference=reference or None,
            notes=notes or None,
        )
        session.add(payment)
        session.flush()

        pending_after = _credit_pending(session, credit.id, sale.total)
        balance_after = _customer_balance(session, customer_id)
        payment_id = payment.id
        credit_pk = credit.id

    credit_payments_total.inc()
    logger.info(f"Credit payment {payment_id}: credit={credit_pk} customer={customer_id} amount={amount}")

    return {
        'pago_id': payment_id,
        'credito': {
            'id': credit_pk,
            'pendiente_antes': to_float(pending_before),
            'pendiente_despues': to_float(pending_after),
        },
        'cliente': {
            'id': customer_id,
            'saldo_antes': to_float(balance_before),
            'saldo_despues': to_float(balance_after),
        },
    }


def register_credit_sale(session, customer_id, seller_id, total, due_date=None) -> Credit:
    """Create a credit sale for a customer together with its credit row."""
    try:
        total = round_money(parse_positive(total))
    except ValueError:
        raise ValidationError('Total inválido: debe ser mayor a 0')
    due = _parse_due_date(due_date)

    with transaction(session):
        customer = session.get(Customer, customer_id)
        if not customer or not customer.active:
            raise NotFoundError('Cliente no encontrado')

        sale = CustomerSale(
            customer_id=customer.id,
            seller_id=seller_id,
            total=total,
            payment_type=SalePaymentType.CREDITO.value,
        )
        session.add(sale)
        session.flush()

        credit = Credit(sale_id=sale.id, due_date=due)
        session.add(credit)
        session.flush()

    logger.info(f"Credit {credit.id} opened for customer {customer_id}: total={total}")
    return credit


def list_customer_credits(session, customer_id) -> List[Dict[str, Any]]:
    """Credits of a customer with paid and outstanding amounts, newest first."""
    _get_customer(session, customer_id)

    paid = dict(
        session.query(CreditPayment.credit_id, func.coalesce(func.sum(CreditPayment.amount), 0))
        .join(Credit, Credit.id == CreditPayment.credit_id)
        .join(CustomerSale, CustomerSale.id == Credit.sale_id)
        .filter(CustomerSale.customer_id == customer_id)
        .group_by(CreditPayment.credit_id)
        .all()
    )

    rows = session.query(Credit, CustomerSale).join(
        CustomerSale, CustomerSale.id == Credit.sale_id
    ).filter(
        CustomerSale.customer_id == customer_id
    ).order_by(CustomerSale.created_at.desc(), Credit.id.desc()).all()

    result = []
    for credit, sale in rows:
        amount = to_decimal(sale.total)
        payments = to_decimal(paid.get(credit.id))
        pending = max(amount - payments, ZERO)
        result.append({
            'id': credit.id,
            'id_venta': sale.id,
            'fecha': sale.created_at.isoformat() if sale.created_at else None,
            'monto': to_float(amount),
            'pagos': to_float(payments),
            'pendiente': to_float(pending),
            'fecha_limite': credit.due_date.isoformat() if credit.due_date else None,
            'pagado': pending <= Decimal('0.009'),
        })
    return result


def customer_balance(session, customer_id) -> Dict[str, Any]:
    """Aggregate credit position of a customer."""
    _get_customer(session, customer_id)
    total_credits, total_payments = _customer_totals(session, customer_id)
    return {
        'cliente_id': int(customer_id),
        'total_creditos': to_float(total_credits),
        'total_pagos': to_float(total_payments),
        'saldo_pendiente': to_float(max(total_credits - total_payments, ZERO)),
    }


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _get_customer(session, customer_id) -> Customer:
    customer = session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError('Cliente no encontrado', {'cliente_id': customer_id})
    return customer


def _credit_pending(session, credit_id, sale_total) -> Decimal:
    paid = session.query(func.coalesce(func.sum(CreditPayment.amount), 0)).filter(
        CreditPayment.credit_id == credit_id
    ).scalar()
    return max(to_decimal(sale_total) - to_decimal(paid), ZERO)


def _customer_totals(session, customer_id) -> Tuple[Decimal, Decimal]:
    """(sum of credit sale totals, sum of payments) for a customer."""
    total_credits = session.query(func.coalesce(func.sum(CustomerSale.total), 0)).join(
        Credit, Credit.sale_id == CustomerSale.id
    ).filter(CustomerSale.customer_id == customer_id).scalar()

    total_payments = session.query(func.coalesce(func.sum(CreditPayment.amount), 0)).join(
        Credit, Credit.id == CreditPayment.credit_id
    ).join(
        CustomerSale, CustomerSale.id == Credit.sale_id
    ).filter(CustomerSale.customer_id == customer_id).scalar()

    return to_decimal(total_credits), to_decimal(total_payments)


def _customer_balance(session, customer_id) -> Decimal:
    total_credits, total_payments = _customer_totals(session, customer_id)
    return max(total_credits - total_payments, ZERO)


def _parse_due_date(value) -> Optional[date]:
    if value in (None, ''):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError('fecha_limite inválida (use AAAA-MM-DD)')
