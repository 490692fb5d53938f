"""Public (walk-in) sale models."""
import enum
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from distribuidora.database import Base, Identifier


class PaymentMethod(str, enum.Enum):
    """Payment methods accepted for public sales."""
    EFECTIVO = 'efectivo'
    TRANSFERENCIA = 'transferencia'


def normalize_payment_method(value) -> str:
    """
    Normalize payment method value to string for DB storage.

    Anything starting with 'trans' ("Transferencia", "transfer") is a
    transfer; everything else, including None, is cash.
    """
    if isinstance(value, PaymentMethod):
        return value.value
    text = str(value or '').strip().lower()
    if text.startswith('trans'):
        return PaymentMethod.TRANSFERENCIA.value
    return PaymentMethod.EFECTIVO.value


class PublicSale(Base):
    """Walk-in sale recorded by a seller against the active load."""

    __tablename__ = 'public_sale'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    seller_id = Column(Identifier, ForeignKey('seller.id'), nullable=False, index=True)
    load_id = Column(Identifier, ForeignKey('load.id'), nullable=False, index=True)
    total = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.EFECTIVO.value)
    latitude = Column(Numeric(10, 7), nullable=True)
    longitude = Column(Numeric(10, 7), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    lines = relationship('PublicSaleLine', back_populates='sale', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<PublicSale(id={self.id}, seller_id={self.seller_id}, total={self.total})>"


class PublicSaleLine(Base):
    """Public sale detail. ``unit_price`` is the price at sale time."""

    __tablename__ = 'public_sale_line'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    sale_id = Column(Identifier, ForeignKey('public_sale.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Identifier, nullable=False)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)

    sale = relationship('PublicSale', back_populates='lines')

    def __repr__(self):
        return f"<PublicSaleLine(sale_id={self.sale_id}, product_id={self.product_id}, quantity={self.quantity})>"
