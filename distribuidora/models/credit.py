"""Customer sale, credit and credit payment models."""
import enum
from sqlalchemy import Column, String, Numeric, DateTime, Date, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from distribuidora.database import Base, Identifier


class SalePaymentType(str, enum.Enum):
    CONTADO = 'contado'
    CREDITO = 'credito'


class CustomerSale(Base):
    """Route sale to a registered customer (paid now or on credit)."""

    __tablename__ = 'customer_sale'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    customer_id = Column(Identifier, ForeignKey('customer.id'), nullable=False, index=True)
    seller_id = Column(Identifier, ForeignKey('seller.id'), nullable=True)
    total = Column(Numeric(12, 2), nullable=False)
    payment_type = Column(String(20), nullable=False, default=SalePaymentType.CONTADO.value)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    customer = relationship('Customer')
    credit = relationship('Credit', back_populates='sale', uselist=False)

    def __repr__(self):
        return f"<CustomerSale(id={self.id}, customer_id={self.customer_id}, total={self.total})>"


class Credit(Base):
    """Outstanding balance of one credit sale. The amount owed is the sale total."""

    __tablename__ = 'credit'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    sale_id = Column(Identifier, ForeignKey('customer_sale.id'), nullable=False, unique=True)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    sale = relationship('CustomerSale', back_populates='credit')
    payments = relationship('CreditPayment', back_populates='credit', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Credit(id={self.id}, sale_id={self.sale_id})>"


class CreditPayment(Base):
    """Payment (abono) applied to a credit."""

    __tablename__ = 'credit_payment'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    credit_id = Column(Identifier, ForeignKey('credit.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_type = Column(String(20), nullable=False, default='efectivo')
    reference = Column(String(120), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    credit = relationship('Credit', back_populates='payments')

    def __repr__(self):
        return f"<CreditPayment(id={self.id}, credit_id={self.credit_id}, amount={self.amount})>"
