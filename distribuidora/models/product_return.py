"""Product return (devolución) models."""
from sqlalchemy import Column, String, Boolean, Numeric, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from distribuidora.database import Base, Identifier


class ProductReturn(Base):
    """Merchandise a customer handed back to the seller, put back on the truck."""

    __tablename__ = 'product_return'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    seller_id = Column(Identifier, ForeignKey('seller.id'), nullable=False, index=True)
    load_id = Column(Identifier, ForeignKey('load.id'), nullable=False)
    customer_id = Column(Identifier, ForeignKey('customer.id'), nullable=True)
    customer_name = Column(String(200), nullable=True)
    customer_qr = Column(String(64), nullable=True)
    reason = Column(Text, nullable=False)
    processed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    lines = relationship('ProductReturnLine', back_populates='product_return', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<ProductReturn(id={self.id}, seller_id={self.seller_id}, processed={self.processed})>"


class ProductReturnLine(Base):
    __tablename__ = 'product_return_line'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    return_id = Column(Identifier, ForeignKey('product_return.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Identifier, nullable=False)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=True)

    product_return = relationship('ProductReturn', back_populates='lines')
