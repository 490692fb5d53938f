"""No-sale visit (visita sin venta) model."""
from sqlalchemy import Column, Numeric, Text, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from distribuidora.database import Base, Identifier


class NoSaleVisit(Base):
    """A seller stopped at a customer and sold nothing; ``reasons`` is a list of strings."""

    __tablename__ = 'no_sale_visit'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    seller_id = Column(Identifier, ForeignKey('seller.id'), nullable=False, index=True)
    customer_id = Column(Identifier, ForeignKey('customer.id'), nullable=False, index=True)
    reasons = Column(JSON, nullable=False)
    latitude = Column(Numeric(10, 7), nullable=True)
    longitude = Column(Numeric(10, 7), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<NoSaleVisit(id={self.id}, seller_id={self.seller_id}, customer_id={self.customer_id})>"
