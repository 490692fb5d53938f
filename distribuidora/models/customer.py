"""Customer model."""
from sqlalchemy import Column, String, Text, DateTime, Boolean
from sqlalchemy.sql import func
from distribuidora.database import Base, Identifier


class Customer(Base):
    """Customer (cliente) visited on the routes; identified in the field by QR."""

    __tablename__ = 'customer'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    business_name = Column(String(200), nullable=False)
    contact_name = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    qr_code = Column(String(64), nullable=True, unique=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Customer(id={self.id}, business_name='{self.business_name}')>"
