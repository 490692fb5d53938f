"""Product model."""
from sqlalchemy import Column, String, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from distribuidora.database import Base, Identifier


class Product(Base):
    """Catalog product. Load lines snapshot its name and price at stage-in."""

    __tablename__ = 'product'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    category_id = Column(Identifier, ForeignKey('category.id'), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    category = relationship('Category', foreign_keys=[category_id])

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', price={self.price})>"
