"""Load (carga) and LoadLine models."""
from decimal import Decimal
from sqlalchemy import Column, String, Boolean, Numeric, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from distribuidora.database import Base, Identifier


class Load(Base):
    """
    Merchandise staged onto one seller's truck for a selling period.

    OPEN while ``processed`` is false; CLOSED (terminal) once processed.
    """

    __tablename__ = 'load'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    seller_id = Column(Identifier, ForeignKey('seller.id'), nullable=False, index=True)
    vehicle_id = Column(Identifier, ForeignKey('vehicle.id'), nullable=True)
    created_by = Column(Identifier, ForeignKey('app_user.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    processed = Column(Boolean, nullable=False, default=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    ready_for_confirmation = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    # Relationships
    seller = relationship('Seller', foreign_keys=[seller_id])
    vehicle = relationship('Vehicle')
    lines = relationship('LoadLine', back_populates='load', cascade='all, delete-orphan',
                         order_by='LoadLine.product_name')

    @property
    def is_open(self):
        return not self.processed

    def __repr__(self):
        return f"<Load(id={self.id}, seller_id={self.seller_id}, processed={self.processed})>"


class LoadLine(Base):
    """Per-product bookkeeping of a load: staged, sold and returned quantities."""

    __tablename__ = 'load_line'
    __table_args__ = (
        UniqueConstraint('load_id', 'product_id', name='uq_load_line_load_product'),
    )

    id = Column(Identifier, primary_key=True, autoincrement=True)
    load_id = Column(Identifier, ForeignKey('load.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Identifier, nullable=False)
    product_name = Column(String(200), nullable=False, default='')
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    staged_quantity = Column(Numeric(12, 3), nullable=False, default=0)
    sold_quantity = Column(Numeric(12, 3), nullable=False, default=0)
    returned_quantity = Column(Numeric(12, 3), nullable=False, default=0)

    # Relationships
    load = relationship('Load', back_populates='lines')

    @property
    def remaining(self) -> Decimal:
        """staged - sold + returned, never below zero."""
        value = (
            Decimal(self.staged_quantity or 0)
            - Decimal(self.sold_quantity or 0)
            + Decimal(self.returned_quantity or 0)
        )
        return max(value, Decimal('0'))

    @property
    def returnable(self) -> Decimal:
        """Quantity sold and not yet returned."""
        value = Decimal(self.sold_quantity or 0) - Decimal(self.returned_quantity or 0)
        return max(value, Decimal('0'))

    def __repr__(self):
        return (f"<LoadLine(load_id={self.load_id}, product_id={self.product_id}, "
                f"staged={self.staged_quantity}, sold={self.sold_quantity}, returned={self.returned_quantity})>")
