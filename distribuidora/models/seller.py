"""Seller (vendedor) and Loader (cargador) models."""
from sqlalchemy import Column, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from distribuidora.database import Base, Identifier


class Seller(Base):
    """
    Field seller.

    A truck belongs to at most one seller at a time (unique ``vehicle_id``).
    ``active_load_id`` is the single open load the seller sells from. It is
    only written by load_service.open_load / close_load while the seller row
    is locked.
    """

    __tablename__ = 'seller'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    user_id = Column(Identifier, ForeignKey('app_user.id'), nullable=False, unique=True)
    vehicle_id = Column(Identifier, ForeignKey('vehicle.id'), nullable=True, unique=True)
    active_load_id = Column(
        Identifier,
        ForeignKey('load.id', use_alter=True, name='fk_seller_active_load'),
        nullable=True
    )
    active = Column(Boolean, nullable=False, default=True)
    deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    user = relationship('AppUser')
    vehicle = relationship('Vehicle')

    @property
    def name(self):
        return self.user.full_name or self.user.username if self.user else None

    def __repr__(self):
        return f"<Seller(id={self.id}, user_id={self.user_id}, active_load_id={self.active_load_id})>"


class Loader(Base):
    """Warehouse loader."""

    __tablename__ = 'loader'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    user_id = Column(Identifier, ForeignKey('app_user.id'), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship('AppUser')

    def __repr__(self):
        return f"<Loader(id={self.id}, user_id={self.user_id})>"
