"""Vehicle (camioneta) model and its assignment history."""
from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from distribuidora.database import Base, Identifier


class Vehicle(Base):
    """Delivery truck assigned to a seller."""

    __tablename__ = 'vehicle'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    brand = Column(String(80), nullable=True)
    model = Column(String(80), nullable=True)
    color = Column(String(40), nullable=True)
    plate = Column(String(20), nullable=True, unique=True)
    odometer = Column(Integer, nullable=True)
    refrigerated = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @property
    def label(self):
        """'Brand Model' as shown on the loader screens, or None."""
        if self.brand and self.model:
            return f'{self.brand} {self.model}'
        return None

    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.plate}')>"


class VehicleAssignment(Base):
    """One row per time a truck was handed to a seller."""

    __tablename__ = 'vehicle_assignment'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    vehicle_id = Column(Identifier, ForeignKey('vehicle.id', ondelete='CASCADE'), nullable=False, index=True)
    seller_id = Column(Identifier, ForeignKey('seller.id'), nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    seller = relationship('Seller')

    def __repr__(self):
        return f"<VehicleAssignment(vehicle_id={self.vehicle_id}, seller_id={self.seller_id})>"
