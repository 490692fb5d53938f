"""Global discount (descuento global) model."""
from datetime import date
from sqlalchemy import Column, Numeric, Date, Boolean, DateTime
from sqlalchemy.sql import func
from distribuidora.database import Base, Identifier


class GlobalDiscount(Base):
    """
    Store-wide percentage discount valid between two dates (inclusive).

    Active discounts never overlap; discount_service enforces it.
    """

    __tablename__ = 'global_discount'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    percentage = Column(Numeric(5, 2), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def status(self, today: date = None) -> str:
        """inactivo, programado, vencido or vigente."""
        today = today or date.today()
        if not self.active:
            return 'inactivo'
        if today < self.start_date:
            return 'programado'
        if today > self.end_date:
            return 'vencido'
        return 'vigente'

    def __repr__(self):
        return f"<GlobalDiscount(id={self.id}, percentage={self.percentage}, {self.start_date}..{self.end_date})>"
