"""AppUser model - staff accounts for every role partition."""
import enum
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from distribuidora.database import Base, Identifier


class Role(str, enum.Enum):
    """User roles."""
    ADMIN = 'admin'
    SUPERADMIN = 'superadmin'
    CARGADOR = 'cargador'
    VENDEDOR = 'vendedor'
    DEVOLUCION = 'devolucion'


class AppUser(Base):
    """AppUser model - one login, one role."""

    __tablename__ = 'app_user'

    id = Column(Identifier, primary_key=True, autoincrement=True)
    username = Column(String(80), nullable=False, unique=True)
    email = Column(String(255), nullable=True, unique=True)
    full_name = Column(String(200), nullable=True)
    password_hash = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=Role.VENDEDOR.value)
    active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f"<AppUser(id={self.id}, username='{self.username}', role='{self.role}')>"
