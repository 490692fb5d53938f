"""
Authentication service for the mobile and admin apps.

Handles credential checks per login partition and issues/validates the
bearer tokens (HS256 JWT) every API request carries.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
from flask import current_app
from sqlalchemy import or_

from distribuidora.database import transaction
from distribuidora.exceptions import AuthenticationError, ForbiddenError, ValidationError
from distribuidora.models import AppUser, Role, Seller, Loader

logger = logging.getLogger(__name__)

# Roles allowed to log in through each app
ROLE_PARTITIONS = {
    'admin': {Role.ADMIN, Role.SUPERADMIN},
    'cargador': {Role.CARGADOR, Role.SUPERADMIN},
    'vendedor': {Role.VENDEDOR, Role.SUPERADMIN},
    'devolucion': {Role.DEVOLUCION, Role.SUPERADMIN},
}


@dataclass(frozen=True)
class Principal:
    """Authenticated identity attached to a request."""
    user_id: int
    role: Role
    seller_id: Optional[int] = None
    loader_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.ADMIN, Role.SUPERADMIN)

    def has_role(self, *roles) -> bool:
        """Superadmin passes every role check."""
        if self.role == Role.SUPERADMIN:
            return True
        return self.role in {Role(r) for r in roles}

    def can_act_as_seller(self, seller_id) -> bool:
        if self.is_admin:
            return True
        return self.seller_id is not None and seller_id is not None and int(seller_id) == self.seller_id


def authenticate(session, username: str, password: str, role_partition: str) -> Tuple[AppUser, Principal]:
    """
    Check credentials for one login partition.

    Args:
        username: username or email
        role_partition: 'admin' | 'cargador' | 'vendedor' | 'devolucion'

    Raises:
        ValidationError: missing fields
        AuthenticationError: unknown user, inactive user or wrong password
        ForbiddenError: role not allowed in this partition
    """
    username = (username or '').strip()
    if not username or not password:
        raise ValidationError('Usuario y contraseña son requeridos')

    allowed = ROLE_PARTITIONS.get(role_partition)
    if allowed is None:
        raise ValueError(f'Unknown role partition: {role_partition}')

    user = session.query(AppUser).filter(
        or_(AppUser.username == username, AppUser.email == username.lower())
    ).first()
    if not user or not user.active or not user.check_password(password):
        logger.warning(f"Failed {role_partition} login for '{username}'")
        raise AuthenticationError()

    try:
        role = Role(user.role)
    except ValueError:
        raise ForbiddenError('Rol no autorizado')
    if role not in allowed:
        logger.warning(f"User {user.id} with role {role.value} rejected at {role_partition} login")
        raise ForbiddenError('Rol no autorizado para esta aplicación')

    seller = session.query(Seller).filter_by(user_id=user.id).first()
    loader = session.query(Loader).filter_by(user_id=user.id).first()
    if role == Role.VENDEDOR and (not seller or not seller.active or seller.deleted):
        raise ForbiddenError('El usuario no está registrado como vendedor')
    if role == Role.CARGADOR and not loader:
        raise ForbiddenError('El usuario no está registrado como cargador')

    with transaction(session):
        user.last_login_at = datetime.now(timezone.utc)

    principal = Principal(
        user_id=user.id,
        role=role,
        seller_id=seller.id if seller else None,
        loader_id=loader.id if loader else None,
    )
    logger.info(f"User {user.id} logged in ({role_partition})")
    return user, principal


def issue_token(principal: Principal) -> str:
    """Sign a bearer token for the principal."""
    config = current_app.config
    now = datetime.now(timezone.utc)
    payload = {
        'sub': str(principal.user_id),
        'role': principal.role.value,
        'seller_id': principal.seller_id,
        'loader_id': principal.loader_id,
        'iat': now,
        'exp': now + timedelta(hours=config.get('JWT_EXPIRES_HOURS', 8)),
    }
    return jwt.encode(payload, config['JWT_SECRET'], algorithm=config.get('JWT_ALGORITHM', 'HS256'))


def decode_token(token: str) -> Principal:
    """
    Validate a bearer token and build its Principal.

    Raises:
        AuthenticationError: expired, tampered or malformed token
    """
    config = current_app.config
    try:
        payload = jwt.decode(
            token,
            config['JWT_SECRET'],
            algorithms=[config.get('JWT_ALGORITHM', 'HS256')]
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError('Token expirado')
    except jwt.InvalidTokenError:
        raise AuthenticationError('Token inválido')

    try:
        return Principal(
            user_id=int(payload['sub']),
            role=Role(payload['role']),
            seller_id=_optional_int(payload.get('seller_id')),
            loader_id=_optional_int(payload.get('loader_id')),
        )
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError('Token inválido')


def _optional_int(value):
    return int(value) if value is not None else None
