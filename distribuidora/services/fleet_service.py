"""
Fleet service: trucks (camionetas) and which seller drives each one.

A truck belongs to at most one seller. Assignment locks the truck row first
and then the seller rows involved in id order, so two admins moving the same
truck (or the same seller) serialize instead of both succeeding.
"""
import logging
from typing import List, Dict, Optional, Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from distribuidora.database import transaction
from distribuidora.exceptions import ValidationError, NotFoundError, ConflictError
from distribuidora.models import Vehicle, VehicleAssignment, Seller

logger = logging.getLogger(__name__)


def serialize_vehicle(vehicle: Vehicle, seller: Optional[Seller] = None) -> Dict[str, Any]:
    return {
        'id': vehicle.id,
        'placa': vehicle.plate,
        'marca': vehicle.brand,
        'modelo': vehicle.model,
        'color': vehicle.color,
        'kilometraje_actual': vehicle.odometer,
        'tiene_refrigeracion': bool(vehicle.refrigerated),
        'activo': bool(vehicle.active),
        'id_vendedor': seller.id if seller else None,
        'nombre_vendedor': seller.name if seller else None,
    }


def create_vehicle(session, plate: str, brand: Optional[str] = None, model: Optional[str] = None,
                   color: Optional[str] = None, odometer=None, refrigerated: bool = False) -> Vehicle:
    """Register a truck. Plates are unique."""
    plate = (plate or '').strip().upper()
    if not plate:
        raise ValidationError('placa es requerida')
    if odometer in (None, ''):
        odometer = None
    else:
        try:
            odometer = int(odometer)
        except (TypeError, ValueError):
            raise ValidationError('kilometraje_actual inválido')
        if odometer < 0:
            raise ValidationError('kilometraje_actual inválido')

    try:
        with transaction(session):
            vehicle = Vehicle(
                plate=plate,
                brand=(brand or '').strip() or None,
                model=(model or '').strip() or None,
                color=(color or '').strip() or None,
                odometer=odometer,
                refrigerated=bool(refrigerated),
                active=True,
            )
            session.add(vehicle)
            session.flush()
    except IntegrityError:
        raise ConflictError('Ya existe una camioneta con esa placa', {'placa': plate})

    logger.info(f"Vehicle {vehicle.id} created: {plate}")
    return vehicle


def list_vehicles(session) -> List[Dict[str, Any]]:
    """Active trucks, newest first, with the seller currently driving each."""
    rows = session.query(Vehicle, Seller).outerjoin(
        Seller, (Seller.vehicle_id == Vehicle.id) & Seller.active.is_(True) & Seller.deleted.is_(False)
    ).filter(Vehicle.active.is_(True)).order_by(Vehicle.created_at.desc(), Vehicle.id.desc()).all()
    return [serialize_vehicle(vehicle, seller) for vehicle, seller in rows]


def assign_vehicle(session, seller_id, vehicle_id, reassign: bool = False) -> Dict[str, Any]:
    """
    Hand a truck to a seller.

    Assigning a truck the seller already drives is a no-op. A truck held by
    another seller is a 409 unless ``reassign`` is set, in which case the
    previous seller is released. A seller moving to a new truck leaves the
    old one free.

    Returns:
        {'camionetaId', 'vendedorId', 'vendedorAnteriorId', 'yaAsignado'}
    """
    with transaction(session):
        vehicle = session.query(Vehicle).filter(
            Vehicle.id == vehicle_id
        ).with_for_update().populate_existing().first()
        if not vehicle or not vehicle.active:
            raise NotFoundError('Camioneta no encontrada o inactiva', {'camionetaId': vehicle_id})

        sellers = session.query(Seller).filter(
            or_(Seller.id == seller_id, Seller.vehicle_id == vehicle_id)
        ).order_by(Seller.id).with_for_update().populate_existing().all()

        seller = next((s for s in sellers if s.id == seller_id), None)
        if seller is None or not seller.active or seller.deleted:
            raise NotFoundError('Vendedor no encontrado o inactivo', {'vendedorId': seller_id})

        if seller.vehicle_id == vehicle.id:
            return {
                'camionetaId': vehicle.id,
                'vendedorId': seller.id,
                'vendedorAnteriorId': None,
                'yaAsignado': True,
            }

        holder = next((s for s in sellers if s.id != seller_id and s.vehicle_id == vehicle.id), None)
        if holder is not None:
            if not reassign:
                raise ConflictError(
                    'La camioneta ya está asignada a otro vendedor',
                    {'camionetaId': vehicle.id, 'vendedorActualId': holder.id}
                )
            holder.vehicle_id = None
            # Release first so the unique seller.vehicle_id never sees two holders
            session.flush()

        seller.vehicle_id = vehicle.id
        session.add(VehicleAssignment(vehicle_id=vehicle.id, seller_id=seller.id))
        session.flush()

        result = {
            'camionetaId': vehicle.id,
            'vendedorId': seller.id,
            'vendedorAnteriorId': holder.id if holder else None,
            'yaAsignado': False,
        }

    logger.info(
        f"Vehicle {result['camionetaId']} assigned to seller {result['vendedorId']} "
        f"(previous={result['vendedorAnteriorId']})"
    )
    return result


def unassign_vehicle(session, vehicle_id) -> int:
    """Release a truck from its seller. Returns the released seller id."""
    with transaction(session):
        vehicle = session.query(Vehicle).filter(
            Vehicle.id == vehicle_id
        ).with_for_update().populate_existing().first()
        if not vehicle or not vehicle.active:
            raise NotFoundError('Camioneta no encontrada o inactiva', {'camionetaId': vehicle_id})

        holder = session.query(Seller).filter(
            Seller.vehicle_id == vehicle.id
        ).with_for_update().populate_existing().first()
        if holder is None:
            raise NotFoundError('No hay vendedor asignado a esta camioneta.', {'camionetaId': vehicle.id})
        holder.vehicle_id = None
        seller_id = holder.id

    logger.info(f"Vehicle {vehicle_id} released from seller {seller_id}")
    return seller_id


def assignment_history(session, vehicle_id) -> List[Dict[str, Any]]:
    """Who drove a truck, newest first."""
    if not session.get(Vehicle, vehicle_id):
        raise NotFoundError('Camioneta no encontrada', {'camionetaId': vehicle_id})
    rows = session.query(VehicleAssignment).filter(
        VehicleAssignment.vehicle_id == vehicle_id
    ).order_by(VehicleAssignment.assigned_at.desc(), VehicleAssignment.id.desc()).all()
    return [
        {
            'id': row.id,
            'id_vendedor': row.seller_id,
            'nombre_vendedor': row.seller.name if row.seller else None,
            'fecha': row.assigned_at.isoformat() if row.assigned_at else None,
        }
        for row in rows
    ]
