"""Scheduling router - admin appointment booking and availability"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...config import AVAILABILITY_SLOT_MINUTES
from ...database import get_db
from ...models import AppointmentStatus
from .schemas import (
    DEFAULT_DURATION_MINUTES,
    AppointmentCreate,
    AppointmentPatch,
    ConflictCheckRequest,
    StatusUpdate,
    appointment_to_dict,
)
from .service import AppointmentService

router = APIRouter(prefix="/api/admin", tags=["Scheduling"], dependencies=[Depends(get_current_admin)])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


@router.get("/appuntamenti")
async def list_appointments(
    artist_id: Optional[str] = Query(None),
    room_id: Optional[str] = Query(None),
    status: Optional[AppointmentStatus] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointments = service.list_appointments(artist_id, room_id, status, date_from, date_to)
    return {"appuntamenti": [appointment_to_dict(a) for a in appointments], "total": len(appointments)}


@router.post("/appuntamenti")
async def create_appointment(
    data: AppointmentCreate, service: AppointmentService = Depends(get_appointment_service)
):
    """Book an appointment; overlaps in rooms that allow overbooking come back as warnings"""
    appointment, conflicts = service.create_appointment(data)
    return JSONResponse(
        status_code=201,
        content={"appointment": appointment_to_dict(appointment), "conflicts": conflicts},
    )


@router.post("/appuntamenti/verifica")
async def check_appointment_conflicts(
    data: ConflictCheckRequest, service: AppointmentService = Depends(get_appointment_service)
):
    return service.check_conflicts(data)


@router.get("/appuntamenti/{appointment_id}")
async def get_appointment(
    appointment_id: str, service: AppointmentService = Depends(get_appointment_service)
):
    return appointment_to_dict(service.get_appointment(appointment_id))


@router.put("/appuntamenti/{appointment_id}")
async def update_appointment(
    appointment_id: str,
    data: AppointmentPatch,
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment, conflicts = service.update_appointment(appointment_id, data)
    return {"appointment": appointment_to_dict(appointment), "conflicts": conflicts}


@router.put("/appuntamenti/{appointment_id}/status")
async def update_appointment_status(
    appointment_id: str,
    data: StatusUpdate,
    service: AppointmentService = Depends(get_appointment_service),
):
    return appointment_to_dict(service.set_status(appointment_id, data.status))


@router.delete("/appuntamenti/{appointment_id}")
async def delete_appointment(
    appointment_id: str, service: AppointmentService = Depends(get_appointment_service)
):
    receipt = service.delete_appointment(appointment_id)
    return {"success": True, "message": "Appuntamento eliminato", "deleted": receipt}


@router.get("/disponibilita")
async def get_availability(
    artist_id: str = Query(...),
    room_id: str = Query(...),
    date: date = Query(...),
    duration_minutes: int = Query(DEFAULT_DURATION_MINUTES),
    slot_minutes: int = Query(AVAILABILITY_SLOT_MINUTES),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.get_availability(artist_id, room_id, date, duration_minutes, slot_minutes)
