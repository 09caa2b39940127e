"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, AppointmentStatus
from .intervals import overlap_clause


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_appointment(db: Session, appointment_id: str) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.artist), joinedload(Appointment.room))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def list_appointments(
        db: Session,
        artist_id: Optional[str] = None,
        room_id: Optional[str] = None,
        status: Optional[AppointmentStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Appointment]:
        """List appointments with optional filters, ordered by start time"""
        query = db.query(Appointment).options(
            joinedload(Appointment.artist), joinedload(Appointment.room)
        )

        if artist_id:
            query = query.filter(Appointment.artist_id == artist_id)
        if room_id:
            query = query.filter(Appointment.room_id == room_id)
        if status:
            query = query.filter(Appointment.status == status)
        if start:
            query = query.filter(Appointment.starts_at >= start)
        if end:
            query = query.filter(Appointment.starts_at < end)

        return query.order_by(Appointment.starts_at.asc()).all()

    @staticmethod
    def find_overlapping(
        db: Session,
        room_id: str,
        artist_id: str,
        starts_at: datetime,
        ends_at: datetime,
        exclude_id: Optional[str] = None,
    ) -> list[Appointment]:
        """
        Non-cancelled appointments sharing the room OR the artist whose window
        overlaps [starts_at, ends_at).
        """
        query = (
            db.query(Appointment)
            .options(joinedload(Appointment.artist), joinedload(Appointment.room))
            .filter(
                Appointment.status != AppointmentStatus.CANCELLED,
                or_(Appointment.room_id == room_id, Appointment.artist_id == artist_id),
                overlap_clause(Appointment.starts_at, Appointment.ends_at, starts_at, ends_at),
            )
        )

        if exclude_id:
            query = query.filter(Appointment.id != exclude_id)

        return query.order_by(Appointment.starts_at.asc()).all()

    @staticmethod
    def add_appointment(db: Session, appointment: Appointment) -> Appointment:
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.flush()
