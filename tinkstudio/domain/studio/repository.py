"""Studio repository - Database operations for artists and rooms"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentStatus, Artist, Room


class StudioRepository:
    """Repository for artist and room database operations"""

    @staticmethod
    def get_artists(db: Session, include_inactive: bool = False) -> list[Artist]:
        query = db.query(Artist)
        if not include_inactive:
            query = query.filter(Artist.active.is_(True))
        return query.order_by(Artist.name.asc()).all()

    @staticmethod
    def get_artist(db: Session, artist_id: str) -> Optional[Artist]:
        return db.query(Artist).filter(Artist.id == artist_id).first()

    @staticmethod
    def get_rooms(db: Session, include_inactive: bool = False) -> list[Room]:
        query = db.query(Room)
        if not include_inactive:
            query = query.filter(Room.active.is_(True))
        return query.order_by(Room.name.asc()).all()

    @staticmethod
    def get_room(db: Session, room_id: str) -> Optional[Room]:
        return db.query(Room).filter(Room.id == room_id).first()

    @staticmethod
    def count_open_appointments(
        db: Session, artist_id: Optional[str] = None, room_id: Optional[str] = None
    ) -> int:
        """Count non-cancelled appointments referencing an artist or a room"""
        query = db.query(func.count(Appointment.id)).filter(
            Appointment.status != AppointmentStatus.CANCELLED
        )
        if artist_id:
            query = query.filter(Appointment.artist_id == artist_id)
        if room_id:
            query = query.filter(Appointment.room_id == room_id)
        return query.scalar() or 0

    @staticmethod
    def delete_cancelled_appointments(
        db: Session, artist_id: Optional[str] = None, room_id: Optional[str] = None
    ) -> int:
        query = db.query(Appointment).filter(Appointment.status == AppointmentStatus.CANCELLED)
        if artist_id:
            query = query.filter(Appointment.artist_id == artist_id)
        if room_id:
            query = query.filter(Appointment.room_id == room_id)
        return query.delete(synchronize_session=False)

    @staticmethod
    def add(db: Session, entity):
        db.add(entity)
        db.commit()
        db.refresh(entity)
        return entity

    @staticmethod
    def update(db: Session, entity, **updates):
        """Update an artist or room with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(entity, key):
                setattr(entity, key, value)

        db.commit()
        db.refresh(entity)
        return entity

    @staticmethod
    def delete(db: Session, entity) -> None:
        db.delete(entity)
        db.commit()
