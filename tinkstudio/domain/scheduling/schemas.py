"""Scheduling domain schemas - Pydantic models for appointments"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import Appointment, AppointmentStatus
from ...shared.datetime_utils import isoformat_utc, to_storage
from ...shared.validators import blank_to_none, normalize_phone
from ...utils.sanitization import clean_text

DEFAULT_DURATION_MINUTES = 60


class _AppointmentFields(BaseModel):
    """
    Shared field parsing. Presence and range rules are left to the
    appointment validator so that every violation is reported at once.
    """

    @field_validator("starts_at", check_fields=False)
    @classmethod
    def normalize_start(cls, v):
        return to_storage(v)

    @field_validator("customer_phone", check_fields=False)
    @classmethod
    def normalize_customer_phone(cls, v):
        return normalize_phone(v)

    @field_validator("customer_name", check_fields=False)
    @classmethod
    def strip_customer_name(cls, v):
        return blank_to_none(v)

    @field_validator("notes", check_fields=False)
    @classmethod
    def sanitize_notes(cls, v):
        return clean_text(v)


class AppointmentCreate(_AppointmentFields):
    artist_id: Optional[str] = None
    room_id: Optional[str] = None
    starts_at: Optional[datetime] = None
    duration_minutes: Optional[int] = DEFAULT_DURATION_MINUTES
    customer_phone: Optional[str] = None
    customer_name: Optional[str] = None
    notes: Optional[str] = None


class AppointmentPatch(_AppointmentFields):
    """Partial update; only fields present in the request are applied"""

    artist_id: Optional[str] = None
    room_id: Optional[str] = None
    starts_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    customer_phone: Optional[str] = None
    customer_name: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[AppointmentStatus] = None


class StatusUpdate(BaseModel):
    status: AppointmentStatus


class ConflictCheckRequest(_AppointmentFields):
    artist_id: Optional[str] = None
    room_id: Optional[str] = None
    starts_at: Optional[datetime] = None
    duration_minutes: Optional[int] = DEFAULT_DURATION_MINUTES
    exclude_id: Optional[str] = None


def appointment_to_dict(appointment: Appointment) -> dict:
    return {
        "id": appointment.id,
        "artist_id": appointment.artist_id,
        "artist_name": appointment.artist.name if appointment.artist else None,
        "room_id": appointment.room_id,
        "room_name": appointment.room.name if appointment.room else None,
        "room_no_overbooking": bool(appointment.room.no_overbooking) if appointment.room else False,
        "customer_phone": appointment.customer_phone,
        "customer_name": appointment.customer_name,
        "starts_at": isoformat_utc(appointment.starts_at),
        "ends_at": isoformat_utc(appointment.ends_at),
        "duration_minutes": appointment.duration_minutes,
        "notes": appointment.notes,
        "status": appointment.status.value,
        "created_at": isoformat_utc(appointment.created_at),
        "updated_at": isoformat_utc(appointment.updated_at),
    }
