"""
Conflict detection for appointments.

A candidate conflicts with every non-cancelled appointment that shares its
room or its artist and overlaps its window. A conflict is blocking when the
room of the *existing* appointment has ``no_overbooking`` set, so a
same-artist clash sitting in a strict room blocks even if the requested room
allows overbooking.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment
from ...shared.datetime_utils import isoformat_utc
from .intervals import appointment_window
from .repository import AppointmentRepository

logger = logging.getLogger(__name__)


def conflict_to_dict(appointment: Appointment) -> dict:
    room = appointment.room
    return {
        "id": appointment.id,
        "artist_id": appointment.artist_id,
        "artist_name": appointment.artist.name if appointment.artist else None,
        "room_id": appointment.room_id,
        "room_name": room.name if room else None,
        "starts_at": isoformat_utc(appointment.starts_at),
        "ends_at": isoformat_utc(appointment.ends_at),
        "duration_minutes": appointment.duration_minutes,
        "status": appointment.status.value,
        "no_overbooking": bool(room.no_overbooking) if room else False,
    }


def has_blocking_conflict(conflicts: list[dict]) -> bool:
    return any(c["no_overbooking"] for c in conflicts)


class ConflictDetector:
    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    def find_conflicts(
        self,
        room_id: str,
        artist_id: str,
        starts_at: datetime,
        duration_minutes: int,
        exclude_id: Optional[str] = None,
    ) -> list[dict]:
        window_start, window_end = appointment_window(starts_at, duration_minutes)
        matches = self.repo.find_overlapping(
            self.db, room_id, artist_id, window_start, window_end, exclude_id
        )
        if matches:
            logger.info(
                f"⚠️ {len(matches)} overlapping appointment(s) for room={room_id} "
                f"artist={artist_id} at {window_start.isoformat()}"
            )
        return [conflict_to_dict(a) for a in matches]
