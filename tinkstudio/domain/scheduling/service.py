"""
Appointment service.

Create and update follow the same pipeline: validate every field rule,
resolve the artist and room, look for overlapping appointments, then either
reject (a conflict sits in a no-overbooking room) or persist and hand the
remaining conflicts back as warnings.

The conflict check and the write are not serialized against concurrent
bookings; two requests for the same slot can both pass the check.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import (
    AVAILABILITY_SLOT_MINUTES,
    BUSINESS_HOURS_END,
    BUSINESS_HOURS_START,
    MAX_APPOINTMENT_MINUTES,
)
from ...errors import InvalidState, NotFound, SchedulingConflict, ValidationFailed
from ...models import Appointment, AppointmentStatus, Artist, Room
from ...shared.datetime_utils import isoformat_utc, local_day_bounds, studio_tz, to_storage
from ..customers.service import CustomerService, split_full_name
from ..studio.repository import StudioRepository
from .conflicts import ConflictDetector, conflict_to_dict, has_blocking_conflict
from .intervals import appointment_window, overlaps
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentPatch, ConflictCheckRequest
from .validator import AppointmentCandidate, validate_appointment

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = (
    "artist_id",
    "room_id",
    "starts_at",
    "duration_minutes",
    "customer_phone",
    "customer_name",
    "notes",
    "status",
)


class AppointmentService:
    """Service layer for appointment booking"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()
        self.studio_repo = StudioRepository()
        self.detector = ConflictDetector(db)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_appointments(
        self,
        artist_id: Optional[str] = None,
        room_id: Optional[str] = None,
        status: Optional[AppointmentStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Appointment]:
        start = local_day_bounds(date_from)[0] if date_from else None
        end = local_day_bounds(date_to)[1] if date_to else None
        return self.repo.list_appointments(self.db, artist_id, room_id, status, start, end)

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.repo.get_appointment(self.db, appointment_id)
        if not appointment:
            raise NotFound("Appuntamento non trovato")
        return appointment

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_appointment(self, data: AppointmentCreate) -> tuple[Appointment, list[dict]]:
        """
        Book a new appointment.

        Returns:
            The persisted appointment and the advisory (non-blocking) conflicts

        Raises:
            ValidationFailed: One or more field rules failed
            NotFound: Unknown artist or room
            InvalidState: Artist or room disabled
            SchedulingConflict: An overlapping appointment sits in a no-overbooking room
        """
        candidate = AppointmentCandidate(
            artist_id=data.artist_id,
            room_id=data.room_id,
            starts_at=data.starts_at,
            duration_minutes=data.duration_minutes,
        )
        self._validate(candidate)
        self._resolve_resources(candidate.artist_id, candidate.room_id, require_active=True)

        conflicts = self._check_conflicts(candidate)

        appointment = Appointment(
            artist_id=data.artist_id,
            room_id=data.room_id,
            customer_phone=data.customer_phone,
            customer_name=data.customer_name,
            notes=data.notes,
            status=AppointmentStatus.CONFIRMED,
        )
        appointment.set_window(data.starts_at, data.duration_minutes)

        try:
            self.repo.add_appointment(self.db, appointment)
            self._link_customer(appointment)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"📅 Appointment created: {appointment.id} artist={appointment.artist_id} "
            f"room={appointment.room_id} at {isoformat_utc(appointment.starts_at)}"
            + (f" ({len(conflicts)} advisory conflict(s))" if conflicts else "")
        )
        return self.get_appointment(appointment.id), conflicts

    def update_appointment(
        self, appointment_id: str, patch: AppointmentPatch
    ) -> tuple[Appointment, list[dict]]:
        """
        Merge the supplied fields over the stored appointment, then re-run
        validation and conflict detection (excluding the appointment itself).
        """
        appointment = self.get_appointment(appointment_id)
        changes = patch.model_dump(exclude_unset=True)

        merged = {name: getattr(appointment, name) for name in PATCHABLE_FIELDS}
        merged.update(changes)

        candidate = AppointmentCandidate(
            artist_id=merged["artist_id"],
            room_id=merged["room_id"],
            starts_at=merged["starts_at"],
            duration_minutes=merged["duration_minutes"],
        )
        self._validate(candidate)
        # Disabled resources only matter when the booking moves onto them
        moved_to = {
            changes[name]
            for name in ("artist_id", "room_id")
            if name in changes and changes[name] != getattr(appointment, name)
        }
        self._resolve_resources(
            candidate.artist_id, candidate.room_id, require_active=False, require_active_ids=moved_to
        )

        # A cancelled booking holds no slot
        if merged["status"] == AppointmentStatus.CANCELLED:
            conflicts = []
        else:
            conflicts = self._check_conflicts(candidate, exclude_id=appointment.id)

        try:
            for name in PATCHABLE_FIELDS:
                if name not in ("starts_at", "duration_minutes"):
                    setattr(appointment, name, merged[name])
            appointment.set_window(merged["starts_at"], merged["duration_minutes"])
            if merged["status"] is None:
                appointment.status = AppointmentStatus.CONFIRMED
            self.db.flush()
            if {"customer_phone", "customer_name"} & changes.keys():
                self._link_customer(appointment)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"📅 Appointment updated: {appointment.id} fields={sorted(changes)}")
        return self.get_appointment(appointment.id), conflicts

    def set_status(self, appointment_id: str, status: AppointmentStatus) -> Appointment:
        """Direct status set; transitions are not guarded"""
        appointment = self.get_appointment(appointment_id)
        previous = appointment.status
        appointment.status = status
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"📅 Appointment {appointment.id} status {previous.value} -> {status.value}")
        return appointment

    def delete_appointment(self, appointment_id: str) -> dict:
        """Hard delete; returns a receipt for the audit display"""
        appointment = self.get_appointment(appointment_id)
        receipt = {
            "id": appointment.id,
            "artist_id": appointment.artist_id,
            "room_id": appointment.room_id,
            "starts_at": isoformat_utc(appointment.starts_at),
        }
        try:
            self.repo.delete_appointment(self.db, appointment)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ Appointment deleted: {receipt['id']}")
        return receipt

    def check_conflicts(self, data: ConflictCheckRequest) -> dict:
        """Dry run of the create/update conflict pipeline; nothing is written"""
        candidate = AppointmentCandidate(
            artist_id=data.artist_id,
            room_id=data.room_id,
            starts_at=data.starts_at,
            duration_minutes=data.duration_minutes,
        )
        self._validate(candidate)
        conflicts = self.detector.find_conflicts(
            candidate.room_id,
            candidate.artist_id,
            candidate.starts_at,
            candidate.duration_minutes,
            exclude_id=data.exclude_id,
        )
        return {"conflicts": conflicts, "blocking": has_blocking_conflict(conflicts)}

    def get_availability(
        self,
        artist_id: str,
        room_id: str,
        day: date,
        duration_minutes: int,
        slot_minutes: int = AVAILABILITY_SLOT_MINUTES,
    ) -> dict:
        """
        Slot grid for one local day. Slots start every ``slot_minutes`` from
        opening time while the slot's local start hour is before closing. A
        slot is unavailable only when it would hit a blocking conflict.
        """
        errors = []
        if duration_minutes is None or not 1 <= duration_minutes <= MAX_APPOINTMENT_MINUTES:
            errors.append("Durata non valida")
        if slot_minutes is None or not 1 <= slot_minutes <= MAX_APPOINTMENT_MINUTES:
            errors.append("Intervallo non valido")
        if errors:
            raise ValidationFailed(details=errors)

        self._resolve_resources(artist_id, room_id, require_active=False)

        tz = studio_tz()
        slots_local = []
        cursor = datetime.combine(day, time(hour=BUSINESS_HOURS_START), tzinfo=tz)
        while cursor.date() == day and BUSINESS_HOURS_START <= cursor.hour < BUSINESS_HOURS_END:
            slots_local.append(cursor)
            cursor = (cursor + timedelta(minutes=slot_minutes)).astimezone(tz)

        if not slots_local:
            return {"date": day.isoformat(), "slots": [], "total_slots": 0, "available_slots": 0}

        first_start = to_storage(slots_local[0])
        last_end = to_storage(slots_local[-1]) + timedelta(minutes=duration_minutes)
        existing = self.repo.find_overlapping(self.db, room_id, artist_id, first_start, last_end)

        slots = []
        for slot_local in slots_local:
            slot_start, slot_end = appointment_window(to_storage(slot_local), duration_minutes)
            hits = [a for a in existing if overlaps(slot_start, slot_end, a.starts_at, a.ends_at)]
            conflicts = [conflict_to_dict(a) for a in hits]
            slots.append(
                {
                    "start": isoformat_utc(slot_start),
                    "end": isoformat_utc(slot_end),
                    "local_time": slot_local.strftime("%H:%M"),
                    "available": not has_blocking_conflict(conflicts),
                    "conflicts": conflicts,
                }
            )

        return {
            "date": day.isoformat(),
            "artist_id": artist_id,
            "room_id": room_id,
            "duration_minutes": duration_minutes,
            "slots": slots,
            "total_slots": len(slots),
            "available_slots": sum(1 for s in slots if s["available"]),
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate(self, candidate: AppointmentCandidate) -> None:
        errors = validate_appointment(candidate)
        if errors:
            logger.warning(f"⚠️ Appointment rejected by validation: {errors}")
            raise ValidationFailed(details=errors)

    def _resolve_resources(
        self,
        artist_id: str,
        room_id: str,
        require_active: bool,
        require_active_ids: Optional[set] = None,
    ) -> tuple[Artist, Room]:
        artist = self.studio_repo.get_artist(self.db, artist_id)
        if not artist:
            raise NotFound("Tatuatore non trovato")
        room = self.studio_repo.get_room(self.db, room_id)
        if not room:
            raise NotFound("Stanza non trovata")

        require_active_ids = require_active_ids or set()
        if not artist.active and (require_active or artist.id in require_active_ids):
            raise InvalidState("Tatuatore non attivo")
        if not room.active and (require_active or room.id in require_active_ids):
            raise InvalidState("Stanza non attiva")
        return artist, room

    def _check_conflicts(
        self, candidate: AppointmentCandidate, exclude_id: Optional[str] = None
    ) -> list[dict]:
        conflicts = self.detector.find_conflicts(
            candidate.room_id,
            candidate.artist_id,
            candidate.starts_at,
            candidate.duration_minutes,
            exclude_id=exclude_id,
        )
        if has_blocking_conflict(conflicts):
            logger.warning(
                f"🚫 Booking blocked for room={candidate.room_id} artist={candidate.artist_id}: "
                f"{len(conflicts)} conflict(s) involving a no-overbooking room"
            )
            raise SchedulingConflict(conflicts)
        return conflicts

    def _link_customer(self, appointment: Appointment) -> None:
        """Record the customer when the booking carries both phone and name"""
        if not (appointment.customer_phone and appointment.customer_name):
            return
        first_name, last_name = split_full_name(appointment.customer_name)
        CustomerService(self.db).upsert_customer(appointment.customer_phone, first_name, last_name)
