"""Appointment field rules, evaluated independently so every violation is reported"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...config import (
    BUSINESS_HOURS_END,
    BUSINESS_HOURS_START,
    MAX_APPOINTMENT_MINUTES,
    MIN_APPOINTMENT_MINUTES,
)
from ...shared.datetime_utils import to_local


@dataclass
class AppointmentCandidate:
    """Fields an appointment must have before it can be checked for conflicts"""

    artist_id: Optional[str]
    room_id: Optional[str]
    starts_at: Optional[datetime]  # naive UTC
    duration_minutes: Optional[int]


def validate_appointment(
    candidate: AppointmentCandidate,
    opening_hour: int = BUSINESS_HOURS_START,
    closing_hour: int = BUSINESS_HOURS_END,
    min_minutes: int = MIN_APPOINTMENT_MINUTES,
    max_minutes: int = MAX_APPOINTMENT_MINUTES,
) -> list[str]:
    """
    Return the list of violations for a candidate appointment (empty if valid).

    Only the local start hour is bounded: a start at 20:45 passes even when the
    appointment runs past closing time.
    """
    errors = []

    if not candidate.artist_id:
        errors.append("Seleziona un tatuatore")
    if not candidate.room_id:
        errors.append("Seleziona una stanza")
    if candidate.starts_at is None:
        errors.append("Seleziona data e ora")
    if candidate.duration_minutes is None or candidate.duration_minutes < min_minutes:
        errors.append(f"Durata minima {min_minutes} minuti")
    elif candidate.duration_minutes > max_minutes:
        errors.append(f"Durata massima {max_minutes} minuti")

    if candidate.starts_at is not None:
        hour = to_local(candidate.starts_at).hour
        if hour < opening_hour or hour >= closing_hour:
            errors.append(
                f"Orario non valido: gli appuntamenti devono iniziare tra le "
                f"{opening_hour:02d}:00 e le {closing_hour:02d}:00"
            )

    return errors
