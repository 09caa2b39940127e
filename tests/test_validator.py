from datetime import datetime

import pytest

from tinkstudio.domain.scheduling.validator import AppointmentCandidate, validate_appointment
from tinkstudio.shared.datetime_utils import to_storage


def candidate(hour=10, minute=0, duration=60, artist_id="a1", room_id="r1"):
    starts_at = to_storage(datetime(2030, 3, 11, hour, minute))
    return AppointmentCandidate(artist_id, room_id, starts_at, duration)


def test_valid_candidate_has_no_errors():
    assert validate_appointment(candidate()) == []


def test_every_violation_is_reported():
    errors = validate_appointment(AppointmentCandidate(None, None, None, 5))

    assert "Seleziona un tatuatore" in errors
    assert "Seleziona una stanza" in errors
    assert "Seleziona data e ora" in errors
    assert "Durata minima 15 minuti" in errors
    assert len(errors) == 4


@pytest.mark.parametrize("minute", [0, 30, 45, 59])
def test_any_start_in_hour_twenty_is_accepted(minute):
    assert validate_appointment(candidate(hour=20, minute=minute, duration=180)) == []


@pytest.mark.parametrize("hour, minute", [(21, 0), (22, 15), (8, 59), (0, 0)])
def test_start_outside_business_hours_is_rejected(hour, minute):
    errors = validate_appointment(candidate(hour=hour, minute=minute))
    assert len(errors) == 1
    assert errors[0].startswith("Orario non valido")


def test_business_hours_use_studio_local_time():
    # 08:30 UTC is 09:30 in Rome in winter
    starts_at = datetime(2030, 1, 15, 8, 30)
    errors = validate_appointment(AppointmentCandidate("a1", "r1", starts_at, 60))
    assert errors == []


def test_minimum_duration_boundary():
    assert validate_appointment(candidate(duration=15)) == []
    assert validate_appointment(candidate(duration=14)) == ["Durata minima 15 minuti"]


def test_maximum_duration_boundary():
    assert validate_appointment(candidate(duration=720)) == []
    assert validate_appointment(candidate(duration=721)) == ["Durata massima 720 minuti"]
    assert validate_appointment(candidate(duration=10**12)) == ["Durata massima 720 minuti"]
