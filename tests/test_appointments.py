import pytest

from tinkstudio.domain.customers.service import CustomerService
from tinkstudio.models import Appointment, AppointmentStatus, Customer

from .conftest import local, local_iso

URL = "/api/admin/appuntamenti"


def booking(artist, room, hour, minute=0, duration=60, **extra):
    return {
        "artist_id": artist.id,
        "room_id": room.id,
        "starts_at": local_iso(hour, minute),
        "duration_minutes": duration,
        **extra,
    }


def test_create_appointment_without_conflicts(client, admin_headers, make_artist, make_room):
    artist, room = make_artist(), make_room()

    response = client.post(URL, json=booking(artist, room, 10), headers=admin_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["conflicts"] == []
    appointment = body["appointment"]
    assert appointment["status"] == "confirmed"
    assert appointment["duration_minutes"] == 60
    assert appointment["artist_name"] == "Luca"
    assert appointment["starts_at"].endswith("Z")


def test_duration_defaults_to_sixty_minutes(client, admin_headers, make_artist, make_room):
    artist, room = make_artist(), make_room()
    payload = booking(artist, room, 10)
    del payload["duration_minutes"]

    response = client.post(URL, json=payload, headers=admin_headers)

    assert response.status_code == 201
    assert response.json()["appointment"]["duration_minutes"] == 60


def test_no_overbooking_room_blocks_any_artist(
    client, admin_headers, make_artist, make_room, make_appointment
):
    room = make_room("Sala privata", no_overbooking=True)
    first, second = make_artist("Luca"), make_artist("Giulia")
    existing = make_appointment(first, room, local(10, 0))

    response = client.post(URL, json=booking(second, room, 10, 30), headers=admin_headers)

    assert response.status_code == 409
    conflicts = response.json()["conflicts"]
    assert [c["id"] for c in conflicts] == [existing.id]
    assert conflicts[0]["no_overbooking"] is True
    assert conflicts[0]["room_name"] == "Sala privata"


def test_overbooking_room_allows_double_booking_with_warning(
    client, admin_headers, make_artist, make_room, make_appointment
):
    room = make_room("Sala comune", no_overbooking=False)
    artist = make_artist()
    existing = make_appointment(artist, room, local(10, 0))

    response = client.post(URL, json=booking(artist, room, 10, 30), headers=admin_headers)

    assert response.status_code == 201
    conflicts = response.json()["conflicts"]
    assert [c["id"] for c in conflicts] == [existing.id]
    assert conflicts[0]["no_overbooking"] is False


def test_same_artist_conflict_in_strict_room_blocks_booking_elsewhere(
    client, admin_headers, make_artist, make_room, make_appointment
):
    relaxed = make_room("Sala A", no_overbooking=False)
    strict = make_room("Sala B", no_overbooking=True)
    artist = make_artist()
    make_appointment(artist, strict, local(10, 0))

    response = client.post(URL, json=booking(artist, relaxed, 10, 30), headers=admin_headers)

    assert response.status_code == 409
    assert response.json()["conflicts"][0]["room_id"] == strict.id


def test_unrelated_artist_and_room_do_not_conflict(
    client, admin_headers, make_artist, make_room, make_appointment
):
    make_appointment(make_artist("Luca"), make_room("Sala A", no_overbooking=True), local(10, 0))

    response = client.post(
        URL, json=booking(make_artist("Giulia"), make_room("Sala B"), 10), headers=admin_headers
    )

    assert response.status_code == 201
    assert response.json()["conflicts"] == []


def test_back_to_back_and_cancelled_appointments_do_not_conflict(
    client, admin_headers, make_artist, make_room, make_appointment
):
    room = make_room(no_overbooking=True)
    artist = make_artist()
    make_appointment(artist, room, local(9, 0))
    make_appointment(artist, room, local(11, 0), status=AppointmentStatus.CANCELLED)

    response = client.post(URL, json=booking(artist, room, 10, 0, 90), headers=admin_headers)

    assert response.status_code == 201
    assert response.json()["conflicts"] == []


def test_validation_failure_lists_every_violation(client, admin_headers):
    response = client.post(URL, json={"duration_minutes": 10}, headers=admin_headers)

    assert response.status_code == 400
    details = response.json()["details"]
    assert "Seleziona un tatuatore" in details
    assert "Seleziona una stanza" in details
    assert "Seleziona data e ora" in details
    assert "Durata minima 15 minuti" in details


def test_business_hours_boundary(client, admin_headers, make_artist, make_room):
    artist, room = make_artist(), make_room()

    late = client.post(URL, json=booking(artist, room, 20, 45), headers=admin_headers)
    closed = client.post(URL, json=booking(artist, room, 21, 0), headers=admin_headers)

    assert late.status_code == 201
    assert closed.status_code == 400
    assert closed.json()["details"][0].startswith("Orario non valido")


def test_unknown_artist_is_not_found(client, admin_headers, make_room):
    payload = {
        "artist_id": "missing",
        "room_id": make_room().id,
        "starts_at": local_iso(10),
        "duration_minutes": 60,
    }
    response = client.post(URL, json=payload, headers=admin_headers)
    assert response.status_code == 404


def test_inactive_room_is_rejected(client, admin_headers, make_artist, make_room):
    response = client.post(
        URL, json=booking(make_artist(), make_room(active=False), 10), headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Stanza non attiva"


def test_update_never_conflicts_with_itself(
    client, admin_headers, make_artist, make_room, make_appointment
):
    room = make_room(no_overbooking=True)
    appointment = make_appointment(make_artist(), room, local(10, 0))

    response = client.put(
        f"{URL}/{appointment.id}",
        json={"starts_at": local_iso(10, 30), "duration_minutes": 90},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["conflicts"] == []
    assert body["appointment"]["duration_minutes"] == 90


def test_update_keeps_fields_not_in_the_request(
    client, admin_headers, make_artist, make_room, make_appointment
):
    artist, room = make_artist(), make_room()
    appointment = make_appointment(artist, room, local(10, 0), minutes=45)

    response = client.put(
        f"{URL}/{appointment.id}", json={"notes": "Ritocco"}, headers=admin_headers
    )

    assert response.status_code == 200
    updated = response.json()["appointment"]
    assert updated["notes"] == "Ritocco"
    assert updated["duration_minutes"] == 45
    assert updated["artist_id"] == artist.id
    assert updated["room_id"] == room.id


def test_update_into_blocked_slot_is_rejected(
    client, admin_headers, make_artist, make_room, make_appointment
):
    room = make_room(no_overbooking=True)
    make_appointment(make_artist("Luca"), room, local(10, 0))
    other = make_appointment(make_artist("Giulia"), room, local(14, 0))

    response = client.put(
        f"{URL}/{other.id}", json={"starts_at": local_iso(10, 15)}, headers=admin_headers
    )

    assert response.status_code == 409


def test_update_revalidates_merged_fields(
    client, admin_headers, make_artist, make_room, make_appointment
):
    appointment = make_appointment(make_artist(), make_room(), local(10, 0))

    response = client.put(
        f"{URL}/{appointment.id}", json={"duration_minutes": 5}, headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["details"] == ["Durata minima 15 minuti"]


def test_cancelling_an_overlapping_booking_is_allowed(
    client, admin_headers, db, make_artist, make_room, make_appointment
):
    room = make_room()
    make_appointment(make_artist("Luca"), room, local(10, 0))
    overlapping = make_appointment(make_artist("Giulia"), room, local(10, 30))
    room.no_overbooking = True
    db.commit()

    response = client.put(
        f"{URL}/{overlapping.id}", json={"status": "cancelled"}, headers=admin_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["conflicts"] == []
    assert body["appointment"]["status"] == "cancelled"


def test_update_without_customer_fields_keeps_customer_record(
    client, admin_headers, db, make_artist, make_room, make_appointment
):
    CustomerService(db).upsert_customer("3331234567", "Mario", "De Rossi")
    appointment = make_appointment(make_artist(), make_room(), local(10, 0))
    appointment.customer_phone = "3331234567"
    appointment.customer_name = "Mario"
    db.commit()

    response = client.put(
        f"{URL}/{appointment.id}", json={"notes": "Ritocco"}, headers=admin_headers
    )

    assert response.status_code == 200
    db.expire_all()
    customer = db.query(Customer).filter(Customer.phone == "3331234567").one()
    assert customer.first_name == "Mario"
    assert customer.last_name == "De Rossi"


def test_oversized_duration_is_rejected(client, admin_headers, make_artist, make_room):
    artist, room = make_artist(), make_room()

    response = client.post(
        URL, json=booking(artist, room, 10, duration=10**12), headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["details"] == ["Durata massima 720 minuti"]


def test_update_missing_appointment(client, admin_headers):
    response = client.put(f"{URL}/missing", json={"notes": "x"}, headers=admin_headers)
    assert response.status_code == 404


def test_delete_returns_receipt(client, admin_headers, make_artist, make_room, make_appointment, db):
    artist, room = make_artist(), make_room()
    appointment = make_appointment(artist, room, local(10, 0))
    appointment_id = appointment.id

    response = client.delete(f"{URL}/{appointment_id}", headers=admin_headers)

    assert response.status_code == 200
    receipt = response.json()["deleted"]
    assert receipt["id"] == appointment_id
    assert receipt["artist_id"] == artist.id
    assert receipt["room_id"] == room.id
    db.expire_all()
    assert db.query(Appointment).filter(Appointment.id == appointment_id).first() is None

    again = client.delete(f"{URL}/{appointment_id}", headers=admin_headers)
    assert again.status_code == 404


def test_status_can_be_set_directly(client, admin_headers, make_artist, make_room, make_appointment):
    appointment = make_appointment(make_artist(), make_room(), local(10, 0))

    response = client.put(
        f"{URL}/{appointment.id}/status", json={"status": "in_progress"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "in_progress"

    response = client.put(
        f"{URL}/{appointment.id}/status", json={"status": "unknown"}, headers=admin_headers
    )
    assert response.status_code == 400


def test_booking_with_phone_and_name_records_customer(
    client, admin_headers, make_artist, make_room, db
):
    payload = booking(
        make_artist(),
        make_room(),
        10,
        customer_phone="333 123 4567",
        customer_name="Mario De Rossi",
    )

    response = client.post(URL, json=payload, headers=admin_headers)

    assert response.status_code == 201
    assert response.json()["appointment"]["customer_phone"] == "3331234567"
    customer = db.query(Customer).filter(Customer.phone == "3331234567").one()
    assert customer.first_name == "Mario"
    assert customer.last_name == "De Rossi"


def test_list_filters_by_artist_and_status(
    client, admin_headers, make_artist, make_room, make_appointment
):
    luca, giulia = make_artist("Luca"), make_artist("Giulia")
    room = make_room()
    kept = make_appointment(luca, room, local(10, 0))
    make_appointment(luca, room, local(12, 0), status=AppointmentStatus.CANCELLED)
    make_appointment(giulia, room, local(14, 0))

    response = client.get(
        URL, params={"artist_id": luca.id, "status": "confirmed"}, headers=admin_headers
    )

    assert response.status_code == 200
    assert [a["id"] for a in response.json()["appuntamenti"]] == [kept.id]


def test_list_filters_by_local_date(client, admin_headers, make_artist, make_room, make_appointment):
    artist, room = make_artist(), make_room()
    today = make_appointment(artist, room, local(10, 0))
    make_appointment(artist, room, local(10, 0, day=(2030, 3, 12)))

    response = client.get(
        URL, params={"date_from": "2030-03-11", "date_to": "2030-03-11"}, headers=admin_headers
    )

    assert [a["id"] for a in response.json()["appuntamenti"]] == [today.id]


def test_dry_run_reports_conflicts_without_writing(
    client, admin_headers, make_artist, make_room, make_appointment, db
):
    room = make_room(no_overbooking=True)
    artist = make_artist()
    make_appointment(artist, room, local(10, 0))

    response = client.post(
        f"{URL}/verifica", json=booking(artist, room, 10, 30), headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["blocking"] is True
    assert len(response.json()["conflicts"]) == 1
    assert db.query(Appointment).count() == 1


def test_availability_grid(client, admin_headers, make_artist, make_room, make_appointment):
    room = make_room(no_overbooking=True)
    artist = make_artist()
    make_appointment(artist, room, local(10, 0))

    response = client.get(
        "/api/admin/disponibilita",
        params={
            "artist_id": artist.id,
            "room_id": room.id,
            "date": "2030-03-11",
            "duration_minutes": 60,
        },
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    slots = {s["local_time"]: s for s in body["slots"]}
    # 09:00 .. 20:30 every half hour
    assert body["total_slots"] == 24
    assert slots["09:00"]["available"] is True
    assert slots["09:30"]["available"] is False
    assert slots["10:00"]["available"] is False
    assert slots["10:30"]["available"] is False
    assert slots["11:00"]["available"] is True
    assert body["available_slots"] == 21


def test_admin_routes_require_token(client):
    assert client.get(URL).status_code == 401
    assert client.get(URL, headers={"Authorization": "Bearer not-a-token"}).status_code == 401


@pytest.mark.parametrize(
    "params", [{"duration_minutes": 10**12}, {"duration_minutes": 60, "slot_minutes": 10**12}]
)
def test_availability_rejects_oversized_windows(
    client, admin_headers, make_artist, make_room, params
):
    response = client.get(
        "/api/admin/disponibilita",
        params={
            "artist_id": make_artist().id,
            "room_id": make_room().id,
            "date": "2030-03-11",
            **params,
        },
        headers=admin_headers,
    )

    assert response.status_code == 400
