from tinkstudio.models import AppointmentStatus, Artist

from .conftest import local

ARTISTS_URL = "/api/admin/tatuatori"
ROOMS_URL = "/api/admin/stanze"


def test_create_and_list_artists(client, admin_headers):
    created = client.post(ARTISTS_URL, json={"name": "  Luca  "}, headers=admin_headers)

    assert created.status_code == 201
    assert created.json()["name"] == "Luca"
    assert created.json()["active"] is True

    listing = client.get(ARTISTS_URL, headers=admin_headers).json()["tatuatori"]
    assert [a["name"] for a in listing] == ["Luca"]


def test_artist_name_is_required(client, admin_headers):
    response = client.post(ARTISTS_URL, json={"name": "   "}, headers=admin_headers)
    assert response.status_code == 400


def test_inactive_resources_are_hidden_by_default(client, admin_headers, make_artist, make_room):
    make_artist("Luca")
    make_artist("Giulia", active=False)
    make_room("Sala 1", active=False)

    active = client.get(ARTISTS_URL, headers=admin_headers).json()["tatuatori"]
    everyone = client.get(
        ARTISTS_URL, params={"include_inactive": True}, headers=admin_headers
    ).json()["tatuatori"]

    assert [a["name"] for a in active] == ["Luca"]
    assert len(everyone) == 2
    assert client.get(ROOMS_URL, headers=admin_headers).json()["stanze"] == []


def test_update_room_policy(client, admin_headers, make_room):
    room = make_room("Sala 1", no_overbooking=False)

    response = client.put(
        f"{ROOMS_URL}/{room.id}", json={"no_overbooking": True}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["no_overbooking"] is True
    assert response.json()["name"] == "Sala 1"


def test_update_unknown_artist(client, admin_headers):
    response = client.put(f"{ARTISTS_URL}/missing", json={"name": "X"}, headers=admin_headers)
    assert response.status_code == 404


def test_delete_unused_artist(client, admin_headers, make_artist, make_room, make_appointment, db):
    artist = make_artist()
    artist_id = artist.id
    # cancelled history does not keep the artist alive
    make_appointment(artist, make_room(), local(10, 0), status=AppointmentStatus.CANCELLED)

    response = client.delete(f"{ARTISTS_URL}/{artist_id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["deleted"] is True
    db.expire_all()
    assert db.query(Artist).filter(Artist.id == artist_id).first() is None


def test_delete_referenced_room_deactivates_it(
    client, admin_headers, make_artist, make_room, make_appointment
):
    room = make_room()
    make_appointment(make_artist(), room, local(10, 0))

    response = client.delete(f"{ROOMS_URL}/{room.id}", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["deleted"] is False
    assert body["deactivated"] is True
    assert body["open_appointments"] == 1

    rooms = client.get(ROOMS_URL, params={"include_inactive": True}, headers=admin_headers)
    assert rooms.json()["stanze"][0]["active"] is False
