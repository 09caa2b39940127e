from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from tinkstudio.auth import create_access_token
from tinkstudio.database import create_db_engine, create_session_factory, init_schema
from tinkstudio.main import create_app
from tinkstudio.models import Appointment, AppointmentStatus, Artist, GiftCard, GiftCardStatus, Room
from tinkstudio.rate_limiter import claim_rate_limit, reset_rate_limits
from tinkstudio.shared.datetime_utils import to_storage, utcnow

BOOKING_DAY = (2030, 3, 11)


def local(hour: int, minute: int = 0, day: tuple = BOOKING_DAY) -> datetime:
    """Naive studio-local datetime on the booking day"""
    return datetime(*day, hour, minute)


def local_iso(hour: int, minute: int = 0, day: tuple = BOOKING_DAY) -> str:
    return local(hour, minute, day).isoformat()


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://", slow_query_logging=False)
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def app(session_factory):
    app = create_app(session_factory)
    app.dependency_overrides[claim_rate_limit] = lambda: None
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_access_token('admin')}"}


@pytest.fixture(autouse=True)
def _clear_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def make_artist(db):
    def _make(name="Luca", active=True):
        artist = Artist(name=name, active=active)
        db.add(artist)
        db.commit()
        return artist

    return _make


@pytest.fixture
def make_room(db):
    def _make(name="Sala 1", no_overbooking=False, active=True):
        room = Room(name=name, no_overbooking=no_overbooking, active=active)
        db.add(room)
        db.commit()
        return room

    return _make


@pytest.fixture
def make_appointment(db):
    def _make(artist, room, starts_at_local, minutes=60, status=AppointmentStatus.CONFIRMED):
        appointment = Appointment(artist_id=artist.id, room_id=room.id, status=status)
        appointment.set_window(to_storage(starts_at_local), minutes)
        db.add(appointment)
        db.commit()
        return appointment

    return _make


@pytest.fixture
def make_gift_card(db):
    def _make(status=GiftCardStatus.DRAFT, amount=50, **fields):
        now = utcnow()
        values = {
            "status": status,
            "amount": amount,
            "currency": "EUR",
            "expires_at": now + timedelta(days=365),
        }
        values.update(fields)
        card = GiftCard(**values)
        db.add(card)
        db.commit()
        return card

    return _make
