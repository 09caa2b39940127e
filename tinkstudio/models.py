import enum
import uuid
from datetime import datetime, timedelta

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base
from .shared.datetime_utils import utcnow


def generate_uuid():
    """Generate a unique identifier for rows and claim tokens"""
    return str(uuid.uuid4())


class AppointmentStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"


class GiftCardStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class ConsentType(str, enum.Enum):
    TATUAGGIO = "tatuaggio"
    PIERCING = "piercing"
    TRUCCO_PERMANENTE = "trucco_permanente"


def _enum_column(enum_cls, name):
    # Stored as plain strings guarded by a CHECK constraint
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class Artist(Base):
    __tablename__ = "tatuatori"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(120), nullable=False)
    active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    appointments = relationship("Appointment", back_populates="artist")


class Room(Base):
    __tablename__ = "stanze"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(120), nullable=False)
    # When set, any overlapping appointment in this room is a hard block
    no_overbooking = Column(Boolean, default=False, nullable=False, index=True)
    active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    appointments = relationship("Appointment", back_populates="room")


class Appointment(Base):
    __tablename__ = "appuntamenti"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    artist_id = Column(String(36), ForeignKey("tatuatori.id"), nullable=False, index=True)
    room_id = Column(String(36), ForeignKey("stanze.id"), nullable=False, index=True)
    customer_phone = Column(String(30), nullable=True, index=True)
    customer_name = Column(String(200), nullable=True)
    starts_at = Column(DateTime, nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    # Always starts_at + duration_minutes, kept in sync by set_window()
    ends_at = Column(DateTime, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    status = Column(
        _enum_column(AppointmentStatus, "appointment_status"),
        default=AppointmentStatus.CONFIRMED,
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    artist = relationship("Artist", back_populates="appointments")
    room = relationship("Room", back_populates="appointments")

    def set_window(self, starts_at: datetime, duration_minutes: int) -> None:
        self.starts_at = starts_at
        self.duration_minutes = duration_minutes
        self.ends_at = starts_at + timedelta(minutes=duration_minutes)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    phone = Column(String(30), unique=True, nullable=False, index=True)
    first_name = Column(String(120), nullable=True)
    last_name = Column(String(120), nullable=True)
    email = Column(String(255), nullable=True)
    birth_date = Column(Date, nullable=True)
    birth_place = Column(String(120), nullable=True)
    fiscal_code = Column(String(16), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(120), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    gift_cards = relationship("GiftCard", back_populates="customer", passive_deletes=True)
    consents = relationship("Consent", back_populates="customer", passive_deletes=True)


class GiftCard(Base):
    __tablename__ = "gift_cards"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    status = Column(
        _enum_column(GiftCardStatus, "gift_card_status"),
        default=GiftCardStatus.DRAFT,
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")
    expires_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    # Single-use claim credential, cleared once the card is claimed
    claim_token = Column(String(36), unique=True, nullable=True, index=True)
    claim_token_expires_at = Column(DateTime, nullable=True)
    # The consumed token, so a replayed claim is told the card is taken
    used_claim_token = Column(String(36), unique=True, nullable=True)
    claimed_at = Column(DateTime, nullable=True)
    claimed_by_customer_id = Column(
        String(36), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )
    # Assigned only on activation
    code = Column(String(16), unique=True, nullable=True, index=True)
    first_name = Column(String(120), nullable=True)
    last_name = Column(String(120), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True, index=True)
    birth_date = Column(Date, nullable=True)
    dedication = Column(Text, nullable=True)
    consents = Column(JSON, nullable=True)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    customer = relationship("Customer", back_populates="gift_cards")

    def is_past_expiry(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now


class Consent(Base):
    __tablename__ = "consensi"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    type = Column(_enum_column(ConsentType, "consent_type"), nullable=False, index=True)
    phone = Column(String(30), nullable=True, index=True)
    # Full form submission, schema-less
    payload = Column(JSON, nullable=False)
    submitted_at = Column(DateTime, default=utcnow, nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    gift_card_id = Column(String(36), ForeignKey("gift_cards.id", ondelete="SET NULL"), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    customer = relationship("Customer", back_populates="consents")
    gift_card = relationship("GiftCard")


Index("idx_appuntamenti_room_window", Appointment.room_id, Appointment.starts_at, Appointment.ends_at)
Index("idx_appuntamenti_artist_window", Appointment.artist_id, Appointment.starts_at, Appointment.ends_at)
