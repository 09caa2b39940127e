"""Gift card domain schemas"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ...config import GIFT_CARD_DEFAULT_CURRENCY
from ...shared.datetime_utils import to_storage
from ...shared.validators import blank_to_none, normalize_phone, validate_email
from ...utils.sanitization import clean_text


def _positive_amount(v):
    # JSON booleans are ints to pydantic; a card amount never is one
    if isinstance(v, bool) or v is None or v <= 0:
        raise ValueError("Importo non valido")
    return v


def _currency(v):
    v = blank_to_none(v) or GIFT_CARD_DEFAULT_CURRENCY
    if len(v) != 3 or not v.isalpha():
        raise ValueError("Valuta non valida")
    return v.upper()


class DraftCreate(BaseModel):
    amount: Decimal
    currency: str = GIFT_CARD_DEFAULT_CURRENCY
    expires_at: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def check_amount_type(cls, v):
        if isinstance(v, bool) or not isinstance(v, (int, float, Decimal)):
            raise ValueError("Importo non valido")
        return v

    @field_validator("amount")
    @classmethod
    def check_amount(cls, v):
        return _positive_amount(v)

    @field_validator("currency")
    @classmethod
    def check_currency(cls, v):
        return _currency(v)

    @field_validator("expires_at")
    @classmethod
    def normalize_expiry(cls, v):
        return to_storage(v)

    @field_validator("notes")
    @classmethod
    def sanitize_notes(cls, v):
        return clean_text(v)


class HolderFields(BaseModel):
    """Identity captured when a card is claimed or sold at the counter"""

    # The public forms post camelCase names
    first_name: Optional[str] = Field(None, validation_alias=AliasChoices("first_name", "firstName"))
    last_name: Optional[str] = Field(None, validation_alias=AliasChoices("last_name", "lastName"))
    phone: Optional[str] = None
    email: Optional[str] = None
    birth_date: Optional[date] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v):
        return blank_to_none(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return normalize_phone(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    def missing_identity(self) -> list[str]:
        missing = []
        if not self.first_name:
            missing.append("Il nome è obbligatorio")
        if not self.last_name:
            missing.append("Il cognome è obbligatorio")
        if not self.phone:
            missing.append("Il telefono è obbligatorio")
        return missing


class ClaimRequest(HolderFields):
    dedication: Optional[str] = None
    consents: Optional[dict[str, Any]] = None

    @field_validator("dedication")
    @classmethod
    def sanitize_dedication(cls, v):
        return clean_text(v, max_length=1000)


class CompleteCardCreate(HolderFields, DraftCreate):
    """Walk-in sale: an active card created directly for a known customer"""


class MarkUsedRequest(BaseModel):
    code: str

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v):
        v = (v or "").strip().upper()
        if not v:
            raise ValueError("Codice obbligatorio")
        return v
