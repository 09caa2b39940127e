"""
Customer service - identity reconciliation by phone number.

Every flow that learns something about a person (gift-card claim, walk-in
sale, consent form, appointment booking) goes through ``upsert_customer`` so
the same phone always resolves to a single customer row.
"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import NotFound, ValidationFailed
from ...models import Customer, GiftCardStatus
from ...shared.datetime_utils import isoformat_utc, utcnow
from .repository import CustomerRepository
from .schemas import CustomerUpdate

logger = logging.getLogger(__name__)


def split_full_name(full_name: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """'Mario De Rossi' -> ('Mario', 'De Rossi')"""
    if not full_name or not full_name.strip():
        return None, None
    parts = full_name.strip().split(" ", 1)
    return parts[0], (parts[1].strip() if len(parts) > 1 else None)


class CustomerService:
    """Service layer for customers"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CustomerRepository()

    def upsert_customer(
        self,
        phone: str,
        first_name: Optional[str],
        last_name: Optional[str],
        email: Optional[str] = None,
        birth_date: Optional[date] = None,
        birth_place: Optional[str] = None,
        fiscal_code: Optional[str] = None,
        address: Optional[str] = None,
        city: Optional[str] = None,
    ) -> tuple[Customer, bool]:
        """Merge-by-phone; runs inside the caller's transaction"""
        customer, created = self.repo.upsert(
            self.db,
            phone,
            first_name,
            last_name,
            email=email,
            birth_date=birth_date,
            birth_place=birth_place,
            fiscal_code=fiscal_code,
            address=address,
            city=city,
        )
        logger.info(f"👤 Customer {'created' if created else 'merged'}: {phone}")
        return customer, created

    def list_customers(self, search: Optional[str] = None) -> list[dict]:
        """Customers with their gift-card aggregates, most recently active first"""
        now = utcnow()
        rows: dict[str, dict] = {}

        for customer in self.repo.list_customers(self.db, search):
            rows[customer.phone] = self._customer_row(customer)

        for card in self.repo.gift_cards_with_holder(self.db):
            if card.status == GiftCardStatus.DRAFT:
                continue
            row = rows.get(card.phone)
            if row is None:
                if search and not self._card_matches(card, search):
                    continue
                row = rows[card.phone] = {
                    "id": None,
                    "phone": card.phone,
                    "first_name": card.first_name,
                    "last_name": card.last_name,
                    "email": card.email,
                    "birth_date": card.birth_date.isoformat() if card.birth_date else None,
                    "birth_place": None,
                    "fiscal_code": None,
                    "address": None,
                    "city": None,
                    "total_cards": 0,
                    "active_cards": 0,
                    "used_cards": 0,
                    "expired_cards": 0,
                    "total_amount": 0.0,
                    "_last_activity": None,
                }

            row["total_cards"] += 1
            row["total_amount"] += float(card.amount)
            if card.status == GiftCardStatus.USED:
                row["used_cards"] += 1
            elif card.status == GiftCardStatus.EXPIRED or card.is_past_expiry(now):
                row["expired_cards"] += 1
            elif card.status == GiftCardStatus.ACTIVE:
                row["active_cards"] += 1

            activity = card.claimed_at or card.created_at
            if row["_last_activity"] is None or activity > row["_last_activity"]:
                row["_last_activity"] = activity

        customers = sorted(
            rows.values(),
            key=lambda r: r["_last_activity"] or datetime.min,
            reverse=True,
        )
        for row in customers:
            row["total_amount"] = round(row["total_amount"], 2)
            row["last_activity"] = isoformat_utc(row.pop("_last_activity"))
        return customers

    def update_customer(self, phone: str, data: CustomerUpdate) -> dict:
        """
        Admin edit by phone. Names are required; other fields are merged.
        Holder fields on every gift card with this phone are kept in sync.
        """
        missing = []
        if not data.first_name:
            missing.append("Il nome è obbligatorio")
        if not data.last_name:
            missing.append("Il cognome è obbligatorio")
        if missing:
            raise ValidationFailed("Nome e cognome sono obbligatori", missing)

        customer = self.repo.get_by_phone(self.db, phone)
        cards = self.repo.gift_cards_by_phone(self.db, phone)
        if customer is None and not cards:
            raise NotFound("Cliente non trovato")

        try:
            if customer is not None:
                customer, _ = self.upsert_customer(
                    phone,
                    data.first_name,
                    data.last_name,
                    email=data.email,
                    birth_date=data.birth_date,
                    birth_place=data.birth_place,
                    fiscal_code=data.fiscal_code,
                    address=data.address,
                    city=data.city,
                )

            for card in cards:
                card.first_name = data.first_name
                card.last_name = data.last_name
                if data.email:
                    card.email = data.email
                if data.birth_date:
                    card.birth_date = data.birth_date

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"👤 Customer {phone} updated by admin ({len(cards)} gift card(s) synced)")
        return {
            "phone": phone,
            "first_name": data.first_name,
            "last_name": data.last_name,
            "email": customer.email if customer else data.email,
            "updated_gift_cards": len(cards),
        }

    def get_consents(self, phone: str) -> list[dict]:
        return [
            {
                "id": consent.id,
                "type": consent.type.value,
                "submitted_at": isoformat_utc(consent.submitted_at),
                "gift_card_id": consent.gift_card_id,
                "first_name": (consent.payload or {}).get("firstName"),
                "last_name": (consent.payload or {}).get("lastName"),
            }
            for consent in self.repo.consents_by_phone(self.db, phone)
        ]

    @staticmethod
    def _customer_row(customer: Customer) -> dict:
        return {
            "id": customer.id,
            "phone": customer.phone,
            "first_name": customer.first_name,
            "last_name": customer.last_name,
            "email": customer.email,
            "birth_date": customer.birth_date.isoformat() if customer.birth_date else None,
            "birth_place": customer.birth_place,
            "fiscal_code": customer.fiscal_code,
            "address": customer.address,
            "city": customer.city,
            "total_cards": 0,
            "active_cards": 0,
            "used_cards": 0,
            "expired_cards": 0,
            "total_amount": 0.0,
            "_last_activity": customer.updated_at,
        }

    @staticmethod
    def _card_matches(card, search: str) -> bool:
        needle = search.strip().lower()
        haystack = [card.first_name, card.last_name, card.email, card.phone]
        return any(needle in value.lower() for value in haystack if value)
