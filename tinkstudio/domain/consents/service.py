"""Consent service - capture of tattoo, piercing and permanent make-up consent forms"""

import logging
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ...errors import NotFound, ValidationFailed
from ...models import Consent, ConsentType
from ...shared.datetime_utils import isoformat_utc, to_storage, utcnow
from ...shared.validators import normalize_phone, validate_email
from ...utils.sanitization import clean_payload
from ..customers.service import CustomerService
from ..giftcards.repository import GiftCardRepository
from .repository import ConsentRepository
from .schemas import BOOLEAN_FIELDS, REQUIRED_FIELDS, as_bool

logger = logging.getLogger(__name__)


def consent_summary(consent: Consent) -> dict:
    payload = consent.payload or {}
    return {
        "id": consent.id,
        "type": consent.type.value,
        "first_name": payload.get("firstName"),
        "last_name": payload.get("lastName"),
        "phone": consent.phone,
        "customer_id": consent.customer_id,
        "gift_card_id": consent.gift_card_id,
        "submitted_at": isoformat_utc(consent.submitted_at),
    }


class ConsentService:
    """Service layer for consent forms"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ConsentRepository()
        self.gift_card_repo = GiftCardRepository()

    def submit(
        self,
        consent_type: ConsentType,
        form: dict[str, Any],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> dict:
        """
        Store a consent form and reconcile its author with the customer list.

        Customer upsert, gift-card linkage and the consent insert commit
        together or not at all.
        """
        payload, errors = self._normalize(consent_type, form)
        if errors:
            logger.warning(f"⚠️ {consent_type.value} consent rejected: {errors}")
            raise ValidationFailed("Campi obbligatori mancanti", errors)

        phone = payload["phone"]
        birth_date = date.fromisoformat(payload["birthDate"])
        try:
            customer, created = CustomerService(self.db).upsert_customer(
                phone,
                payload["firstName"],
                payload["lastName"],
                email=payload.get("email") or None,
                birth_date=birth_date,
                birth_place=payload.get("birthPlace") or None,
                fiscal_code=payload["fiscalCode"],
                address=payload.get("address") or None,
                city=payload.get("city") or None,
            )

            # Most recent card with this phone, if any
            gift_card = self.gift_card_repo.latest_by_phone(self.db, phone)
            if gift_card is not None:
                gift_card.first_name = payload["firstName"]
                gift_card.last_name = payload["lastName"]
                gift_card.email = payload.get("email") or gift_card.email
                gift_card.birth_date = birth_date

            consent = Consent(
                type=consent_type,
                phone=phone,
                payload=payload,
                submitted_at=self._submitted_at(form.get("submittedAt")),
                customer_id=customer.id,
                gift_card_id=gift_card.id if gift_card else None,
                ip_address=ip_address,
                user_agent=(user_agent or "")[:500] or None,
            )
            self.repo.add_consent(self.db, consent)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"📝 {consent_type.value} consent saved: {consent.id} phone={phone} "
            f"({'new' if created else 'existing'} customer"
            + (f", gift card {consent.gift_card_id}" if consent.gift_card_id else "")
            + ")"
        )
        return {
            "id": consent.id,
            "customer_id": consent.customer_id,
            "gift_card_id": consent.gift_card_id,
            "linked_to_existing_customer": not created,
        }

    def list_consents(self, consent_type: Optional[ConsentType] = None) -> dict:
        consents = self.repo.list_consents(self.db, consent_type)
        return {
            "consensi": [consent_summary(c) for c in consents],
            "total": len(consents),
            "by_type": self.repo.count_by_type(self.db),
        }

    def get_consent(self, consent_id: str) -> dict:
        consent = self.repo.get_consent(self.db, consent_id)
        if not consent:
            raise NotFound("Consenso non trovato")
        return {
            **consent_summary(consent),
            "payload": consent.payload,
            "ip_address": consent.ip_address,
            "user_agent": consent.user_agent,
            "created_at": isoformat_utc(consent.created_at),
        }

    def delete_consent(self, consent_id: str) -> dict:
        consent = self.repo.get_consent(self.db, consent_id)
        if not consent:
            raise NotFound("Consenso non trovato")

        receipt = consent_summary(consent)
        try:
            self.repo.delete_consent(self.db, consent)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ Consent deleted: {receipt['id']}")
        return receipt

    @staticmethod
    def _normalize(consent_type: ConsentType, form: dict[str, Any]) -> tuple[dict, list[str]]:
        """Trim and coerce the form; returns the payload and the list of problems"""
        payload = clean_payload(dict(form or {}))
        for name in BOOLEAN_FIELDS:
            if name in payload:
                payload[name] = as_bool(payload[name])
        payload["type"] = consent_type.value

        errors = [
            f"Campo obbligatorio: {name}"
            for name in REQUIRED_FIELDS[consent_type]
            if payload.get(name) in (None, "", False)
        ]

        if payload.get("fiscalCode"):
            payload["fiscalCode"] = str(payload["fiscalCode"]).upper()
            if len(payload["fiscalCode"]) > 16:
                errors.append("Codice fiscale non valido")

        if payload.get("phone"):
            try:
                payload["phone"] = normalize_phone(str(payload["phone"]))
            except ValueError as e:
                errors.append(str(e))

        if payload.get("email"):
            try:
                payload["email"] = validate_email(str(payload["email"]))
            except ValueError as e:
                errors.append(str(e))

        if payload.get("birthDate"):
            try:
                date.fromisoformat(str(payload["birthDate"])[:10])
                payload["birthDate"] = str(payload["birthDate"])[:10]
            except ValueError:
                errors.append("Data di nascita non valida")

        return payload, errors

    @staticmethod
    def _submitted_at(value) -> datetime:
        """Client-reported submission time, or now when absent or unparseable"""
        if isinstance(value, str) and value:
            try:
                return to_storage(datetime.fromisoformat(value.replace("Z", "+00:00")))
            except ValueError:
                logger.debug(f"Ignoring unparseable submittedAt: {value!r}")
        return utcnow()
