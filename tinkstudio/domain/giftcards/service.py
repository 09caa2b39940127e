"""
Gift card lifecycle.

    draft ──claim──> active ──mark used──> used
      │                 │
      └──(status literal set to 'expired', renew moves it back)──┘

A card leaves draft exactly once: the claim (or a walk-in sale created
directly as active) captures the holder, upserts the customer and assigns
the redemption code in the same transaction. Expiry by date is only ever
computed at read time; nothing rewrites the status when ``expires_at``
passes.
"""

import logging
import random
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ...config import CLAIM_TOKEN_TTL_MINUTES, GIFT_CARD_VALIDITY_MONTHS, PUBLIC_BASE_URL
from ...errors import InvalidState, NotFound, TokenExpired, ValidationFailed
from ...models import GiftCard, GiftCardStatus, generate_uuid
from ...shared.datetime_utils import add_months, isoformat_utc, utcnow
from ..customers.service import CustomerService
from .codes import GiftCardCodeGenerator
from .repository import GiftCardRepository
from .schemas import ClaimRequest, CompleteCardCreate, DraftCreate

logger = logging.getLogger(__name__)

DELETABLE_STATUSES = (GiftCardStatus.DRAFT, GiftCardStatus.ACTIVE, GiftCardStatus.USED)


def claim_url(token: str) -> str:
    return f"{PUBLIC_BASE_URL}/gift/claim/{token}"


def landing_url(card_id: str) -> str:
    return f"{PUBLIC_BASE_URL}/gift/landing/{card_id}"


def verify_url(code: str) -> str:
    return f"{PUBLIC_BASE_URL}/verify?code={code}"


def _amount(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def card_to_dict(card: GiftCard) -> dict:
    """Admin view of a card, holder data included"""
    full_name = (
        f"{card.first_name} {card.last_name}" if card.first_name and card.last_name else None
    )
    return {
        "id": card.id,
        "status": card.status.value,
        "amount": _amount(card.amount),
        "currency": card.currency,
        "code": card.code,
        "claim_token": card.claim_token,
        "customer_name": full_name,
        "first_name": card.first_name,
        "last_name": card.last_name,
        "email": card.email,
        "phone": card.phone,
        "birth_date": card.birth_date.isoformat() if card.birth_date else None,
        "dedication": card.dedication,
        "notes": card.notes,
        "created_at": isoformat_utc(card.created_at),
        "claimed_at": isoformat_utc(card.claimed_at),
        "used_at": isoformat_utc(card.used_at),
        "expires_at": isoformat_utc(card.expires_at),
        "claim_token_expires_at": isoformat_utc(card.claim_token_expires_at),
    }


class GiftCardService:
    """Service layer for the gift card lifecycle"""

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.repo = GiftCardRepository()
        self.rng = rng

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def create_draft(self, data: DraftCreate) -> dict:
        """Create a draft card with a fresh claim token"""
        now = utcnow()
        card = GiftCard(
            status=GiftCardStatus.DRAFT,
            amount=data.amount,
            currency=data.currency,
            expires_at=data.expires_at or add_months(now, GIFT_CARD_VALIDITY_MONTHS),
            notes=data.notes,
            claim_token=generate_uuid(),
            claim_token_expires_at=now + timedelta(minutes=CLAIM_TOKEN_TTL_MINUTES),
        )
        try:
            self.repo.add(self.db, card)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🎁 Gift card draft created: {card.id} ({card.amount} {card.currency})")
        return {
            "draft_id": card.id,
            "amount": _amount(card.amount),
            "currency": card.currency,
            "claim_token": card.claim_token,
            "claim_url": claim_url(card.claim_token),
            "expires_at": isoformat_utc(card.expires_at),
            "claim_token_expires_at": isoformat_utc(card.claim_token_expires_at),
        }

    def create_complete(self, data: CompleteCardCreate) -> dict:
        """
        Walk-in sale: an active card with a code, bypassing the claim token.
        Customer upsert and card insert commit together.
        """
        missing = data.missing_identity()
        if missing:
            raise ValidationFailed("Nome, cognome e telefono sono obbligatori", missing)

        now = utcnow()
        try:
            customer, _ = CustomerService(self.db).upsert_customer(
                data.phone, data.first_name, data.last_name, email=data.email, birth_date=data.birth_date
            )
            card = GiftCard(
                status=GiftCardStatus.ACTIVE,
                amount=data.amount,
                currency=data.currency,
                expires_at=data.expires_at or add_months(now, GIFT_CARD_VALIDITY_MONTHS),
                notes=data.notes,
                claimed_at=now,
                claimed_by_customer_id=customer.id,
                code=self._code_generator().generate(),
                first_name=data.first_name,
                last_name=data.last_name,
                email=data.email,
                phone=data.phone,
                birth_date=data.birth_date,
            )
            self.repo.add(self.db, card)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🎁 Gift card sold at the counter: {card.id} code={card.code} phone={card.phone}")
        return {
            "gift_card_id": card.id,
            "status": card.status.value,
            "amount": _amount(card.amount),
            "currency": card.currency,
            "code": card.code,
            "expires_at": isoformat_utc(card.expires_at),
            "landing_url": landing_url(card.id),
            "verify_url": verify_url(card.code),
            "customer": {
                "id": card.claimed_by_customer_id,
                "first_name": card.first_name,
                "last_name": card.last_name,
                "phone": card.phone,
            },
        }

    def list_cards(self) -> list[GiftCard]:
        return self.repo.list_cards(self.db)

    def list_drafts(self) -> list[GiftCard]:
        return self.repo.list_cards(self.db, GiftCardStatus.DRAFT)

    def get_card(self, card_id: str) -> GiftCard:
        card = self.repo.get_by_id(self.db, card_id)
        if not card:
            raise NotFound("Gift card non trovata")
        return card

    def get_draft(self, card_id: str) -> dict:
        card = self.get_card(card_id)
        return {
            "id": card.id,
            "status": card.status.value,
            "amount": _amount(card.amount),
            "currency": card.currency,
            "expires_at": isoformat_utc(card.expires_at),
            "claim_token_expires_at": isoformat_utc(card.claim_token_expires_at),
            "claim_token_used": card.claimed_at is not None,
        }

    def get_stats(self) -> dict:
        """Counts per status literal plus the date-derived expiry count"""
        now = utcnow()
        cards = self.repo.list_cards(self.db)

        def total(statuses) -> float:
            return round(sum(float(c.amount) for c in cards if c.status in statuses), 2)

        return {
            "total": len(cards),
            "draft": sum(1 for c in cards if c.status == GiftCardStatus.DRAFT),
            "active": sum(1 for c in cards if c.status == GiftCardStatus.ACTIVE),
            "used": sum(1 for c in cards if c.status == GiftCardStatus.USED),
            "expired": sum(1 for c in cards if c.status == GiftCardStatus.EXPIRED),
            "expired_by_date": sum(1 for c in cards if c.is_past_expiry(now)),
            "total_revenue": total(DELETABLE_STATUSES),
            "pending_revenue": total((GiftCardStatus.DRAFT,)),
            "used_revenue": total((GiftCardStatus.USED,)),
        }

    def delete_card(self, card_id: str) -> dict:
        card = self.get_card(card_id)
        if card.status not in DELETABLE_STATUSES:
            raise InvalidState(
                "Si possono eliminare solo gift card in bozza, attive o utilizzate",
                current_status=card.status.value,
            )

        receipt = {
            "id": card.id,
            "status": card.status.value,
            "amount": _amount(card.amount),
            "code": card.code,
        }
        try:
            self.repo.delete(self.db, card)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ Gift card deleted: {receipt['id']} ({receipt['status']})")
        return receipt

    def renew(self, card_id: str) -> dict:
        """
        Push expiry to now + the validity window. A card whose status literal
        is 'expired' goes back to active if it was ever claimed, else draft.
        """
        card = self.get_card(card_id)
        previous = card.status
        card.expires_at = add_months(utcnow(), GIFT_CARD_VALIDITY_MONTHS)
        if card.status == GiftCardStatus.EXPIRED:
            card.status = GiftCardStatus.ACTIVE if card.claimed_at else GiftCardStatus.DRAFT
        self.db.commit()
        self.db.refresh(card)

        logger.info(
            f"🔄 Gift card renewed: {card.id} until {isoformat_utc(card.expires_at)} "
            f"({previous.value} -> {card.status.value})"
        )
        return {
            "id": card.id,
            "expires_at": isoformat_utc(card.expires_at),
            "status": card.status.value,
            "message": "Scadenza gift card rinnovata",
        }

    def mark_used(self, code: str) -> dict:
        """Single conditional update active -> used"""
        changed = self.repo.mark_used(self.db, code)
        if not changed:
            self.db.rollback()
            logger.warning(f"⚠️ Mark-used refused for code {code}: no active card")
            raise NotFound("Gift card non trovata o non attiva")
        self.db.commit()

        card = self.repo.get_by_code(self.db, code)
        logger.info(f"✅ Gift card used: {card.id} code={code}")
        return {
            "id": card.id,
            "code": card.code,
            "amount": _amount(card.amount),
            "currency": card.currency,
            "status": card.status.value,
            "holder": {
                "first_name": card.first_name,
                "last_name": card.last_name,
                "email": card.email,
                "phone": card.phone,
            },
            "used_at": isoformat_utc(card.used_at),
        }

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    def get_claim_summary(self, token: str) -> dict:
        card = self.repo.get_by_claim_token(self.db, token)
        self._ensure_claimable(card, utcnow())
        return {
            "amount": _amount(card.amount),
            "currency": card.currency,
            "expires_at": isoformat_utc(card.expires_at),
        }

    def claim(self, token: str, data: ClaimRequest) -> dict:
        """
        Activate a draft card through its claim token.

        The card row is locked for the whole transaction so a concurrent
        claim of the same token waits and then sees a non-draft card.
        """
        try:
            card = self.repo.get_by_claim_token(self.db, token, lock=True)
            now = utcnow()
            self._ensure_claimable(card, now)

            missing = data.missing_identity()
            if missing:
                raise ValidationFailed("Nome, cognome e telefono sono obbligatori", missing)

            customer, _ = CustomerService(self.db).upsert_customer(
                data.phone,
                data.first_name,
                data.last_name,
                email=data.email,
                birth_date=data.birth_date,
            )

            card.code = self._code_generator().generate()
            card.status = GiftCardStatus.ACTIVE
            card.claimed_at = now
            card.claimed_by_customer_id = customer.id
            card.first_name = data.first_name
            card.last_name = data.last_name
            card.email = data.email
            card.phone = data.phone
            card.birth_date = data.birth_date
            card.dedication = data.dedication
            card.consents = data.consents
            card.used_claim_token = card.claim_token
            card.claim_token = None
            card.claim_token_expires_at = None

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🎉 Gift card claimed: {card.id} code={card.code} phone={card.phone}")
        return {
            "id": card.id,
            "status": card.status.value,
            "amount": _amount(card.amount),
            "currency": card.currency,
            "expires_at": isoformat_utc(card.expires_at),
            "code": card.code,
            "first_name": card.first_name,
            "last_name": card.last_name,
            "holder": {
                "first_name": card.first_name,
                "last_name": card.last_name,
                "email": card.email,
                "phone": card.phone,
                "birth_date": card.birth_date.isoformat() if card.birth_date else None,
            },
            "dedication": card.dedication,
            "landing_url": landing_url(card.id),
            "verify_url": verify_url(card.code),
            "qr_code_data": verify_url(card.code),
        }

    def verify(self, code: str) -> dict:
        """
        Public validity check. Never returns holder data.

        Validity follows the status literal; ``expired_by_date`` reports the
        date-derived expiry separately.
        """
        card = self.repo.get_by_code(self.db, code.strip().upper())
        if not card:
            raise NotFound("Gift card non trovata")

        # An unclaimed card reveals nothing beyond its state
        if card.status == GiftCardStatus.DRAFT:
            return {"valid": False, "status": card.status.value, "message": "Gift card non valida"}

        valid = card.status in (GiftCardStatus.ACTIVE, GiftCardStatus.USED)
        return {
            "valid": valid,
            "status": card.status.value,
            "amount": _amount(card.amount),
            "currency": card.currency,
            "expires_at": isoformat_utc(card.expires_at),
            "expired_by_date": card.is_past_expiry(utcnow()),
        }

    def get_landing(self, card_id: str) -> dict:
        card = self.get_card(card_id)
        return {
            "id": card.id,
            "amount": _amount(card.amount),
            "currency": card.currency,
            "code": card.code,
            "status": card.status.value,
            "first_name": card.first_name,
            "last_name": card.last_name,
            "dedication": card.dedication,
            "expires_at": isoformat_utc(card.expires_at),
            "created_at": isoformat_utc(card.created_at),
            "verify_url": verify_url(card.code) if card.code else None,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _code_generator(self) -> GiftCardCodeGenerator:
        return GiftCardCodeGenerator(lambda code: self.repo.code_exists(self.db, code), rng=self.rng)

    @staticmethod
    def _ensure_claimable(card: Optional[GiftCard], now) -> None:
        if card is None:
            raise NotFound("Token non valido")
        if card.status != GiftCardStatus.DRAFT:
            raise InvalidState("Token non valido per il riscatto", current_status=card.status.value)
        if card.claim_token_expires_at and now > card.claim_token_expires_at:
            raise TokenExpired("Token scaduto")
