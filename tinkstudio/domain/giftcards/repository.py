"""Gift card repository - Database operations for gift cards"""

from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from ...models import GiftCard, GiftCardStatus
from ...shared.datetime_utils import utcnow


class GiftCardRepository:
    """Repository for gift card database operations"""

    @staticmethod
    def get_by_id(db: Session, card_id: str) -> Optional[GiftCard]:
        return db.query(GiftCard).filter(GiftCard.id == card_id).first()

    @staticmethod
    def get_by_code(db: Session, code: str) -> Optional[GiftCard]:
        return db.query(GiftCard).filter(GiftCard.code == code).first()

    @staticmethod
    def get_by_claim_token(db: Session, token: str, lock: bool = False) -> Optional[GiftCard]:
        """Card holding this token, live or consumed; ``lock`` takes SELECT ... FOR UPDATE"""
        query = db.query(GiftCard).filter(
            or_(GiftCard.claim_token == token, GiftCard.used_claim_token == token)
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def code_exists(db: Session, code: str) -> bool:
        return db.query(GiftCard.id).filter(GiftCard.code == code).first() is not None

    @staticmethod
    def list_cards(db: Session, status: Optional[GiftCardStatus] = None) -> list[GiftCard]:
        query = db.query(GiftCard)
        if status:
            query = query.filter(GiftCard.status == status)
        return query.order_by(GiftCard.created_at.desc()).all()

    @staticmethod
    def latest_by_phone(db: Session, phone: str) -> Optional[GiftCard]:
        return (
            db.query(GiftCard)
            .filter(GiftCard.phone == phone)
            .order_by(GiftCard.created_at.desc())
            .first()
        )

    @staticmethod
    def mark_used(db: Session, code: str) -> int:
        """Conditional transition active -> used; returns the number of rows changed"""
        now = utcnow()
        result = db.execute(
            update(GiftCard)
            .where(GiftCard.code == code, GiftCard.status == GiftCardStatus.ACTIVE)
            .values(status=GiftCardStatus.USED, used_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def add(db: Session, card: GiftCard) -> GiftCard:
        db.add(card)
        db.flush()
        return card

    @staticmethod
    def delete(db: Session, card: GiftCard) -> None:
        db.delete(card)
        db.flush()
