"""Consent repository - Database operations for consent forms"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Consent, ConsentType


class ConsentRepository:
    """Repository for consent database operations"""

    @staticmethod
    def get_consent(db: Session, consent_id: str) -> Optional[Consent]:
        return db.query(Consent).filter(Consent.id == consent_id).first()

    @staticmethod
    def list_consents(db: Session, consent_type: Optional[ConsentType] = None) -> list[Consent]:
        query = db.query(Consent)
        if consent_type:
            query = query.filter(Consent.type == consent_type)
        return query.order_by(Consent.submitted_at.desc()).all()

    @staticmethod
    def count_by_type(db: Session) -> dict[str, int]:
        rows = db.query(Consent.type, func.count(Consent.id)).group_by(Consent.type).all()
        return {consent_type.value: count for consent_type, count in rows}

    @staticmethod
    def add_consent(db: Session, consent: Consent) -> Consent:
        db.add(consent)
        db.flush()
        return consent

    @staticmethod
    def delete_consent(db: Session, consent: Consent) -> None:
        db.delete(consent)
        db.flush()
