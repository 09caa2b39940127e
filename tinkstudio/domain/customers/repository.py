"""Customer repository - Database operations for customers"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ...models import Consent, Customer, GiftCard, generate_uuid
from ...shared.datetime_utils import utcnow

# Fields merged with COALESCE semantics; names are always overwritten
MERGED_FIELDS = ("email", "birth_date", "birth_place", "fiscal_code", "address", "city")


def _dialect_insert(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Customer upsert is not supported on {dialect}")


class CustomerRepository:
    """Repository for customer database operations"""

    @staticmethod
    def get_by_phone(db: Session, phone: str) -> Optional[Customer]:
        return db.query(Customer).filter(Customer.phone == phone).first()

    @staticmethod
    def upsert(
        db: Session,
        phone: str,
        first_name: Optional[str],
        last_name: Optional[str],
        **fields,
    ) -> tuple[Customer, bool]:
        """
        Insert or merge a customer keyed by phone in a single statement.

        On conflict the names are replaced by the new values while every other
        field keeps its current value unless a new non-null one is supplied.
        Does not commit; the caller owns the transaction.

        Returns:
            (customer, created)
        """
        unknown = set(fields) - set(MERGED_FIELDS)
        if unknown:
            raise TypeError(f"Unknown customer fields: {sorted(unknown)}")

        existed = db.query(Customer.id).filter(Customer.phone == phone).first() is not None

        insert = _dialect_insert(db)
        now = utcnow()
        values = {
            "id": generate_uuid(),
            "phone": phone,
            "first_name": first_name,
            "last_name": last_name,
            **{name: fields.get(name) for name in MERGED_FIELDS},
            "created_at": now,
            "updated_at": now,
        }
        stmt = insert(Customer.__table__).values(**values)
        excluded = stmt.excluded
        stmt = stmt.on_conflict_do_update(
            index_elements=[Customer.__table__.c.phone],
            set_={
                "first_name": excluded.first_name,
                "last_name": excluded.last_name,
                **{
                    name: func.coalesce(excluded[name], Customer.__table__.c[name])
                    for name in MERGED_FIELDS
                },
                "updated_at": now,
            },
        )
        db.execute(stmt)

        customer = (
            db.query(Customer).populate_existing().filter(Customer.phone == phone).one()
        )
        return customer, not existed

    @staticmethod
    def list_customers(db: Session, search: Optional[str] = None) -> list[Customer]:
        query = db.query(Customer)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(Customer.first_name).like(pattern),
                    func.lower(Customer.last_name).like(pattern),
                    func.lower(Customer.email).like(pattern),
                    Customer.phone.like(pattern),
                )
            )
        return query.all()

    @staticmethod
    def gift_cards_by_phone(db: Session, phone: str) -> list[GiftCard]:
        return db.query(GiftCard).filter(GiftCard.phone == phone).all()

    @staticmethod
    def gift_cards_with_holder(db: Session) -> list[GiftCard]:
        """Claimed cards carrying holder identity, used for customer aggregates"""
        return (
            db.query(GiftCard)
            .filter(
                GiftCard.phone.isnot(None),
                GiftCard.first_name.isnot(None),
                GiftCard.last_name.isnot(None),
            )
            .all()
        )

    @staticmethod
    def consents_by_phone(db: Session, phone: str) -> list[Consent]:
        return (
            db.query(Consent)
            .filter(Consent.phone == phone)
            .order_by(Consent.submitted_at.desc())
            .all()
        )
