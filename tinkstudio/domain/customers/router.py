"""Customers router - admin customer directory"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from .schemas import CustomerUpdate
from .service import CustomerService

router = APIRouter(
    prefix="/api/admin/customers", tags=["Customers"], dependencies=[Depends(get_current_admin)]
)


def get_customer_service(db: Session = Depends(get_db)) -> CustomerService:
    """Dependency injection for CustomerService"""
    return CustomerService(db)


@router.get("")
async def list_customers(
    response: Response,
    search: Optional[str] = Query(None),
    service: CustomerService = Depends(get_customer_service),
):
    # Fresh data after admin edits
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    return {"customers": service.list_customers(search)}


@router.put("/{phone}")
async def update_customer(
    phone: str, data: CustomerUpdate, service: CustomerService = Depends(get_customer_service)
):
    customer = service.update_customer(phone, data)
    return {
        "success": True,
        "message": "Dati cliente aggiornati",
        "updated_gift_cards": customer.pop("updated_gift_cards"),
        "customer": customer,
    }


@router.get("/{phone}/consensi")
async def get_customer_consents(
    phone: str, service: CustomerService = Depends(get_customer_service)
):
    consents = service.get_consents(phone)
    return {"phone": phone, "consensi": consents, "total": len(consents)}
