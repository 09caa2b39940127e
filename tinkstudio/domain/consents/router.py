"""Consent routers - public form submission and admin review"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...models import ConsentType
from ...rate_limiter import client_ip
from .schemas import consent_type_from_slug
from .service import ConsentService

public_router = APIRouter(prefix="/api/consenso", tags=["Consents (public)"])
admin_router = APIRouter(
    prefix="/api/admin/consensi", tags=["Consents"], dependencies=[Depends(get_current_admin)]
)

SUCCESS_MESSAGES = {
    ConsentType.TATUAGGIO: "Consenso per tatuaggio salvato con successo",
    ConsentType.PIERCING: "Consenso per piercing salvato con successo",
    ConsentType.TRUCCO_PERMANENTE: "Consenso per trucco permanente salvato con successo",
}


def get_consent_service(db: Session = Depends(get_db)) -> ConsentService:
    """Dependency injection for ConsentService"""
    return ConsentService(db)


def _submit(consent_type: ConsentType, form: dict, request: Request, service: ConsentService):
    result = service.submit(
        consent_type,
        form,
        ip_address=client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    return JSONResponse(
        status_code=201,
        content={"success": True, "message": SUCCESS_MESSAGES[consent_type], **result},
    )


@public_router.post("/tatuaggio")
async def submit_tattoo_consent(
    request: Request,
    form: dict[str, Any] = Body(...),
    service: ConsentService = Depends(get_consent_service),
):
    return _submit(ConsentType.TATUAGGIO, form, request, service)


@public_router.post("/piercing")
async def submit_piercing_consent(
    request: Request,
    form: dict[str, Any] = Body(...),
    service: ConsentService = Depends(get_consent_service),
):
    return _submit(ConsentType.PIERCING, form, request, service)


@public_router.post("/trucco-permanente")
async def submit_permanent_makeup_consent(
    request: Request,
    form: dict[str, Any] = Body(...),
    service: ConsentService = Depends(get_consent_service),
):
    return _submit(ConsentType.TRUCCO_PERMANENTE, form, request, service)


@admin_router.get("")
async def list_consents(
    type: Optional[str] = Query(None),
    service: ConsentService = Depends(get_consent_service),
):
    consent_type = consent_type_from_slug(type) if type else None
    return service.list_consents(consent_type)


@admin_router.get("/{consent_id}")
async def get_consent(consent_id: str, service: ConsentService = Depends(get_consent_service)):
    return service.get_consent(consent_id)


@admin_router.delete("/{consent_id}")
async def delete_consent(consent_id: str, service: ConsentService = Depends(get_consent_service)):
    receipt = service.delete_consent(consent_id)
    return {"success": True, "message": "Consenso eliminato", "deleted": receipt}
