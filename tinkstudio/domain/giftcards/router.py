"""Gift card routers - admin management and the public claim/verify pages"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...rate_limiter import claim_rate_limit
from .schemas import ClaimRequest, CompleteCardCreate, DraftCreate, MarkUsedRequest
from .service import GiftCardService, card_to_dict

admin_router = APIRouter(
    prefix="/api/admin/gift-cards", tags=["Gift Cards"], dependencies=[Depends(get_current_admin)]
)
public_router = APIRouter(prefix="/api/gift-cards", tags=["Gift Cards (public)"])


def get_gift_card_service(db: Session = Depends(get_db)) -> GiftCardService:
    """Dependency injection for GiftCardService"""
    return GiftCardService(db)


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.get("")
async def list_gift_cards(
    response: Response, service: GiftCardService = Depends(get_gift_card_service)
):
    # Fresh data after customer edits
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    return {"gift_cards": [card_to_dict(c) for c in service.list_cards()]}


@admin_router.post("/drafts", status_code=201)
async def create_draft(data: DraftCreate, service: GiftCardService = Depends(get_gift_card_service)):
    return service.create_draft(data)


@admin_router.get("/drafts")
async def list_drafts(service: GiftCardService = Depends(get_gift_card_service)):
    return {"drafts": [card_to_dict(c) for c in service.list_drafts()]}


@admin_router.get("/drafts/{card_id}")
async def get_draft(card_id: str, service: GiftCardService = Depends(get_gift_card_service)):
    return service.get_draft(card_id)


@admin_router.get("/stats")
async def get_stats(service: GiftCardService = Depends(get_gift_card_service)):
    return service.get_stats()


@admin_router.post("/complete", status_code=201)
async def create_complete_card(
    data: CompleteCardCreate, service: GiftCardService = Depends(get_gift_card_service)
):
    """Create an active card for a walk-in customer"""
    return service.create_complete(data)


@admin_router.post("/mark-used")
async def mark_used(data: MarkUsedRequest, service: GiftCardService = Depends(get_gift_card_service)):
    card = service.mark_used(data.code)
    return {"success": True, "message": "Gift card segnata come utilizzata", "gift_card": card}


@admin_router.put("/{card_id}/renew")
async def renew_card(card_id: str, service: GiftCardService = Depends(get_gift_card_service)):
    return service.renew(card_id)


@admin_router.delete("/{card_id}")
async def delete_card(card_id: str, service: GiftCardService = Depends(get_gift_card_service)):
    receipt = service.delete_card(card_id)
    return {"success": True, "message": "Gift card eliminata", "deleted_card": receipt}


# ============================================================================
# PUBLIC
# ============================================================================


@public_router.get("/claim/{token}", dependencies=[Depends(claim_rate_limit)])
async def get_claim(token: str, service: GiftCardService = Depends(get_gift_card_service)):
    return service.get_claim_summary(token)


@public_router.post("/claim/{token}/finalize", dependencies=[Depends(claim_rate_limit)])
async def finalize_claim(
    token: str, data: ClaimRequest, service: GiftCardService = Depends(get_gift_card_service)
):
    return service.claim(token, data)


@public_router.get("/verify/{code}")
async def verify_card(code: str, service: GiftCardService = Depends(get_gift_card_service)):
    return service.verify(code)


@public_router.get("/landing/{card_id}")
async def get_landing(card_id: str, service: GiftCardService = Depends(get_gift_card_service)):
    return service.get_landing(card_id)
