"""Studio router - admin endpoints for artists (tatuatori) and rooms (stanze)"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from .schemas import (
    ArtistCreate,
    ArtistResponse,
    ArtistUpdate,
    RoomCreate,
    RoomResponse,
    RoomUpdate,
)
from .service import StudioService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Studio"], dependencies=[Depends(get_current_admin)])


def get_studio_service(db: Session = Depends(get_db)) -> StudioService:
    """Dependency injection for StudioService"""
    return StudioService(db)


# ============================================================================
# ARTISTS
# ============================================================================


@router.get("/tatuatori")
async def get_artists(
    include_inactive: bool = Query(False),
    service: StudioService = Depends(get_studio_service),
):
    artists = service.get_artists(include_inactive)
    return {"tatuatori": [ArtistResponse.model_validate(a) for a in artists]}


@router.post("/tatuatori", response_model=ArtistResponse, status_code=201)
async def create_artist(data: ArtistCreate, service: StudioService = Depends(get_studio_service)):
    return service.create_artist(data)


@router.put("/tatuatori/{artist_id}", response_model=ArtistResponse)
async def update_artist(
    artist_id: str, data: ArtistUpdate, service: StudioService = Depends(get_studio_service)
):
    return service.update_artist(artist_id, data)


@router.delete("/tatuatori/{artist_id}")
async def delete_artist(artist_id: str, service: StudioService = Depends(get_studio_service)):
    """Delete an artist, or deactivate it while appointments still reference it"""
    return service.delete_artist(artist_id)


# ============================================================================
# ROOMS
# ============================================================================


@router.get("/stanze")
async def get_rooms(
    include_inactive: bool = Query(False),
    service: StudioService = Depends(get_studio_service),
):
    rooms = service.get_rooms(include_inactive)
    return {"stanze": [RoomResponse.model_validate(r) for r in rooms]}


@router.post("/stanze", response_model=RoomResponse, status_code=201)
async def create_room(data: RoomCreate, service: StudioService = Depends(get_studio_service)):
    return service.create_room(data)


@router.put("/stanze/{room_id}", response_model=RoomResponse)
async def update_room(
    room_id: str, data: RoomUpdate, service: StudioService = Depends(get_studio_service)
):
    return service.update_room(room_id, data)


@router.delete("/stanze/{room_id}")
async def delete_room(room_id: str, service: StudioService = Depends(get_studio_service)):
    """Delete a room, or deactivate it while appointments still reference it"""
    return service.delete_room(room_id)
