"""Studio service - Artists and rooms appointments are booked against"""

import logging

from sqlalchemy.orm import Session

from ...errors import NotFound
from ...models import Artist, Room
from .repository import StudioRepository
from .schemas import ArtistCreate, ArtistUpdate, RoomCreate, RoomUpdate

logger = logging.getLogger(__name__)


class StudioService:
    """Service layer for artist and room management"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = StudioRepository()

    # Artists

    def get_artists(self, include_inactive: bool = False) -> list[Artist]:
        return self.repo.get_artists(self.db, include_inactive)

    def get_artist(self, artist_id: str) -> Artist:
        artist = self.repo.get_artist(self.db, artist_id)
        if not artist:
            raise NotFound("Tatuatore non trovato")
        return artist

    def create_artist(self, data: ArtistCreate) -> Artist:
        artist = self.repo.add(self.db, Artist(name=data.name, active=True))
        logger.info(f"🎨 Artist created: {artist.id} ({artist.name})")
        return artist

    def update_artist(self, artist_id: str, data: ArtistUpdate) -> Artist:
        artist = self.get_artist(artist_id)
        return self.repo.update(self.db, artist, **data.model_dump(exclude_unset=True))

    def delete_artist(self, artist_id: str) -> dict:
        """
        Hard delete when nothing references the artist, otherwise deactivate.
        """
        artist = self.get_artist(artist_id)
        in_use = self.repo.count_open_appointments(self.db, artist_id=artist.id)
        return self._delete_or_deactivate(artist, in_use, "Tatuatore")

    # Rooms

    def get_rooms(self, include_inactive: bool = False) -> list[Room]:
        return self.repo.get_rooms(self.db, include_inactive)

    def get_room(self, room_id: str) -> Room:
        room = self.repo.get_room(self.db, room_id)
        if not room:
            raise NotFound("Stanza non trovata")
        return room

    def create_room(self, data: RoomCreate) -> Room:
        room = self.repo.add(
            self.db, Room(name=data.name, no_overbooking=data.no_overbooking, active=True)
        )
        logger.info(f"🚪 Room created: {room.id} ({room.name}, no_overbooking={room.no_overbooking})")
        return room

    def update_room(self, room_id: str, data: RoomUpdate) -> Room:
        room = self.get_room(room_id)
        return self.repo.update(self.db, room, **data.model_dump(exclude_unset=True))

    def delete_room(self, room_id: str) -> dict:
        room = self.get_room(room_id)
        in_use = self.repo.count_open_appointments(self.db, room_id=room.id)
        return self._delete_or_deactivate(room, in_use, "Stanza")

    def _delete_or_deactivate(self, entity, open_appointments: int, label: str) -> dict:
        if open_appointments:
            self.repo.update(self.db, entity, active=False)
            logger.info(
                f"{label} {entity.id} deactivated: referenced by {open_appointments} appointment(s)"
            )
            return {
                "id": entity.id,
                "deleted": False,
                "deactivated": True,
                "open_appointments": open_appointments,
                "message": f"{label} disattivato: ha appuntamenti collegati",
            }

        entity_id = entity.id
        # Cancelled history still holds the foreign key
        self.repo.delete_cancelled_appointments(
            self.db,
            artist_id=entity_id if isinstance(entity, Artist) else None,
            room_id=entity_id if isinstance(entity, Room) else None,
        )
        self.repo.delete(self.db, entity)
        logger.info(f"{label} {entity_id} deleted")
        return {
            "id": entity_id,
            "deleted": True,
            "deactivated": False,
            "open_appointments": 0,
            "message": f"{label} eliminato",
        }
