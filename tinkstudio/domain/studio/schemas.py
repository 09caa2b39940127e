"""Studio domain schemas - Pydantic models for artists and rooms"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


def _required_name(v):
    if v is None or not v.strip():
        raise ValueError("Il nome è obbligatorio")
    return v.strip()


class ArtistCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _required_name(v)


class ArtistUpdate(BaseModel):
    name: Optional[str] = None
    active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        return _required_name(v)


class ArtistResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoomCreate(BaseModel):
    name: str
    no_overbooking: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _required_name(v)


class RoomUpdate(BaseModel):
    name: Optional[str] = None
    no_overbooking: Optional[bool] = None
    active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        return _required_name(v)


class RoomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    no_overbooking: bool
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
