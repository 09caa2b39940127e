"""Customer domain schemas"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import blank_to_none, validate_email


class CustomerUpdate(BaseModel):
    """Admin edit of a customer identified by phone"""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    birth_date: Optional[date] = None
    birth_place: Optional[str] = None
    fiscal_code: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None

    @field_validator("first_name", "last_name", "birth_place", "address", "city")
    @classmethod
    def strip_text(cls, v):
        return blank_to_none(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("fiscal_code")
    @classmethod
    def upper_fiscal_code(cls, v):
        v = blank_to_none(v)
        return v.upper() if v else v
