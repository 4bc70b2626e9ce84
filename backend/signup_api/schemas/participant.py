"""
Pydantic schemas for signup submissions and participant views.

JSON keys follow the signup page (camelCase for multi-word fields); Python
attributes stay snake_case through aliases.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

MAX_SPOTS = 150


class ParticipantCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    email: EmailStr
    first_name: str = Field(..., alias="firstName", min_length=1, max_length=50)
    last_name: str = Field(..., alias="lastName", min_length=1, max_length=50)
    # Lax bool parsing accepts the form's "yes"/"no" as well as true/false
    alcohol: bool
    diet: Optional[str] = None
    table_group: Optional[str] = Field(None, alias="tableGroup")
    avec: Optional[str] = Field(None, max_length=100)
    organisation: Optional[str] = Field(None, max_length=255)
    gift: bool = False
    alumni: bool = False
    sillis: bool = False
    invited: bool = False
    invite_code: Optional[str] = Field(None, alias="inviteCode", max_length=255)
    language: Literal["fi", "en"] = "en"

    def to_row(self) -> dict:
        """Column values for the participants table."""
        return {
            "firstname": self.first_name,
            "lastname": self.last_name,
            "email": str(self.email),
            "diet": self.diet,
            "alcohol": self.alcohol,
            "table_group": self.table_group,
            "avec": self.avec,
            "organisation": self.organisation,
            "gift": self.gift,
            "invited": self.invited,
            "alumni": self.alumni,
            "sillis": self.sillis,
        }


class ParticipantResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    firstname: str
    lastname: str
    email: str
    diet: Optional[str]
    alcohol: bool
    table_group: Optional[str] = Field(alias="tableGroup")
    avec: Optional[str]
    organisation: Optional[str]
    gift: bool
    invited: bool
    alumni: bool
    sillis: bool
    created_at: datetime = Field(alias="timestamp")


class ParticipantPublic(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    firstname: str
    lastname: str
    table_group: Optional[str] = Field(alias="tableGroup")


class SpotsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_spots: int = Field(MAX_SPOTS, alias="maxSpots")
    used_spots: int = Field(..., alias="usedSpots")
