import logging
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class Role(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"
    PARTNER = "partner"


class Profile(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[Role] = None  # None means the stored role is not one we know
    location_id: Optional[str] = None
    brand_id: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def unknown_role_to_none(cls, value):
        if value is None or isinstance(value, Role):
            return value
        try:
            return Role(str(value).strip().lower())
        except ValueError:
            logger.warning("Unrecognized profile role %r", value)
            return None


class Location(BaseModel):
    id: str
    name: str = ""
    city: Optional[str] = None
    state: Optional[str] = None
    address: Optional[str] = None


class Brand(BaseModel):
    id: str
    name: str = ""
    slug: Optional[str] = None


class AccessLists(BaseModel):
    locations: List[Location] = []
    brands: List[Brand] = []

    def location_ids(self) -> List[str]:
        return [loc.id for loc in self.locations]

    def brand_ids(self) -> List[str]:
        return [b.id for b in self.brands]


class Session(BaseModel):
    user_id: str
    email: Optional[str] = None
    access_token: Optional[str] = None


class SessionPhase(str, Enum):
    BOOTING = "booting"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class SessionSnapshot(BaseModel):
    """Read-only view of resolver state handed to the access gate and to screens."""
    phase: SessionPhase = SessionPhase.BOOTING
    loading: bool = True
    session: Optional[Session] = None
    profile: Optional[Profile] = None
    access: AccessLists = Field(default_factory=AccessLists)
    active_location_id: Optional[str] = None
    active_brand_id: Optional[str] = None


class ActiveLocationUpdate(BaseModel):
    location_id: str


class ActiveBrandUpdate(BaseModel):
    brand_id: str


class IntroUpdate(BaseModel):
    has_seen_intro: bool = True


class AccessStateResponse(BaseModel):
    profile: Profile
    locations: List[Location]
    brands: List[Brand]
    active_location_id: Optional[str] = None
    active_brand_id: Optional[str] = None


class ActiveSelectionResponse(BaseModel):
    changed: bool
    active_location_id: Optional[str] = None
    active_brand_id: Optional[str] = None
