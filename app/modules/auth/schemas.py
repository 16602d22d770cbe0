from pydantic import BaseModel, EmailStr
from typing import Optional

from app.modules.access.schemas import Profile


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str


class MeResponse(BaseModel):
    id: str
    email: Optional[str] = None
    profile: Optional[Profile] = None
    home: str
