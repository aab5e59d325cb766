from pydantic import BaseModel, ConfigDict
from typing import Optional


class AuthUser(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    email: Optional[str] = None


class AuthSession(BaseModel):
    """Session as handed out by the session provider. Never mutated by this package."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    user: Optional[AuthUser] = None
