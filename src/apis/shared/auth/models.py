"""Authentication models."""

from typing import List, Optional

from pydantic import BaseModel, Field


class User(BaseModel):
    """Authenticated caller resolved from a Bearer token."""

    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    roles: List[str] = Field(default_factory=list)
    picture: Optional[str] = None
