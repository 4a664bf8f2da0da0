"""
Pydantic schemas for authentication module.
"""

from datetime import datetime

from pydantic import BaseModel


class TokenPayload(BaseModel):
    """Schema for JWT token payload."""
    sub: str  # user_id
    exp: datetime
    type: str  # only "access" tokens are accepted
