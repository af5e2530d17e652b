"""Auth schemas."""

from pydantic import BaseModel


class UserInfo(BaseModel):
    """Caller identity taken from the bearer token."""
    id: int | None = None
    username: str
