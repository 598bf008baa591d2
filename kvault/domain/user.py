"""User domain models."""

from datetime import datetime

from pydantic import BaseModel


class User(BaseModel):
    id: str
    email: str
    name: str | None = None
    created_at: datetime


class StoredUser(User):
    """User record as persisted by an identity provider."""

    password_hash: str

    def public(self) -> User:
        return User(id=self.id, email=self.email, name=self.name, created_at=self.created_at)


class AuthPayload(BaseModel):
    token: str
    user: User
