from typing import Protocol

from kvault.domain.user import AuthPayload, User


class IdentityProvider(Protocol):
    """Protocol for identity implementations issuing and resolving bearer tokens."""

    def signup(self, email: str, password: str, name: str | None = None) -> AuthPayload:
        """Register a user and return a token for them."""
        ...

    def login(self, email: str, password: str) -> AuthPayload:
        """Check credentials and return a fresh token."""
        ...

    def resolve_token(self, token: str) -> str:
        """Resolve a bearer token to the owning user's ID or raise Unauthenticated."""
        ...

    def get_user(self, user_id: str) -> User | None:
        """Get a user by ID."""
        ...
