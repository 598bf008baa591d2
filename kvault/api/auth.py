from typing import Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from kvault.errors import Unauthenticated
from kvault.identity.base import IdentityProvider

security = HTTPBearer(auto_error=False)


def get_owner_dependency(identity: IdentityProvider) -> Callable[..., str]:
    """Create a dependency resolving the bearer token to the caller's owner ID."""

    def verify_token(
        credentials: HTTPAuthorizationCredentials | None = Depends(security),  # noqa: B008
    ) -> str:
        if credentials is None or not credentials.credentials:
            raise Unauthenticated("Authentication required")
        return identity.resolve_token(credentials.credentials)

    return verify_token
