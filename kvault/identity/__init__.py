from kvault.identity.base import IdentityProvider
from kvault.identity.local import LocalIdentityProvider

__all__ = ["IdentityProvider", "LocalIdentityProvider"]
