import sys

from loguru import logger

from kvault.api import create_app
from kvault.config import settings
from kvault.graph_stores.local_store import LocalGraphStore
from kvault.identity.local import LocalIdentityProvider

logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])

logger.info(f"Initializing knowledge vault with graph store at {settings.store_path}")
store = LocalGraphStore(
    settings.store_path,
    enforce_relationship_ownership=settings.enforce_relationship_ownership,
)
identity = LocalIdentityProvider(
    secret=settings.token_secret,
    max_age_seconds=settings.token_max_age_seconds,
    filepath=settings.identity_path,
)
app = create_app(store=store, identity=identity)
