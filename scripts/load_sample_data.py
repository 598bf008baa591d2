"""CLI for filling a local graph store with sample entries and relationships for one user"""

import argparse

from kvault.config import settings
from kvault.errors import Conflict
from kvault.graph_stores.local_store import LocalGraphStore
from kvault.identity.local import LocalIdentityProvider
from kvault.sample_data import load_sample_data


def main(
    email: str,
    password: str,
    name: str | None,
    local_store_path: str,
    local_users_path: str,
) -> None:
    identity = LocalIdentityProvider(
        secret=settings.token_secret,
        max_age_seconds=settings.token_max_age_seconds,
        filepath=local_users_path,
    )
    try:
        auth = identity.signup(email, password, name)
    except Conflict:
        auth = identity.login(email, password)

    store = LocalGraphStore(
        local_store_path,
        enforce_relationship_ownership=settings.enforce_relationship_ownership,
    )
    load_sample_data(store, auth.user.id)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", type=str, required=True, help="Email of the vault owner")
    parser.add_argument("--password", type=str, required=True, help="Password of the vault owner")
    parser.add_argument("--name", type=str, required=False, help="Display name for a new user")
    parser.add_argument(
        "--store",
        type=str,
        required=False,
        help="Local graph store file",
        default=settings.store_path,
    )
    parser.add_argument(
        "--users",
        type=str,
        required=False,
        help="Local users file",
        default=settings.identity_path,
    )

    args = parser.parse_args()

    main(
        email=args.email,
        password=args.password,
        name=args.name,
        local_store_path=args.store,
        local_users_path=args.users,
    )
