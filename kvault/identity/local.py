import hashlib
import json
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict
from uuid import uuid4

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from loguru import logger

from kvault.domain.user import AuthPayload, StoredUser, User
from kvault.errors import Conflict, TransientIO, Unauthenticated, ValidationError
from kvault.identity.base import IdentityProvider

PBKDF2_ITERATIONS = 200_000
TOKEN_SALT = "kvault-auth"


def hash_password(password: str, salt: str | None = None) -> str:
    """Hash a password as `salt$hexdigest` using PBKDF2-SHA256."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    salt, _, _ = password_hash.partition("$")
    return secrets.compare_digest(hash_password(password, salt), password_hash)


class LocalIdentityProvider(IdentityProvider):
    """Identity provider that keeps users in a JSON file and signs tokens with a secret."""

    def __init__(
        self,
        *,
        secret: str,
        max_age_seconds: int,
        filepath: str | Path | None = None,
    ) -> None:
        """Initialize LocalIdentityProvider.

        Args:
            secret: Key used to sign bearer tokens
            max_age_seconds: Token lifetime
            filepath: Path to the users file. If provided and exists, will auto-load.
                     If provided, every signup is written back to this path.
        """
        self._serializer = URLSafeTimedSerializer(secret, salt=TOKEN_SALT)
        self._max_age_seconds = max_age_seconds
        self._filepath = str(filepath) if filepath else None
        self._users: Dict[str, StoredUser] = {}

        if self._filepath and Path(self._filepath).exists():
            try:
                with open(self._filepath, "r") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                raise TransientIO(f"Could not read users from {self._filepath}: {e}") from e
            self._users = {
                user_id: StoredUser(**user_data) for user_id, user_data in data["users"].items()
            }

    def _find_by_email(self, email: str) -> StoredUser | None:
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    def _issue(self, user: StoredUser) -> AuthPayload:
        token = self._serializer.dumps({"user_id": user.id, "email": user.email})
        return AuthPayload(token=token, user=user.public())

    def signup(self, email: str, password: str, name: str | None = None) -> AuthPayload:
        email = email.strip().lower()
        if not email or not password:
            raise ValidationError("Email and password are required")
        if self._find_by_email(email):
            raise Conflict("Email already exists")

        user = StoredUser(
            id=uuid4().hex,
            email=email,
            name=name,
            created_at=datetime.now(timezone.utc),
            password_hash=hash_password(password),
        )
        self._users[user.id] = user
        logger.info(f"Registered user {user.id}")
        if self._filepath:
            self.save()
        return self._issue(user)

    def login(self, email: str, password: str) -> AuthPayload:
        user = self._find_by_email(email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Rejected login with invalid credentials")
            raise Unauthenticated("Invalid email or password")
        return self._issue(user)

    def resolve_token(self, token: str) -> str:
        try:
            payload = self._serializer.loads(token, max_age=self._max_age_seconds)
        except SignatureExpired as e:
            raise Unauthenticated("Token expired") from e
        except BadSignature as e:
            raise Unauthenticated("Invalid token") from e

        user_id = payload.get("user_id") if isinstance(payload, dict) else None
        if user_id not in self._users:
            raise Unauthenticated("Unknown user")
        return user_id

    def get_user(self, user_id: str) -> User | None:
        user = self._users.get(user_id)
        return user.public() if user else None

    def save(self, filepath: str | None = None) -> None:
        """Save the users to a JSON file.

        Args:
            filepath: Path to save to. If not provided, uses the filepath from initialization.
        """
        save_path = filepath or self._filepath
        if not save_path:
            raise ValueError(
                "No filepath provided and no default filepath set during initialization"
            )

        data = {"users": {uid: user.model_dump(mode="json") for uid, user in self._users.items()}}
        try:
            Path(save_path).parent.mkdir(parents=True, exist_ok=True)
            with open(save_path, "w") as f:
                json.dump(data, f)
        except OSError as e:
            raise TransientIO(f"Could not write users to {save_path}: {e}") from e
