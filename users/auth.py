"""Password hashing and signed bearer tokens for user accounts."""

from __future__ import annotations

from typing import Any

from itsdangerous import BadSignature, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from helpers import _coerce_positive_id

TOKEN_SALT = "backlog-auth-token"
DEFAULT_TOKEN_MAX_AGE = 86_400


class InvalidTokenError(Exception):
    """Raised when a bearer token is malformed, tampered with or expired."""


def hash_password(password: str) -> str:
    return generate_password_hash(password, method="pbkdf2:sha256")


def verify_password(password: Any, password_hash: str | None) -> bool:
    """Return ``True`` when ``password`` matches the stored hash."""

    if not isinstance(password, str) or not password or not password_hash:
        return False
    return check_password_hash(password_hash, password)


class AuthTokenSigner:
    """Issue and verify time-limited tokens carrying ``userId`` and ``email``."""

    def __init__(self, secret_key: str, *, max_age: int = DEFAULT_TOKEN_MAX_AGE):
        if not secret_key:
            raise ValueError("a secret key is required to sign auth tokens")
        self._serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)
        self._max_age = max_age

    @property
    def max_age(self) -> int:
        return self._max_age

    def issue(self, user_id: int, email: str) -> str:
        return self._serializer.dumps({"userId": int(user_id), "email": email})

    def verify(self, token: str) -> dict[str, Any]:
        """Return the token payload or raise :class:`InvalidTokenError`."""

        try:
            payload = self._serializer.loads(token, max_age=self._max_age)
        except BadSignature as exc:
            raise InvalidTokenError("Invalid or expired token") from exc

        user_id = None
        if isinstance(payload, dict):
            user_id = _coerce_positive_id(payload.get("userId"))
        if user_id is None:
            raise InvalidTokenError("Invalid or expired token")
        return {"userId": user_id, "email": payload.get("email")}


__all__ = [
    "AuthTokenSigner",
    "DEFAULT_TOKEN_MAX_AGE",
    "InvalidTokenError",
    "hash_password",
    "verify_password",
]
