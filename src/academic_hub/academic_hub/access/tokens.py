from __future__ import annotations

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..core.constants import DEFAULT_TOKEN_MAX_AGE, TOKEN_SALT
from ..core.exceptions import AuthenticationError


class TokenService:
    """Issues and verifies signed, expiring bearer tokens carrying a user id."""

    def __init__(self, secret_key: str, *, max_age: int = DEFAULT_TOKEN_MAX_AGE, salt: str = TOKEN_SALT):
        self._serializer = URLSafeTimedSerializer(secret_key, salt=salt)
        self._max_age = int(max_age)

    def issue(self, user_id: int) -> str:
        return self._serializer.dumps({"id": int(user_id)})

    def verify(self, token: str) -> int:
        try:
            payload = self._serializer.loads(token, max_age=self._max_age)
        except SignatureExpired:
            raise AuthenticationError("Token expired.")
        except BadSignature:
            raise AuthenticationError("Invalid token.")

        try:
            return int(payload["id"])
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Invalid token.")
