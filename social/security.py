"""
Password hashing and JWT issuance/validation.

Tokens are HS256-signed and carry ``user_id``, ``email``, ``iat`` and
``exp``.  Any decoding failure (bad signature, expiry, malformed payload)
surfaces as ``InvalidTokenError`` so callers only deal with one error kind.
"""
import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from social.config import settings
from social.errors import InvalidTokenError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def hash_password(plain_password: str) -> bytes:
    return pwd_context.hash(plain_password).encode()


def verify_password(plain_password: str, password_hash: bytes | None) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(plain_password, password_hash.decode())


class TokenIssuer:
    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expiration_hours: int = 24,
    ) -> None:
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expiration = timedelta(hours=expiration_hours)

    @classmethod
    def from_settings(cls) -> "TokenIssuer":
        return cls(settings.JWT_SECRET, settings.JWT_ALGORITHM, settings.JWT_EXPIRATION_HOURS)

    def issue(self, user_id: int, email: str, expires_delta: timedelta | None = None) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "user_id": user_id,
            "email": email,
            "iat": now,
            "exp": now + (expires_delta if expires_delta is not None else self.expiration),
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def validate(self, token: str) -> tuple[int, str]:
        """Return ``(user_id, email)`` for a valid token."""
        if not token:
            raise InvalidTokenError()
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as exc:
            logger.debug("Token rejected: %s", exc)
            raise InvalidTokenError() from exc

        user_id = payload.get("user_id")
        email = payload.get("email")
        # bool is an int subclass; reject it explicitly.
        if not isinstance(user_id, int) or isinstance(user_id, bool) or user_id <= 0:
            raise InvalidTokenError("invalid token: missing user_id")
        if not isinstance(email, str):
            raise InvalidTokenError("invalid token: missing email")
        return user_id, email
