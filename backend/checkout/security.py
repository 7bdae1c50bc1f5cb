"""Form tokens guarding the checkout endpoint against cross-site submission."""

from __future__ import annotations

import time
from typing import Any
from uuid import uuid4

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError, MissingRequiredClaimError

from .errors import SecurityCheckError
from .logging_config import get_logger
from .settings import settings

logger = get_logger(__name__)

NONCE_PURPOSE = "donation_checkout"
NONCE_ALGORITHM = "HS256"


class NonceVerifier:
    """Issues and checks short-lived HS256 tokens bound to the checkout action."""

    def __init__(self, secret: str | None = None, ttl_seconds: int | None = None) -> None:
        self._secret = secret
        self._ttl = ttl_seconds

    @property
    def secret(self) -> str:
        return self._secret or settings.CSRF_SECRET

    @property
    def ttl(self) -> int:
        return self._ttl if self._ttl is not None else settings.CSRF_TTL_SECONDS

    def issue(self) -> str:
        now = int(time.time())
        payload = {
            "purpose": NONCE_PURPOSE,
            "iat": now,
            "exp": now + self.ttl,
            "jti": uuid4().hex,
        }
        return jwt.encode(payload, self.secret, algorithm=NONCE_ALGORITHM)

    def verify(self, token: str | None) -> dict[str, Any]:
        if not token:
            raise SecurityCheckError()
        try:
            payload = jwt.decode(
                token,
                key=self.secret,
                algorithms=[NONCE_ALGORITHM],
                options={"require": ["exp", "iat", "purpose"]},
            )
        except ExpiredSignatureError as exc:
            logger.info("checkout_nonce_expired")
            raise SecurityCheckError() from exc
        except (MissingRequiredClaimError, InvalidTokenError) as exc:
            logger.warning("checkout_nonce_invalid", error_type=type(exc).__name__)
            raise SecurityCheckError() from exc
        if payload.get("purpose") != NONCE_PURPOSE:
            logger.warning("checkout_nonce_wrong_purpose")
            raise SecurityCheckError()
        return payload


nonce_verifier = NonceVerifier()


def verify_checkout_nonce(token: str | None) -> None:
    if not settings.CSRF_ENABLED:
        return
    nonce_verifier.verify(token)


__all__ = ["NONCE_PURPOSE", "NonceVerifier", "nonce_verifier", "verify_checkout_nonce"]
