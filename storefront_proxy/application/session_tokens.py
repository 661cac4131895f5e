from datetime import UTC, datetime, timedelta

import jwt

from storefront_proxy.domain.customer import IssuedSession, SessionClaims
from storefront_proxy.domain.errors import AuthError

ALGORITHM = "HS256"
SESSION = "session"
EMAIL_VERIFICATION = "email_verification"


class SessionTokenIssuer:
    """Signs and verifies this service's own HS256 tokens.

    Session tokens embed the customer identity (and, after a login, the
    upstream customer access token); verification tokens only carry the
    customer id and e-mail. ``purpose`` keeps one kind from being accepted
    as the other.
    """

    def __init__(self, secret: str, ttl_days: int = 7) -> None:
        self._secret = secret
        self._ttl = timedelta(days=ttl_days)

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    def issue(self, claims: SessionClaims, now: datetime | None = None) -> IssuedSession:
        issued_at = now or datetime.now(UTC)
        payload = claims.model_dump(by_alias=True, exclude_none=True)
        payload.update(sub=claims.id, iat=issued_at, exp=issued_at + self._ttl)
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        return IssuedSession(token=token, expires_in=self.ttl_seconds)

    def verify(self, token: str, purpose: str = SESSION) -> SessionClaims:
        """Decode ``token`` and return its claims.

        Raises:
            AuthError: bad signature, malformed token, expired, or wrong purpose.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("Token expired", operation="verifyToken") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthError("Invalid token", operation="verifyToken") from exc

        claims = SessionClaims.model_validate({**payload, "id": payload.get("id") or payload["sub"]})
        if claims.purpose != purpose:
            raise AuthError("Invalid token", operation="verifyToken", purpose=claims.purpose)
        return claims
