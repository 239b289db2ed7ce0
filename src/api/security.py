"""Bearer token verification.

Tokens are JWTs signed with the configured shared secret. The owner id
comes from the configured claim, falling back to ``sub``.
"""

from datetime import datetime, timedelta, timezone

import jwt

from src.errors import Unauthorized
from src.utils.config import AuthConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)


class TokenVerifier:
    """Issues and verifies owner tokens.

    Args:
        config: Secret, algorithm and owner claim name.
    """

    def __init__(self, config: AuthConfig) -> None:
        self.config = config

    def issue(self, owner_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
        """Sign a token for ``owner_id`` (CLI helper and tests)."""
        now = datetime.now(timezone.utc)
        payload = {
            self.config.owner_claim: owner_id,
            "sub": owner_id,
            "iat": now,
            "exp": now + expires_in,
        }
        return jwt.encode(payload, self.config.jwt_secret, algorithm=self.config.jwt_algorithm)

    def verify(self, token: str) -> str:
        """Decode a token and return the owner id it carries.

        Raises:
            Unauthorized: If the token is malformed, expired, badly signed,
                or carries no owner id.
        """
        try:
            claims = jwt.decode(
                token,
                self.config.jwt_secret,
                algorithms=[self.config.jwt_algorithm],
            )
        except jwt.ExpiredSignatureError as exc:
            logger.info("Rejected expired token")
            raise Unauthorized(detail="Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected invalid token: %s", exc)
            raise Unauthorized(detail=str(exc)) from exc

        owner_id = claims.get(self.config.owner_claim) or claims.get("sub")
        if not owner_id:
            raise Unauthorized(detail="Token carries no owner id")
        return str(owner_id)
