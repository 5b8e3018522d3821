"""
Credential verification for USChika.

Login tokens are HS256 JWTs carrying the user's e-mail (and optionally a
display name). Issuing them (magic links, e-mail delivery) happens outside
this server; create_access_token exists for tests and local tooling.
"""

from datetime import UTC, datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt

from .config.models import SecurityConfig
from .error_types import ErrorMessages, ErrorType
from .exceptions import AuthenticationError
from .realtime.connection_models import Identity
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24


def create_access_token(
    data: dict,
    secret_key: str,
    expires_delta: timedelta | None = None,
    algorithm: str = "HS256",
) -> str:
    """Create a signed JWT with an expiry claim."""
    to_encode = data.copy()
    expire = datetime.now(UTC) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    token = jwt.encode(to_encode, secret_key, algorithm=algorithm)
    logger.debug("Access token created", expires_at=expire.isoformat())
    return token


class IdentityProvider:
    """
    Turns login tokens into Identity values.

    A token is accepted when its signature and expiry verify, it carries an
    `email` claim, and that e-mail ends with the allowed domain (if one is
    configured).
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", allowed_email_domain: str | None = "@usc.edu.ph"):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.allowed_email_domain = allowed_email_domain.lower() if allowed_email_domain else None

    @classmethod
    def from_config(cls, security: SecurityConfig) -> "IdentityProvider":
        return cls(
            secret_key=security.jwt_secret,
            algorithm=security.jwt_algorithm,
            allowed_email_domain=security.allowed_email_domain,
        )

    def authenticate(self, token: str | None) -> Identity:
        """
        Verify a token and build its Identity.

        Raises:
            AuthenticationError: With details["reason"] set to the matching ErrorType value
        """
        if not token or not isinstance(token, str):
            raise AuthenticationError(
                "No token provided",
                details={"reason": ErrorType.INVALID_TOKEN.value},
                user_friendly=ErrorMessages.INVALID_TOKEN,
            )
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise AuthenticationError(
                "Token has expired",
                details={"reason": ErrorType.TOKEN_EXPIRED.value},
                user_friendly=ErrorMessages.TOKEN_EXPIRED,
            ) from e
        except JWTError as e:
            raise AuthenticationError(
                f"Invalid token: {e}",
                details={"reason": ErrorType.INVALID_TOKEN.value},
                user_friendly=ErrorMessages.INVALID_TOKEN,
            ) from e

        email = payload.get("email")
        if not isinstance(email, str) or "@" not in email:
            raise AuthenticationError(
                "Token has no email claim",
                details={"reason": ErrorType.INVALID_TOKEN.value},
                user_friendly=ErrorMessages.INVALID_TOKEN,
            )
        if self.allowed_email_domain and not email.strip().lower().endswith(self.allowed_email_domain):
            raise AuthenticationError(
                "Email domain not allowed",
                details={"reason": ErrorType.AUTHENTICATION_FAILED.value, "allowed_domain": self.allowed_email_domain},
                user_friendly=ErrorMessages.INVALID_TOKEN,
            )

        display_name = payload.get("display_name") or payload.get("displayName")
        if not isinstance(display_name, str) or not display_name.strip():
            display_name = None
        return Identity.from_email(email, display_name.strip() if display_name else None)

    def verify(self, token: str | None) -> Identity | None:
        """Return the token's Identity, or None when it is not acceptable."""
        try:
            return self.authenticate(token)
        except AuthenticationError:
            return None
