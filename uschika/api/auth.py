"""
Token verification endpoint.

Lets the client check a magic-link token (and learn its display name)
before opening the WebSocket. Token issuance is not handled here.
"""

from fastapi import APIRouter, HTTPException, Request

from ..error_types import ErrorMessages, ErrorType, create_standard_error_response
from ..exceptions import AuthenticationError
from ..models.auth import VerifyTokenRequest, VerifyTokenResponse
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["auth"])


@auth_router.post("/verify-token", response_model=VerifyTokenResponse)
async def verify_token(body: VerifyTokenRequest, request: Request) -> VerifyTokenResponse:
    """
    Verify a login token.

    Returns the e-mail and display name on success, or 401 with
    error.type "token_expired" or "invalid_token".
    """
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail=ErrorMessages.SERVICE_UNAVAILABLE)

    try:
        identity = container.identity_provider.authenticate(body.token)
    except AuthenticationError as e:
        reason = ErrorType(e.details.get("reason", ErrorType.INVALID_TOKEN.value))
        if reason is ErrorType.AUTHENTICATION_FAILED:
            reason = ErrorType.INVALID_TOKEN
        raise HTTPException(
            status_code=401,
            detail=create_standard_error_response(reason, e.message, e.user_friendly),
        ) from e

    return VerifyTokenResponse(email=identity.email, display_name=identity.display_name)
