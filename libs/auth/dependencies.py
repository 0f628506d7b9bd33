from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import AuthUser
from libs.common.config import Settings, get_settings
from libs.common.errors import AuthError

security = HTTPBearer(auto_error=False)


def decode_access_token(token: str, settings: Settings) -> AuthUser:
    """Verify a Supabase access token and return its subject."""
    try:
        # Supabase signs access tokens with HS256 and the project JWT secret
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            options={"verify_aud": False},
        )
        return AuthUser(**payload)
    except (JWTError, ValidationError) as exc:
        raise AuthError("Invalid or expired token") from exc


async def get_current_user(
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthUser:
    """
    Validate the bearer token and return the authenticated user.
    """
    if token is None or not token.credentials:
        raise AuthError("Authentication required")
    return decode_access_token(token.credentials, settings)
