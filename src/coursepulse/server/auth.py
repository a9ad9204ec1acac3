"""Bearer token verification."""

from typing import Dict, Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from coursepulse.config import Settings
from coursepulse.server.dependencies import get_settings

log = structlog.get_logger()

security = HTTPBearer(auto_error=False)


def decode_token(token: str, settings: Settings) -> Dict:
    return jwt.decode(token, settings.auth_secret, algorithms=[settings.jwt_alg])


def require_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Dict:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        claims = decode_token(credentials.credentials, settings)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    return claims


def optional_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Optional[Dict]:
    """Claims of the session if a valid token was sent, otherwise None."""
    if credentials is None:
        return None
    try:
        return decode_token(credentials.credentials, settings)
    except JWTError as e:
        log.info("auth.token.ignored", error=str(e))
        return None


def require_admin(claims: Dict = Depends(require_claims)) -> Dict:
    if claims.get("role") != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return claims
