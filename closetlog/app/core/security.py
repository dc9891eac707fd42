"""Security infrastructure for the Closetlog application.

Accounts live with an external identity provider; this service only verifies
the bearer JWT it issues. The ``sub`` claim is the owner identifier stamped on
every garment, outfit, link, preference and saved donation row.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from app.core.config import get_settings

bearer_scheme = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    """Claims extracted from a verified access token."""
    user_id: str
    scopes: List[str] = []


class SecurityService:
    """Token creation and verification."""

    def __init__(self):
        self.settings = get_settings()

    def decode_token(self, token: str) -> TokenData:
        """Validate token signature/expiry and return its claims."""
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        options = {}
        if not self.settings.JWT_AUDIENCE:
            options["verify_aud"] = False

        try:
            payload = jwt.decode(
                token,
                self.settings.SECRET_KEY,
                algorithms=[self.settings.JWT_ALGORITHM],
                audience=self.settings.JWT_AUDIENCE,
                options=options
            )
            user_id = payload.get("sub")
            if not user_id:
                raise credentials_exception
            return TokenData(user_id=str(user_id), scopes=payload.get("scopes", []))
        except (JWTError, ValidationError):
            raise credentials_exception

    def create_access_token(
        self,
        data: dict,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """Create JWT access token with optional expiration."""
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.now(timezone.utc) + expires_delta
        else:
            expire = datetime.now(timezone.utc) + timedelta(
                minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES
            )

        to_encode.update({"exp": expire})
        if self.settings.JWT_AUDIENCE:
            to_encode.setdefault("aud", self.settings.JWT_AUDIENCE)
        return jwt.encode(
            to_encode,
            self.settings.SECRET_KEY,
            algorithm=self.settings.JWT_ALGORITHM
        )


def get_security_service() -> SecurityService:
    return SecurityService()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Module-level helper used by tests and tooling."""
    return get_security_service().create_access_token(data, expires_delta)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    security: SecurityService = Depends(get_security_service)
) -> str:
    """Dependency returning the authenticated owner identifier."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return security.decode_token(credentials.credentials).user_id


async def security_middleware(request: Request, call_next):
    """Security middleware for request/response protection."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response
