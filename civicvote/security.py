from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from civicvote import config
from civicvote.errors import AuthError, ConfigError, ForbiddenError, InvalidTokenError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


# Hash a password
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


# Verify a plain password against a hash
def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def dummy_verify() -> None:
    """Spend the same time as a real verify when there is nothing to compare."""
    pwd_context.dummy_verify()


# Create JWT access token
def issue_token(claims: dict, expires_minutes: int = None) -> str:
    if not config.SECRET_KEY:
        raise ConfigError("JWT_SECRET is not configured")
    if "sub" not in claims or "role" not in claims:
        raise ValueError("token claims need 'sub' and 'role'")

    to_encode = claims.copy()
    to_encode["sub"] = str(to_encode["sub"])
    minutes = expires_minutes if expires_minutes is not None else config.ACCESS_TOKEN_EXPIRE_MINUTES
    to_encode.update({"exp": datetime.now(timezone.utc) + timedelta(minutes=minutes)})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def verify_token(token: str) -> dict:
    """Decode a bearer token; every failure collapses to InvalidTokenError."""
    if not config.SECRET_KEY:
        raise ConfigError("JWT_SECRET is not configured")
    try:
        claims = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise InvalidTokenError()
    if not claims.get("sub") or claims.get("role") not in ("voter", "admin"):
        raise InvalidTokenError()
    return claims


def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    if credentials is None or not credentials.credentials:
        raise AuthError("Authorization header missing or malformed")
    return verify_token(credentials.credentials)


def require_admin(claims: dict = Depends(get_current_claims)) -> dict:
    # The verified token's role claim is authoritative for every admin gate.
    if claims["role"] != "admin":
        raise ForbiddenError("Forbidden: Admin access required")
    return claims
