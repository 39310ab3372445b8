"""Password hashing, JWT handling, auth dependencies and rate limiting"""
import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import bcrypt
import jwt
from bson import ObjectId
from fastapi import Depends, Request, Response
from pymongo.database import Database

from videotube.core.config import settings
from videotube.core.errors import ApiError
from videotube.db.helpers import SAFE_USER_PROJECTION
from videotube.db.mongo import get_db
from videotube.db.redis import check_rate_limit as redis_check_rate_limit

security_logger = logging.getLogger("security")
api_access_logger = logging.getLogger("api_access")

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def hash_password(password: str) -> str:
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash"""
    if not password_hash or not password:
        return False
    return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))


def _encode(payload: Dict, secret: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    claims = {**payload, "iat": now, "exp": now + lifetime, "jti": uuid.uuid4().hex}
    return jwt.encode(claims, secret, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user: Dict) -> str:
    """Short-lived token identifying the user"""
    return _encode(
        {
            "sub": str(user["_id"]),
            "email": user["email"],
            "username": user["username"],
            "type": "access",
        },
        settings.ACCESS_TOKEN_SECRET,
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(user: Dict) -> str:
    """Long-lived token used only to mint new access tokens"""
    return _encode(
        {"sub": str(user["_id"]), "type": "refresh"},
        settings.REFRESH_TOKEN_SECRET,
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_token(token: str, token_type: str = "access") -> Dict:
    """Decode and validate a JWT, raising a 401 ApiError on any problem"""
    secret = settings.ACCESS_TOKEN_SECRET if token_type == "access" else settings.REFRESH_TOKEN_SECRET
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ApiError(401, f"{token_type.capitalize()} token expired")
    except jwt.InvalidTokenError:
        raise ApiError(401, f"Invalid {token_type} token")

    if payload.get("type") != token_type or not ObjectId.is_valid(payload.get("sub", "")):
        raise ApiError(401, f"Invalid {token_type} token")
    return payload


def get_token_from_request(request: Request) -> Optional[str]:
    """Access token from the cookie, or from an Authorization: Bearer header"""
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def require_auth(request: Request, db: Database = Depends(get_db)) -> Dict:
    """Dependency: Require authentication, return the current user (without secrets)"""
    token = get_token_from_request(request)
    if not token:
        raise ApiError(401, "Unauthorized request")

    payload = decode_token(token, "access")
    user = db.users.find_one({"_id": ObjectId(payload["sub"])}, SAFE_USER_PROJECTION)
    if not user:
        security_logger.warning(f"Valid token for unknown user {payload['sub']} - Path: {request.url.path}")
        raise ApiError(401, "Invalid access token")
    return user


def set_auth_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    """Set both token cookies (httponly, secure in production)"""
    options = {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "lax",
    }
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        **options
    )
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        **options
    )


def clear_auth_cookies(response: Response) -> None:
    options = {"httponly": True, "secure": settings.is_production, "samesite": "lax"}
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)


def get_client_identifier(request: Request) -> str:
    """Get a unique identifier for rate limiting"""
    client_ip = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    if not client_ip:
        client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"


def check_rate_limit(identifier: str, strict: bool = False) -> bool:
    """Check if request is within rate limit

    Args:
        identifier: Client identifier (IP)
        strict: If True, use stricter rate limits for state-changing operations

    Returns:
        True if within limit, False if exceeded
    """
    return redis_check_rate_limit(identifier, strict=strict)


def log_api_access(
    request: Request,
    status_code: int = 200,
    error: Optional[str] = None,
    duration_ms: Optional[float] = None
):
    """Log detailed API access information"""
    client_ip = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    if not client_ip:
        client_ip = request.client.host if request.client else "unknown"

    log_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "method": request.method,
        "path": request.url.path,
        "query": str(request.url.query) if request.url.query else None,
        "client_ip": client_ip,
        "user_agent": request.headers.get("User-Agent", "unknown"),
        "origin": request.headers.get("Origin", "none"),
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2) if duration_ms is not None else None,
        "error": error
    }

    if error or status_code >= 400:
        api_access_logger.warning(f"API Access: {json.dumps(log_data)}")
    else:
        api_access_logger.info(f"API Access: {json.dumps(log_data)}")
