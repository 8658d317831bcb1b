"""
Password hashing, JWT issuance and the route guards built on them.
"""
from datetime import timedelta
from typing import Optional

import jwt
from fastapi import Depends, Header
from passlib.context import CryptContext
from pymongo.database import Database
from pymongo.errors import PyMongoError

from .config import get_settings
from .database import USERS, get_db, now, to_object_id
from .errors import AuthError, UpstreamError
from .log import get_logger
from .schemas import ADMIN, Principal

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

JWT_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def create_token(user_id) -> str:
    settings = get_settings()
    payload = {
        "_id": str(user_id),
        "exp": now() + timedelta(days=settings.JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    return jwt.decode(token, get_settings().JWT_SECRET, algorithms=[JWT_ALGORITHM])


def require_sign_in(authorization: Optional[str] = Header(None)) -> Principal:
    if not authorization:
        raise AuthError("Authorization token is missing")
    token = authorization
    if token.lower().startswith("bearer "):
        token = token[7:]
    try:
        payload = decode_token(token.strip())
    except jwt.ExpiredSignatureError:
        raise AuthError("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")
    if "_id" not in payload:
        raise AuthError("Invalid token")
    return Principal(_id=payload["_id"])


def require_admin(
    principal: Principal = Depends(require_sign_in),
    db: Database = Depends(get_db),
) -> Principal:
    try:
        user = db[USERS].find_one({"_id": to_object_id(principal.id)}, {"role": 1})
    except PyMongoError as exc:
        logger.exception("Admin lookup failed for %s", principal.id)
        raise UpstreamError("Error in admin middleware", status_code=401) from exc
    if not user or user.get("role") != ADMIN:
        raise AuthError("Unauthorized Access")
    return principal
