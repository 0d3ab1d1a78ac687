import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..errors import InvalidToken, NoToken
from ..models.models import Admin


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        # Unknown or malformed hash
        return False


def create_access_token(admin_id: uuid.UUID, ttl_seconds: Optional[int] = None) -> str:
    now = datetime.now(tz=timezone.utc)
    ttl = settings.jwt_ttl_seconds if ttl_seconds is None else ttl_seconds
    payload = {
        "sub": str(admin_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.InvalidTokenError:
        # ExpiredSignatureError is a subclass; both collapse to the same response
        raise InvalidToken()


def get_current_admin(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> Admin:
    if creds is None or not creds.credentials:
        raise NoToken()
    payload = decode_token(creds.credentials)
    try:
        admin_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise InvalidToken()
    admin = db.query(Admin).filter(Admin.id == admin_id).first()
    if admin is None:
        raise InvalidToken()
    return admin
