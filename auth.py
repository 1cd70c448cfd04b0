"""
Credential authentication and signed session tokens.

A successful login yields a JWT carrying the principal (user id, email,
name, role). Requests are authenticated from that token alone; the role is
copied in at login and not re-read from the database afterwards.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.orm import Session

import crud
from errors import Unauthorized
from logging_config import get_logger
from models import Role, User
from settings import Settings

logger = get_logger("auth")

security = HTTPBearer(auto_error=False)

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


class Principal(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    role: Role = Role.USER

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, email=user.email, name=user.name, role=user.role)


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    encoded = password.encode()
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, password_hash.encode())


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    """Return the user for a valid email/password pair, otherwise None."""
    user = crud.get_user_by_email(db, email)
    if not user or not user.password:
        return None
    if not verify_password(password, user.password):
        return None
    return user


def create_token(principal: Principal, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": principal.id,
        "email": principal.email,
        "name": principal.name,
        "role": principal.role.value,
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expire_days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> Principal:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise Unauthorized("Invalid token payload")
    try:
        role = Role(payload.get("role", Role.USER.value))
    except ValueError:
        raise Unauthorized("Invalid token payload")
    return Principal(id=user_id, email=payload.get("email", ""), name=payload.get("name"), role=role)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Principal:
    """Principal from the bearer token, or from the session cookie."""
    token = credentials.credentials if credentials else request.cookies.get(settings.session_cookie)
    if not token:
        raise Unauthorized()
    return decode_token(token, settings)
