import logging
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt
from pydantic import BaseModel

from .config import ADMIN_PASSWORD, ADMIN_USERNAME, JWT_ALGORITHM, JWT_EXPIRES_MINUTES, SECRET_KEY

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

router = APIRouter(prefix="/api/admin", tags=["Auth"])


class LoginRequest(BaseModel):
    username: str
    password: str


def create_access_token(username: str, expires_minutes: int = JWT_EXPIRES_MINUTES) -> str:
    """Sign an admin bearer token"""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": username,
        "role": "admin",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    return jose_jwt.encode(payload, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_access_token(token: str) -> dict:
    try:
        payload = jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"❌ Admin token rejected: {e}")
        raise HTTPException(status_code=401, detail="Token non valido o scaduto") from e

    if payload.get("role") != "admin":
        raise HTTPException(status_code=401, detail="Token non valido o scaduto")
    return payload


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """Require a valid admin bearer token"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=401,
            detail="Token di accesso richiesto",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return verify_access_token(credentials.credentials)


@router.post("/login")
async def login(data: LoginRequest):
    """Exchange the admin credentials for a bearer token"""
    username_ok = secrets.compare_digest(data.username, ADMIN_USERNAME)
    password_ok = secrets.compare_digest(data.password, ADMIN_PASSWORD)
    if not (username_ok and password_ok):
        logger.warning(f"🔒 Failed admin login for username '{data.username}'")
        raise HTTPException(status_code=401, detail="Credenziali non valide")

    logger.info(f"✅ Admin login: {data.username}")
    return {
        "token": create_access_token(data.username),
        "expires_in": JWT_EXPIRES_MINUTES * 60,
        "user": {"username": data.username, "role": "admin"},
    }
