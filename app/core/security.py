from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
from fastapi import HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from jose import jwt
from starlette.status import HTTP_401_UNAUTHORIZED

from app.core.config import get_settings

api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)

# bcrypt hard-limit
BCRYPT_MAX_BYTES = 72


def get_api_key(api_key: str = Security(api_key_header)) -> str:
    """
    Vérifie que la clé API envoyée dans l'en-tête est correcte (routes ops).
    """
    if api_key and api_key == get_settings().API_KEY:
        return api_key
    raise HTTPException(
        status_code=HTTP_401_UNAUTHORIZED,
        detail="API Key invalide",
    )


def hash_password(password: str) -> str:
    pw = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(pw, bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:BCRYPT_MAX_BYTES],
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # hash corrompu / pas au format bcrypt
        return False


def create_access_token(subject: str) -> str:
    s = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(minutes=s.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": subject, "exp": expire}
    return jwt.encode(payload, s.JWT_SECRET_KEY, algorithm=s.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Lève jose.JWTError si le token est invalide ou expiré.
    """
    s = get_settings()
    return jwt.decode(token, s.JWT_SECRET_KEY, algorithms=[s.JWT_ALGORITHM])
