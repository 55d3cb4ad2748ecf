import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from insurance_crm.config import settings

PIN_HASH_ITERATIONS = 100_000


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "iat": now})
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT access token; expired or tampered tokens return None"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def hash_pin(pin: str, salt: Optional[str] = None) -> str:
    """Hash a PIN as 'salt$digest' using PBKDF2-SHA256"""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", pin.encode(), salt.encode(), PIN_HASH_ITERATIONS).hex()
    return f"{salt}${digest}"


def verify_pin(pin: str, pin_hash: Optional[str]) -> bool:
    if not pin or not pin_hash or "$" not in pin_hash:
        return False
    salt, _ = pin_hash.split("$", 1)
    return hmac.compare_digest(hash_pin(pin, salt), pin_hash)
