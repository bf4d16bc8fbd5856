import hashlib
import secrets
from typing import Optional

from passlib.context import CryptContext

from studio.config import settings

# Salted, slow hash for link passwords. pbkdf2 needs no native backend.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def create_review_token(nbytes: Optional[int] = None) -> str:
    """Opaque share token; 32 random bytes (256 bits) rendered as hex by default."""
    return secrets.token_hex(max(16, nbytes or settings.REVIEW_LINK_TOKEN_BYTES))


def hash_review_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def hash_review_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_review_password(password: str, stored_hash: Optional[str]) -> bool:
    if not stored_hash:
        return True
    try:
        return pwd_context.verify(password, stored_hash)
    except ValueError:
        # unrecognised hash format
        return False


def mask_token_preview(token: str) -> str:
    if len(token) <= 12:
        return "***"
    return f"{token[:6]}...{token[-4:]}"
