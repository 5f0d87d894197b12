# src/school_portal/security.py
import hashlib
import hmac


def hash_password(password: str) -> str:
    """One-way, deterministic digest stored in place of the plaintext."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return hmac.compare_digest(hash_password(password), hashed_password)
