from passlib.context import CryptContext

# pgcrypto's crypt(..., gen_salt('bf')) produces bcrypt hashes, so stored
# passwords verify the same whichever side hashed them.
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ---------------------------------------------------------------------------
# Password hashing (bcrypt)
# ---------------------------------------------------------------------------


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """False for unknown hash formats instead of raising."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)
