# tramar/utils/password_utils.py

from passlib.context import CryptContext
import logging

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_LENGTH = 72

# Create the context once and reuse it
bcrypt_context = CryptContext(schemes=['bcrypt'], deprecated='auto')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verifies a plain-text password against a hashed password.
    """
    return bcrypt_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    try:
        return bcrypt_context.hash(password)
    except Exception:
        logger.exception("Error occurred while hashing password.")
        raise
