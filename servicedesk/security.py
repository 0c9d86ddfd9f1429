import base64
import hashlib
import hmac
import logging
import os
from typing import Optional

from sqlmodel import Session, select

from servicedesk.errors import AuthenticationError
from servicedesk.models import Personnel

logger = logging.getLogger(__name__)

_ALGORITHM = "pbkdf2_sha256"
_ITERATIONS = 120_000


def _pbkdf2_sha256(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str) -> str:
    """Returns `pbkdf2_sha256$<iterations>$<salt b64>$<hash b64>`."""
    salt = os.urandom(16)
    digest = _pbkdf2_sha256(password, salt, _ITERATIONS)
    return "$".join([
        _ALGORITHM,
        str(_ITERATIONS),
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(digest).decode("ascii"),
    ])


def verify_password(password: str, encoded: Optional[str]) -> bool:
    if not encoded:
        return False
    try:
        algorithm, iterations, salt_b64, digest_b64 = encoded.split("$")
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(digest_b64)
        rounds = int(iterations)
    except ValueError:
        logger.warning("Malformed password hash found")
        return False
    if algorithm != _ALGORITHM:
        return False
    return hmac.compare_digest(expected, _pbkdf2_sha256(password, salt, rounds))


def authenticate(session: Session, email: str, password: str) -> Personnel:
    """Single credential check. Raises AuthenticationError with a generic message."""
    person = session.exec(select(Personnel).where(Personnel.email == email)).first()
    if person is None or not verify_password(password, person.password_hash):
        logger.info("Failed login for %s", email)
        raise AuthenticationError("Invalid credentials")
    logger.info("Personnel %s logged in", person.id)
    return person
