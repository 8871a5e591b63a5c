"""Password hashing.

Passwords are stored as ``pbkdf2_sha256$<iterations>$<salt>$<hash>`` with a
random per-password salt. Plaintext passwords are never stored or logged.
"""

import hashlib
import hmac
import secrets

ALGORITHM = "pbkdf2_sha256"
ITERATIONS = 390_000
SALT_BYTES = 16
MIN_PASSWORD_LENGTH = 6


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str, iterations: int = ITERATIONS) -> str:
    """Hash a password for storage.

    Args:
        password: The plaintext password.
        iterations: PBKDF2 iteration count.

    Returns:
        Encoded hash string including algorithm, iterations and salt.
    """
    salt = secrets.token_bytes(SALT_BYTES)
    digest = _derive(password, salt, iterations)
    return f"{ALGORITHM}${iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    """Check a plaintext password against a stored hash.

    Returns:
        True if the password matches, False otherwise (including malformed hashes).
    """
    try:
        algorithm, iterations_str, salt_hex, digest_hex = encoded.split("$")
        iterations = int(iterations_str)
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
    except (AttributeError, ValueError):
        return False

    if algorithm != ALGORITHM:
        return False

    return hmac.compare_digest(_derive(password, salt, iterations), expected)
