"""Password hashing with scrypt.

Stored form is ``salt:derivedKeyHex`` where the salt is 16 random bytes in
hex. The hex salt string itself is fed to scrypt, so a stored value can be
re-derived from its text alone.
"""

import hashlib
import hmac
import secrets

SALT_BYTES = 16
KEY_LENGTH = 64

# scrypt cost parameters (N, r, p); ~16 MiB per derivation
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1

SEPARATOR = ":"


def _derive(password: str, salt: str) -> bytes:
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=KEY_LENGTH,
    )


def hash_password(password: str) -> str:
    """Hash a password with a fresh random salt."""
    salt = secrets.token_hex(SALT_BYTES)
    return f"{salt}{SEPARATOR}{_derive(password, salt).hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Check a candidate password against a stored hash.

    Never raises on malformed input; anything that cannot be compared is
    simply not a match.
    """
    salt, _, key_hex = (stored or "").partition(SEPARATOR)
    if not salt or not key_hex:
        return False

    try:
        expected = bytes.fromhex(key_hex)
    except ValueError:
        return False

    # compare_digest returns False on length mismatch
    return hmac.compare_digest(_derive(password, salt), expected)
