"""
auth/passwords.py -- One-way password hashing and constant-time verification.

Format:
  s2:<salt-b64>:<derived-key-b64>

  "s2" tags an scrypt-derived key. scrypt is memory-hard, which is the right
  property for low-entropy secrets like passwords: every guess costs both CPU
  and RAM. Parameters are the hashlib defaults recommended for interactive
  logins (N=2**14, r=8, p=1) with a 32-byte derived key.

Legacy values:
  A stored value WITHOUT the "s2:" tag is a pre-migration plaintext record.
  It is compared directly (constant-time) and never run through scrypt.

Security:
  verify_password() never raises and never logs -- any malformed input is
  simply a failed verification. hmac.compare_digest() runs in time that does
  not depend on where the first mismatching byte is.

  scrypt is CPU-bound. Callers on the request path must run it off the event
  loop (sync FastAPI routes run in the threadpool automatically).

Layer rule: no imports from api/, edge/, or flags/.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets

SCRYPT_TAG = "s2"
SALT_BYTES = 16
KEY_BYTES = 32

_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1


def _derive(password: str, salt: bytes, length: int) -> bytes:
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt,
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=length,
    )


def safe_equal(left: str, right: str) -> bool:
    """Constant-time string comparison. Length mismatch returns False.

    compare_digest() handles unequal lengths itself without short-circuiting
    on content, so the length difference is not leaked byte by byte.
    """
    return hmac.compare_digest(left.encode("utf-8"), right.encode("utf-8"))


def hash_password(password: str, salt: bytes | None = None) -> str:
    """Return an "s2:" scrypt hash of the password.

    salt defaults to 16 random bytes. Passing one is only useful for
    deterministic tests -- production callers must leave it unset.
    """
    if salt is None:
        salt = secrets.token_bytes(SALT_BYTES)
    derived = _derive(password, salt, KEY_BYTES)
    salt_b64 = base64.b64encode(salt).decode("ascii")
    key_b64 = base64.b64encode(derived).decode("ascii")
    return f"{SCRYPT_TAG}:{salt_b64}:{key_b64}"


def verify_password(password: str, stored: str | None) -> bool:
    """Return True if password matches the stored credential.

    Tagged values are re-derived with the embedded salt at the embedded key
    length. Untagged values are legacy plaintext and compared directly.
    """
    if not stored:
        return False

    if not stored.startswith(f"{SCRYPT_TAG}:"):
        return safe_equal(password, stored)

    parts = stored.split(":")
    if len(parts) != 3 or not parts[1] or not parts[2]:
        return False

    try:
        salt = base64.b64decode(parts[1], validate=True)
        expected = base64.b64decode(parts[2], validate=True)
    except (binascii.Error, ValueError):
        return False
    if not expected:
        return False

    derived = _derive(password, salt, len(expected))
    return hmac.compare_digest(derived, expected)
