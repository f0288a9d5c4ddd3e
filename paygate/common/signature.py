"""HMAC-SHA256 signatures over raw request and callback bodies.

The store and the gateway share one secret. A signature is the lowercase hex
digest of the exact bytes sent on the wire, so callers must sign and verify
the raw body, never a re-serialized copy.
"""

import hashlib
import hmac

from paygate.common.errors import ConfigurationError


SIGNATURE_HEADER = "X-Signature"


def _as_bytes(value: bytes | str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


def require_secret(secret: bytes | str | None) -> bytes:
    """Return the secret as bytes, refusing an absent or blank one."""

    if secret is None or not _as_bytes(secret).strip():
        raise ConfigurationError("gateway secret key is not configured")
    return _as_bytes(secret)


def sign(raw_body: bytes | str, secret: bytes | str) -> str:
    """Hex HMAC-SHA256 of `raw_body` under `secret`."""

    return hmac.new(_as_bytes(secret), _as_bytes(raw_body), hashlib.sha256).hexdigest()


def verify(raw_body: bytes | str, secret: bytes | str, candidate: str | None) -> bool:
    """Compare the full expected digest against `candidate` in constant time."""

    if not candidate:
        return False
    expected = sign(raw_body, secret)
    return hmac.compare_digest(expected.encode("ascii"), candidate.encode("utf-8"))
