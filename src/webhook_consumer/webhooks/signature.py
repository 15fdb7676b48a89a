"""HMAC-SHA256 verification of inbound webhook deliveries.

Deliveries are signed the way Svix signs them:

Signature Format:
    {prefix}-id:        msg_2KWPBgLlAfxdpx2AI54pPJ85f4W
    {prefix}-timestamp: 1614265330
    {prefix}-signature: v1,g0hM9SsE+OTPJTGt/tmIKtSyZlE3uFJELVlNIOLJ1OE= v1,...

The signature is computed as:
    base64(HMAC-SHA256(base64decode(secret without "whsec_"),
                       "{msg_id}.{timestamp}.{raw_body}"))

The signature header may carry several space-separated ``version,signature``
tokens so the producer can sign with an old and a new secret during rotation.
A delivery is authentic when any ``v1`` token matches.

Verification never raises. It returns a :class:`VerificationResult` whose
``reason`` says why a delivery was rejected.

Example:
    >>> secret = "whsec_AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"
    >>> body = b'{"test": 2432232314}'
    >>> signature = sign_payload(body, secret, "msg_1", 1614265330)
    >>> signature
    'v1,Bl1a0SVt78DCV06Rvr6oSEMbCaFysVu27en9cW0mNBI='
    >>> verify_signature(body, "msg_1", "1614265330", signature, secret).authentic
    True
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "DEFAULT_HEADER_PREFIX",
    "SECRET_PREFIX",
    "SIGNATURE_VERSION",
    "SignatureHeaders",
    "SignatureVerifier",
    "VerificationResult",
    "decode_secret",
    "generate_secret",
    "redact_secret",
    "sign_payload",
    "verify_signature",
]

# Prefix on producer-issued secrets
SECRET_PREFIX = "whsec_"

# Current signature version
SIGNATURE_VERSION = "v1"

DEFAULT_HEADER_PREFIX = "svix"

# Rejection reasons
MISSING_HEADERS = "missing_headers"
MALFORMED_SECRET = "malformed_secret"
INVALID_TIMESTAMP = "invalid_timestamp"
TIMESTAMP_OUT_OF_TOLERANCE = "timestamp_out_of_tolerance"
NO_MATCHING_SIGNATURE = "no_matching_signature"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying one delivery: ``Authentic`` or ``Forged``."""

    authentic: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> VerificationResult:
        return cls(authentic=True)

    @classmethod
    def forged(cls, reason: str) -> VerificationResult:
        return cls(authentic=False, reason=reason)

    @property
    def label(self) -> str:
        return "Authentic" if self.authentic else "Forged"

    def __bool__(self) -> bool:
        return self.authentic


def decode_secret(secret: str) -> bytes:
    """Decode a ``whsec_`` secret into raw key bytes.

    The prefix is optional; a bare base64 string is accepted.

    Raises:
        ValueError: If the secret is empty or not valid base64
    """
    if not secret:
        raise ValueError("Secret is empty")
    encoded = secret[len(SECRET_PREFIX) :] if secret.startswith(SECRET_PREFIX) else secret
    try:
        key = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("Secret is not valid base64") from e
    if not key:
        raise ValueError("Secret decodes to an empty key")
    return key


def generate_secret(num_bytes: int = 24) -> str:
    """Generate a new ``whsec_`` secret."""
    return SECRET_PREFIX + base64.b64encode(secrets.token_bytes(num_bytes)).decode()


def redact_secret(secret: str | None) -> str:
    """Redacted form of a secret, safe to log."""
    if not secret:
        return "<none>"
    return f"{SECRET_PREFIX}****{secret[-4:]}" if len(secret) > 8 else "****"


def _compute_signature(
    key: bytes, message_id: str, timestamp: str, raw_body: bytes
) -> str:
    signed_content = f"{message_id}.{timestamp}.".encode() + raw_body
    digest = hmac.new(key, signed_content, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def sign_payload(
    raw_body: bytes,
    secret: str,
    message_id: str,
    timestamp: int | str | None = None,
) -> str:
    """Sign a payload the way the producer does.

    Args:
        raw_body: Exact body bytes
        secret: ``whsec_`` secret
        message_id: Message id sent in the id header
        timestamp: Unix timestamp (defaults to current time)

    Returns:
        Signature header value: ``v1,{base64_signature}``

    Raises:
        ValueError: If the secret is malformed
    """
    if timestamp is None:
        timestamp = int(time.time())
    key = decode_secret(secret)
    return f"{SIGNATURE_VERSION},{_compute_signature(key, message_id, str(timestamp), raw_body)}"


def verify_signature(
    raw_body: bytes,
    message_id: str | None,
    timestamp: str | None,
    signature: str | None,
    secret: str,
    tolerance_seconds: int | None = None,
    now: int | None = None,
) -> VerificationResult:
    """Verify a delivery against a secret.

    Pure function: reads nothing but its arguments.

    Args:
        raw_body: Raw request body bytes (never a re-serialized form)
        message_id: Value of the id header
        timestamp: Value of the timestamp header (unix seconds)
        signature: Value of the signature header
        secret: Secret on file for the endpoint
        tolerance_seconds: Maximum clock distance allowed for the timestamp;
            ``None`` skips the freshness check
        now: Current unix time (defaults to ``time.time()``)

    Returns:
        VerificationResult (authentic or forged with a reason)
    """
    if not message_id or not timestamp or not signature:
        return VerificationResult.forged(MISSING_HEADERS)

    try:
        key = decode_secret(secret)
    except ValueError:
        return VerificationResult.forged(MALFORMED_SECRET)

    if tolerance_seconds is not None:
        try:
            signed_at = int(timestamp)
        except ValueError:
            return VerificationResult.forged(INVALID_TIMESTAMP)
        current = int(time.time()) if now is None else now
        if abs(current - signed_at) > tolerance_seconds:
            return VerificationResult.forged(TIMESTAMP_OUT_OF_TOLERANCE)

    expected = _compute_signature(key, message_id, timestamp, raw_body).encode()

    for token in signature.split(" "):
        version, _, provided = token.partition(",")
        if version != SIGNATURE_VERSION or not provided:
            continue
        # Timing-safe comparison
        if hmac.compare_digest(expected, provided.encode()):
            return VerificationResult.ok()

    return VerificationResult.forged(NO_MATCHING_SIGNATURE)


@dataclass(frozen=True)
class SignatureHeaders:
    """The header triple taken from a delivery."""

    message_id: str | None
    timestamp: str | None
    signature: str | None

    @classmethod
    def from_mapping(
        cls, headers: Mapping[str, str], prefix: str = DEFAULT_HEADER_PREFIX
    ) -> SignatureHeaders:
        """Read the triple from a case-insensitive header mapping.

        Starlette's ``Headers`` is case-insensitive; a plain dict is
        normalised to lower-case first.
        """
        if isinstance(headers, dict):
            headers = {k.lower(): v for k, v in headers.items()}
        return cls(
            message_id=headers.get(f"{prefix}-id"),
            timestamp=headers.get(f"{prefix}-timestamp"),
            signature=headers.get(f"{prefix}-signature"),
        )

    @property
    def complete(self) -> bool:
        return bool(self.message_id and self.timestamp and self.signature)


class SignatureVerifier:
    """Verifier bound to a header prefix and timestamp tolerance.

    Example:
        >>> verifier = SignatureVerifier(tolerance_seconds=300)
        >>> headers = SignatureHeaders.from_mapping(request.headers)
        >>> verifier.verify(body, headers, secret).authentic
    """

    def __init__(
        self,
        header_prefix: str = DEFAULT_HEADER_PREFIX,
        tolerance_seconds: int | None = 300,
    ) -> None:
        self.header_prefix = header_prefix.lower()
        # 0 disables the freshness check
        self.tolerance_seconds = tolerance_seconds or None

    def headers_from(self, headers: Mapping[str, str]) -> SignatureHeaders:
        return SignatureHeaders.from_mapping(headers, self.header_prefix)

    def verify(
        self,
        raw_body: bytes,
        headers: SignatureHeaders,
        secret: str,
        now: int | None = None,
    ) -> VerificationResult:
        return verify_signature(
            raw_body,
            headers.message_id,
            headers.timestamp,
            headers.signature,
            secret,
            tolerance_seconds=self.tolerance_seconds,
            now=now,
        )
