"""Unverified decoding of enrollment and login confirmation tokens.

Signatures are not checked. These tokens arrive over a channel that is
already authenticated, and verifying them is the issuer's job.
"""

from typing import Any

import jwt

from pushmfa.core.errors import TokenDecodeError
from pushmfa.crypto.types import ConfirmLoginClaims, EnrollmentClaims


def decode_claims(token: str) -> dict[str, Any]:
    """Decode a compact JWT payload without verifying its signature."""
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.DecodeError as exc:
        raise TokenDecodeError(f"Token is not a valid JWT: {exc}") from exc


def _string_claim(claims: dict[str, Any], name: str) -> str | None:
    value = claims.get(name)
    if isinstance(value, str) and value:
        return value
    return None


def unpack_enrollment_token(token: str) -> EnrollmentClaims | None:
    """Extract enrollment values, or None if a required claim is missing."""
    claims = decode_claims(token)
    enrollment_id = _string_claim(claims, "enrollmentId")
    nonce = _string_claim(claims, "nonce")
    user_id = _string_claim(claims, "sub")
    if enrollment_id is None or nonce is None or user_id is None:
        return None
    return EnrollmentClaims(
        enrollment_id=enrollment_id,
        nonce=nonce,
        user_id=user_id,
        issuer=_string_claim(claims, "iss"),
    )


def unpack_confirm_login_token(token: str) -> ConfirmLoginClaims | None:
    """Extract challenge values, or None if cid or credId is missing."""
    claims = decode_claims(token)
    challenge_id = _string_claim(claims, "cid")
    credential_id = _string_claim(claims, "credId")
    if challenge_id is None or credential_id is None:
        return None
    return ConfirmLoginClaims(
        challenge_id=challenge_id,
        credential_id=credential_id,
        issuer=_string_claim(claims, "iss"),
        user_verification=_string_claim(claims, "userVerification"),
    )
