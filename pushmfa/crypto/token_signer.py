"""RS256 signing of enrollment, challenge response, and DPoP proof tokens."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
import uuid_utils

from pushmfa.crypto.credential_id import build_credential_id, extract_user_id
from pushmfa.crypto.keys import SIGNING_ALGORITHM
from pushmfa.crypto.types import DpopClaims, EnrollmentClaims, KeyBundle

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 300

JWT_HEADER_TYPE = "JWT"
DPOP_HEADER_TYPE = "dpop+jwt"
CHALLENGE_KEY_ID = "DEVICE_KEY_ID"
DEVICE_KEY_PREFIX = "device-key-"
DEVICE_STATIC_ID = "device-static-id"
DEVICE_TYPE = "ios"
DEVICE_LABEL = "Demo Phone"
PUSH_PROVIDER_ID = "demo-push-provider-token"
PUSH_PROVIDER_TYPE_DEFAULT = "log"
DEFAULT_ACTION = "approve"


def new_device_key_id() -> str:
    """Generate a fresh device key id."""
    return f"{DEVICE_KEY_PREFIX}{uuid_utils.uuid4()}"


class TokenSigner:
    """Signs device tokens with an imported RS256 key bundle.

    Enrollment and challenge tokens expire after five minutes. DPoP proofs
    carry no ``exp``; each one gets a fresh ``jti`` and an ``iat`` instead.
    """

    def __init__(self, keys: KeyBundle) -> None:
        self._keys = keys

    def _sign(self, payload: dict[str, Any], headers: dict[str, Any]) -> str:
        return jwt.encode(
            payload,
            self._keys.private_key,
            algorithm=SIGNING_ALGORITHM,
            headers=headers,
        )

    def create_enrollment_jwt(
        self, claims: EnrollmentClaims, context: str, provider_type: str
    ) -> str:
        """Create the enrollment completion token bound to the device key."""
        exp = datetime.now(UTC) + timedelta(seconds=TOKEN_TTL_SECONDS)
        device_key_id = new_device_key_id()
        cnf = {"jwk": {**self._keys.public_jwk, "kid": device_key_id}}
        payload = {
            "enrollmentId": claims.enrollment_id,
            "nonce": claims.nonce,
            "sub": claims.user_id,
            "deviceType": DEVICE_TYPE,
            "pushProviderId": PUSH_PROVIDER_ID,
            "pushProviderType": provider_type or PUSH_PROVIDER_TYPE_DEFAULT,
            "credentialId": build_credential_id(claims.user_id, context),
            "deviceId": DEVICE_STATIC_ID,
            "deviceLabel": DEVICE_LABEL,
            "cnf": cnf,
            "exp": exp,
        }
        logger.debug("Signing enrollment token with kid %s", device_key_id)
        return self._sign(payload, {"kid": device_key_id, "typ": JWT_HEADER_TYPE})

    def create_challenge_token(
        self,
        credential_id: str,
        challenge_id: str,
        action: str = DEFAULT_ACTION,
        user_verification: str | None = None,
    ) -> str:
        """Create the signed approve/deny answer to a login challenge."""
        uv = (user_verification or "").strip()
        claims = DpopClaims(
            challenge_id=challenge_id,
            credential_id=credential_id,
            device_id=DEVICE_STATIC_ID,
            action=action,
            user_verification=uv or None,
        )
        payload = claims.to_payload()
        payload["exp"] = datetime.now(UTC) + timedelta(seconds=TOKEN_TTL_SECONDS)
        logger.debug("Signing %s response for challenge %s", action, challenge_id)
        return self._sign(payload, {"kid": CHALLENGE_KEY_ID, "typ": JWT_HEADER_TYPE})

    def create_dpop_proof(
        self, credential_id: str, http_method: str, http_target_uri: str
    ) -> str:
        """Create a single-use DPoP proof for one HTTP request.

        ``http_target_uri`` must already be stripped of query and fragment.
        """
        claims = DpopClaims(
            http_method=http_method,
            http_target_uri=http_target_uri,
            subject=extract_user_id(credential_id) or credential_id,
            device_id=DEVICE_STATIC_ID,
        )
        payload = claims.to_payload()
        payload["iat"] = datetime.now(UTC)
        payload["jti"] = str(uuid_utils.uuid4())
        logger.debug("Signing DPoP proof for %s %s", http_method, http_target_uri)
        return self._sign(
            payload, {"typ": DPOP_HEADER_TYPE, "jwk": dict(self._keys.public_jwk)}
        )
