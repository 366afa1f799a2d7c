"""Device enrollment: turn an enrollment token into a signed completion request."""

import logging

from pushmfa.core.errors import (
    InvalidTokenClaimsError,
    MissingTokenError,
    TokenDecodeError,
)
from pushmfa.core.settings import SimulatorSettings
from pushmfa.crypto.token_signer import TokenSigner
from pushmfa.crypto.token_unpacker import unpack_enrollment_token
from pushmfa.flows.types import EnrollmentForm, PreparedRequest
from pushmfa.flows.urls import ENROLL_COMPLETE_ENDPOINT, resolve_iam_url

logger = logging.getLogger(__name__)


def enrollment_issuer_hint(token: str) -> str | None:
    """Return the issuer of an enrollment token, or None if it has none.

    Undecodable input yields None so a half-typed token never raises.
    """
    token = token.strip()
    if not token:
        return None
    try:
        claims = unpack_enrollment_token(token)
    except TokenDecodeError:
        return None
    return claims.issuer if claims else None


class EnrollmentFlow:
    """Builds the enroll-complete request for a device."""

    def __init__(self, signer: TokenSigner, settings: SimulatorSettings) -> None:
        self._signer = signer
        self._settings = settings

    def prepare(self, form: EnrollmentForm) -> PreparedRequest:
        """Validate the form, sign the enrollment JWT, and build the request."""
        token = form.token.strip()
        if not token:
            raise MissingTokenError("Please enter token.")

        claims = unpack_enrollment_token(token)
        if claims is None:
            logger.warning("Enrollment token lacks enrollmentId, nonce, or sub")
            raise InvalidTokenClaimsError("invalid enrollment token payload")

        iam_url = resolve_iam_url(
            form.iam_url, claims.issuer, self._settings.default_iam_url
        )
        logger.info("Preparing enrollment %s against %s", claims.enrollment_id, iam_url)

        enrollment_jwt = self._signer.create_enrollment_jwt(
            claims, form.context.strip(), form.provider_type.strip()
        )
        return PreparedRequest(
            method="POST",
            url=iam_url + ENROLL_COMPLETE_ENDPOINT,
            headers={"Accept": "application/json"},
            json_body={"token": enrollment_jwt},
        )
