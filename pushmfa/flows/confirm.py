"""Login confirmation: answer a pending push challenge with DPoP-bound requests.

The flow runs in three round trips, each prepared here and sent by the
caller: a client-credentials token request, a pending-challenges lookup,
and the challenge response itself.
"""

import logging
from typing import Any
from urllib.parse import urlencode

from pydantic import ValidationError

from pushmfa.core.errors import (
    AccessTokenMissingError,
    ChallengeNotFoundError,
    InvalidTokenClaimsError,
    MissingTokenError,
    PendingChallengesError,
    TokenDecodeError,
    UnresolvableUserIdError,
    UserVerificationRequiredError,
)
from pushmfa.core.settings import SimulatorSettings
from pushmfa.crypto.credential_id import extract_user_id
from pushmfa.crypto.token_signer import DEFAULT_ACTION, TokenSigner
from pushmfa.crypto.token_unpacker import unpack_confirm_login_token
from pushmfa.crypto.types import ConfirmLoginClaims
from pushmfa.flows.types import (
    ConfirmForm,
    PendingChallenge,
    PreparedRequest,
)
from pushmfa.flows.urls import (
    CHALLENGE_RESPOND_ENDPOINT,
    LOGIN_PENDING_ENDPOINT,
    TOKEN_ENDPOINT,
    resolve_iam_url,
    strip_query_and_fragment,
)

logger = logging.getLogger(__name__)


def first_non_blank(*values: str | None) -> str | None:
    """Return the first value with non-whitespace content, trimmed."""
    for value in values:
        if value and value.strip():
            return value.strip()
    return None


def confirm_issuer_hint(token: str) -> str | None:
    """Return the issuer of a confirmation token, ignoring decode errors."""
    token = token.strip()
    if not token:
        return None
    try:
        claims = unpack_confirm_login_token(token)
    except TokenDecodeError:
        return None
    return claims.issuer if claims else None


class ConfirmSession:
    """State of one confirmation attempt between round trips."""

    def __init__(
        self,
        signer: TokenSigner,
        settings: SimulatorSettings,
        claims: ConfirmLoginClaims,
        user_id: str,
        iam_url: str,
        action: str,
        user_verification: str | None,
    ) -> None:
        self._signer = signer
        self._settings = settings
        self.claims = claims
        self.user_id = user_id
        self.iam_url = iam_url
        self.action = action
        self.user_verification = user_verification

    @property
    def respond_url(self) -> str:
        path = CHALLENGE_RESPOND_ENDPOINT.format(challenge_id=self.claims.challenge_id)
        return self.iam_url + path

    def _dpop(self, method: str, url: str) -> str:
        return self._signer.create_dpop_proof(
            self.claims.credential_id, method, strip_query_and_fragment(url)
        )

    def access_token_request(self) -> PreparedRequest:
        """Client-credentials token request carrying a DPoP proof."""
        url = self.iam_url + TOKEN_ENDPOINT
        return PreparedRequest(
            method="POST",
            url=url,
            headers={"DPoP": self._dpop("POST", url)},
            form_body={
                "grant_type": "client_credentials",
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret,
            },
        )

    def read_access_token(self, body: dict[str, Any]) -> str:
        """Pull the access token out of the token endpoint answer."""
        access_token = body.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            logger.warning("Token endpoint answer has no access_token")
            raise AccessTokenMissingError("Failed to obtain access token")
        return access_token

    def pending_request(self, access_token: str) -> PreparedRequest:
        """Lookup of the user's pending challenges."""
        url = self.iam_url + LOGIN_PENDING_ENDPOINT
        return PreparedRequest(
            method="GET",
            url=f"{url}?{urlencode({'userId': self.user_id})}",
            headers={
                "Authorization": f"Bearer {access_token}",
                "DPoP": self._dpop("GET", url),
            },
        )

    def find_pending_challenge(self, pending_body: dict[str, Any]) -> PendingChallenge:
        """Locate this session's challenge in the pending challenges answer."""
        challenges = None
        if isinstance(pending_body, dict):
            challenges = pending_body.get("challenges")
        if not isinstance(challenges, list):
            logger.warning("Pending challenges answer has no challenge list")
            raise PendingChallengesError("Failed to get pending challenges")
        for entry in challenges:
            if not isinstance(entry, dict):
                continue
            try:
                challenge = PendingChallenge.model_validate(entry)
            except ValidationError as exc:
                raise PendingChallengesError(
                    f"Failed to get pending challenges: {exc}"
                ) from exc
            if challenge.cid == self.claims.challenge_id:
                return challenge
        logger.warning("Challenge %s not pending", self.claims.challenge_id)
        raise ChallengeNotFoundError("Challenge not found")

    def respond_request(
        self, access_token: str, pending_body: dict[str, Any]
    ) -> PreparedRequest:
        """Signed approve/deny answer for the pending challenge."""
        challenge = self.find_pending_challenge(pending_body)
        approving = self.action == DEFAULT_ACTION
        if (
            approving
            and challenge.user_verification is not None
            and not self.user_verification
        ):
            logger.warning("User verification required but not provided")
            raise UserVerificationRequiredError("userVerification required")

        url = self.respond_url
        challenge_token = self._signer.create_challenge_token(
            self.claims.credential_id,
            self.claims.challenge_id,
            self.action,
            self.user_verification if approving else None,
        )
        return PreparedRequest(
            method="POST",
            url=url,
            headers={
                "Authorization": f"Bearer {access_token}",
                "DPoP": self._dpop("POST", url),
            },
            json_body={"token": challenge_token},
        )

    def summary(self, status: int, pending_user_verification: str | None) -> str:
        """Result line shown after a successful response."""
        return (
            f"userId: {self.user_id}; responseStatus: {status}; "
            f"userVerification: {pending_user_verification}; action: {self.action}"
        )


class ConfirmLoginFlow:
    """Starts confirmation sessions from the confirm page form."""

    def __init__(self, signer: TokenSigner, settings: SimulatorSettings) -> None:
        self._signer = signer
        self._settings = settings

    def start(self, form: ConfirmForm) -> ConfirmSession:
        """Validate the form and unpack the confirmation token."""
        token = form.token.strip()
        if not token:
            raise MissingTokenError("token required")

        claims = unpack_confirm_login_token(token)
        if claims is None:
            logger.warning("Confirmation token lacks cid or credId")
            raise InvalidTokenClaimsError("invalid confirm token payload")

        user_id = extract_user_id(claims.credential_id)
        if user_id is None:
            raise UnresolvableUserIdError(
                "unable to extract user id from credential id"
            )

        iam_url = resolve_iam_url(
            form.iam_url, claims.issuer, self._settings.default_iam_url
        )
        action = form.action.strip().lower() or DEFAULT_ACTION
        user_verification = first_non_blank(
            form.user_verification, claims.user_verification, form.context
        )
        logger.info(
            "Confirming challenge %s for %s with action %s",
            claims.challenge_id,
            user_id,
            action,
        )
        return ConfirmSession(
            self._signer,
            self._settings,
            claims,
            user_id,
            iam_url,
            action,
            user_verification,
        )
