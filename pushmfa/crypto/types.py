"""Type definitions for key bundles and token claim sets."""

from typing import Any

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from pydantic import BaseModel, ConfigDict, Field


class KeyBundle(BaseModel):
    """An imported RSA device key pair."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    public_key: RSAPublicKey
    private_key: RSAPrivateKey
    public_jwk: dict[str, Any]


class EnrollmentClaims(BaseModel):
    """Claims recovered from an enrollment token."""

    model_config = ConfigDict(frozen=True)

    enrollment_id: str
    nonce: str
    user_id: str
    issuer: str | None = None


class ConfirmLoginClaims(BaseModel):
    """Claims recovered from a login confirmation token."""

    model_config = ConfigDict(frozen=True)

    challenge_id: str
    credential_id: str
    issuer: str | None = None
    user_verification: str | None = None


class DpopClaims(BaseModel):
    """Payload shared by DPoP proofs and challenge response tokens.

    Field aliases are the wire claim names; unset fields are left out of
    the signed payload.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    challenge_id: str | None = Field(default=None, alias="cid")
    http_method: str | None = Field(default=None, alias="htm")
    http_target_uri: str | None = Field(default=None, alias="htu")
    subject: str | None = Field(default=None, alias="sub")
    device_id: str | None = Field(default=None, alias="deviceId")
    credential_id: str | None = Field(default=None, alias="credId")
    action: str | None = None
    user_verification: str | None = Field(default=None, alias="userVerification")

    def to_payload(self) -> dict[str, Any]:
        """Serialize to a JWT payload using wire claim names."""
        return self.model_dump(by_alias=True, exclude_none=True)
