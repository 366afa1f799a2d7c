"""Type definitions for flow inputs and the requests they prepare."""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PreparedRequest(BaseModel):
    """An HTTP request ready for the network layer to send."""

    method: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    json_body: dict[str, str] | None = None
    form_body: dict[str, str] | None = None


class EnrollmentForm(BaseModel):
    """Values entered on the enrollment page."""

    token: str = ""
    context: str = ""
    iam_url: str = ""
    provider_type: str = ""


class ConfirmForm(BaseModel):
    """Values entered on the login confirmation page."""

    token: str = ""
    context: str = ""
    iam_url: str = ""
    action: str = ""
    user_verification: str = ""


class PendingChallenge(BaseModel):
    """One entry of the pending login challenges answer.

    Non-string ids and verification hints are read as their JSON text.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    cid: str | None = None
    user_verification: str | None = Field(default=None, alias="userVerification")

    @field_validator("cid", "user_verification", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value)
