"""Exception types raised by key loading, token decoding, and the flows."""


class PushMfaError(Exception):
    """Base class for all push MFA device errors."""


class KeyLoadError(PushMfaError):
    """The key bundle could not be fetched, parsed, or imported."""


class TokenDecodeError(PushMfaError):
    """The input is not a syntactically valid compact JWT."""


class FlowError(PushMfaError):
    """A user-supplied input or server answer stopped an orchestration flow."""


class MissingTokenError(FlowError):
    """No token was supplied."""


class InvalidIamUrlError(FlowError):
    """The realm URL is not an absolute http(s) URL."""


class InvalidTokenClaimsError(FlowError):
    """The token decoded but lacks the claims its kind requires."""


class UnresolvableUserIdError(FlowError):
    """The credential id carries no user id prefix."""


class AccessTokenMissingError(FlowError):
    """The token endpoint answer has no access_token."""


class ChallengeNotFoundError(FlowError):
    """The challenge is not among the user's pending challenges."""


class UserVerificationRequiredError(FlowError):
    """The pending challenge demands user verification but none was given."""


class PendingChallengesError(FlowError):
    """The pending challenges answer has no usable challenge list."""
