"""Realm URL resolution and endpoint paths."""

from urllib.parse import urlsplit, urlunsplit

from pushmfa.core.errors import InvalidIamUrlError

TOKEN_ENDPOINT = "/protocol/openid-connect/token"
LOGIN_PENDING_ENDPOINT = "/push-mfa/login/pending"
CHALLENGE_RESPOND_ENDPOINT = "/push-mfa/login/challenges/{challenge_id}/respond"
ENROLL_COMPLETE_ENDPOINT = "/push-mfa/enroll/complete"


def _validate_url(url: str) -> str:
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidIamUrlError(f"Not a valid url: {url}")
    return url.rstrip("/")


def resolve_iam_url(form_value: str, token_issuer: str | None, default: str) -> str:
    """Pick the realm URL: form value, then token issuer, then default."""
    for candidate in (form_value.strip(), (token_issuer or "").strip()):
        if candidate:
            return _validate_url(candidate)
    return _validate_url(default)


def strip_query_and_fragment(url: str) -> str:
    """Drop query and fragment, as RFC 9449 requires for the htu claim."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
