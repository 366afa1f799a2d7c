"""Composite credential identifiers of the form ``<userId>-device-alias-<context>``.

The separator is not escaped: a user id or context containing it will not
round-trip.
"""

ALIAS_SEPARATOR = "-device-alias-"


def build_credential_id(user_id: str, context: str) -> str:
    """Join a user id and a context around the alias separator."""
    return f"{user_id}{ALIAS_SEPARATOR}{context}"


def extract_user_id(credential_id: str) -> str | None:
    """Return the text before the first separator, or None if there is none."""
    if not credential_id:
        return None
    user_id, separator, _ = credential_id.partition(ALIAS_SEPARATOR)
    if not separator or not user_id:
        return None
    return user_id


def extract_context(credential_id: str) -> str | None:
    """Return the text after the first separator, or None if it is absent."""
    if not credential_id:
        return None
    _, separator, context = credential_id.partition(ALIAS_SEPARATOR)
    if not separator:
        return None
    return context
