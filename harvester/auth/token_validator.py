"""Structural checks for captured bearer tokens."""

from ..errors import InvalidToken


# Base64url of '{"' - every JWT header starts with it
TOKEN_PREFIX = "eyJ"
TOKEN_SEGMENTS = 3


def validate_token(token) -> bool:
    """Check that a captured value looks like a compact (JWT-style) token.

    The token is not decoded; only its prefix and segment count are checked.

    Args:
        token: Captured value

    Returns:
        bool: True if the token is well formed

    Raises:
        InvalidToken: If the value is empty, not a string, lacks the prefix
            or does not have exactly three dot-separated segments
    """
    if not token or not isinstance(token, str):
        raise InvalidToken("Token is empty or not a string")

    if not token.startswith(TOKEN_PREFIX):
        raise InvalidToken(f'Invalid token format (must start with "{TOKEN_PREFIX}")')

    if len(token.split(".")) != TOKEN_SEGMENTS:
        raise InvalidToken(f"Invalid token structure (must have {TOKEN_SEGMENTS} parts)")

    return True
