"""Access token issuance and verification."""

from datetime import timedelta
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from tapbridge.core.config import settings
from tapbridge.core.datetime_utils import utc_now
from tapbridge.core.exceptions import AuthenticationError


def create_access_token(
    user_id: str, email: str, expires_delta: Optional[timedelta] = None
) -> str:
    """Sign an access token for a user.

    Args:
    ----
        user_id (str): The id of the user the token is issued to.
        email (str): The user's email, carried in the payload.
        expires_delta (Optional[timedelta]): Lifetime override.

    Returns:
    -------
        str: The encoded token.

    """
    expires_delta = expires_delta or timedelta(seconds=settings.JWT_EXPIRES_IN_SECONDS)
    payload = {
        "userId": user_id,
        "email": email,
        "exp": utc_now() + expires_delta,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Verify a token and return its payload.

    Raises:
    ------
        AuthenticationError: If the token is malformed, expired, or carries no user id.

    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as e:
        raise AuthenticationError("Token expired. Please log in again.") from e
    except JWTError as e:
        raise AuthenticationError("Invalid token. Please log in again.") from e

    if not payload.get("userId"):
        raise AuthenticationError("Invalid token. Please log in again.")
    return payload
