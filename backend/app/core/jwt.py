"""
JWT verification for incoming bearer tokens.

Tokens are issued by the accounts service; this backend only verifies them.
"""

from typing import Optional, Dict, Any
from jose import JWTError, jwt
from backend.app.core.config import settings

# Claims every accepted token must carry
REQUIRED_CLAIMS = ("sub", "user_id", "role")


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify signature and expiry of an access token.
    
    Returns:
        The payload (sub, user_id, role, exp), or None if the token is
        invalid, expired or missing a required claim
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require_exp": True},
        )
    except JWTError:
        return None
    
    if any(payload.get(claim) in (None, "") for claim in REQUIRED_CLAIMS):
        return None
    return payload
