"""Identity assertion decoding.

Tokens reach this service through the gateway, which has already verified
the signature and expiry. Only the claims are read here.
"""

from typing import Any

from jose import JWTError, jwt

from treasury.domain.value_objects import Principal


def _scopes(claims: dict[str, Any]) -> frozenset[str]:
    raw = claims.get("scopes", claims.get("scope"))
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        return frozenset(part for part in raw.split() if part)
    if isinstance(raw, list | tuple):
        return frozenset(str(part) for part in raw if part)
    raise ValueError("Token claim scope/scopes must be a string or a list")


def read_token_claims(token: str) -> dict[str, Any]:
    """Return the claims of a JWT without verifying it.

    Raises:
        ValueError: If the token is malformed.
    """
    try:
        return jwt.get_unverified_claims(token)
    except JWTError as e:
        raise ValueError(f"Invalid token: {e!s}") from e


def principal_from_token(token: str) -> Principal:
    """Build the caller's Principal from sub, tenant_id and scope/scopes claims.

    Raises:
        ValueError: If the token is malformed or missing sub or tenant_id.
    """
    claims = read_token_claims(token)
    user_id = claims.get("sub")
    tenant_id = claims.get("tenant_id")
    if not user_id or not isinstance(user_id, str):
        raise ValueError("Token missing required claim: sub")
    if not tenant_id or not isinstance(tenant_id, str):
        raise ValueError("Token missing required claim: tenant_id")
    return Principal(tenant_id=tenant_id, user_id=user_id, scopes=_scopes(claims))
