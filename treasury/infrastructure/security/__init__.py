"""Security utilities: identity assertion decoding."""

from treasury.infrastructure.security.jwt import principal_from_token, read_token_claims

__all__ = ["principal_from_token", "read_token_claims"]
