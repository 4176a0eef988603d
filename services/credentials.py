"""Contract with the external credential service.

Tokens are issued and verified elsewhere; the engine only consumes the
resolved identity.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from core.errors import AuthError


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "email", (self.email or "").strip().lower())


class CredentialService(Protocol):
    def verify(self, token: str) -> Identity:
        """Return the identity behind ``token`` or raise :class:`AuthError`."""
        ...


def authenticate(service: CredentialService, token: Optional[str]) -> Identity:
    value = (token or "").strip()
    scheme, _, rest = value.partition(" ")
    if scheme.lower() == "bearer":
        value = rest.strip()
    if not value:
        raise AuthError("Missing token")
    identity = service.verify(value)
    if not identity.user_id or not identity.email:
        raise AuthError("Invalid token")
    return identity


__all__ = ["CredentialService", "Identity", "authenticate"]
