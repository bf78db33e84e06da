from __future__ import annotations

from typing import Protocol

from mentor_chat.application.dto.principal import Principal


class IdentityProvider(Protocol):
    async def current_user(self) -> Principal | None:
        """Return the signed-in user, or None when nobody is signed in."""
        ...
